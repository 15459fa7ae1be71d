from __future__ import annotations

from pathlib import Path

import pytest

from strata.io.config import IoSettings
from strata.io.errors import IoConfigError

_ENV_KEYS = [
    "STRATA_IO_ROOT_DIR",
    "STRATA_IO_ROW_GROUP_SIZE",
    "STRATA_IO_COMPRESSION",
    "STRATA_IO_STRICT_SCHEMA",
    "STRATA_IO_FSYNC",
    "STRATA_IO_LOG_LEVEL",
]


def _write_strata_toml(tmp: Path, content: str) -> Path:
    p = tmp / "strata.toml"
    p.write_text(content)
    return p


def _clear_env(monkeypatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_io_settings_precedence_env_over_toml(tmp_path: Path, monkeypatch) -> None:
    _write_strata_toml(
        tmp_path,
        """
        [io]
        root_dir = "tmp_out_toml"
        row_group_size = 256
        compression = "lz4"
        """.strip(),
    )
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)
    monkeypatch.setenv("STRATA_IO_ROOT_DIR", "tmp_out_env")
    monkeypatch.setenv("STRATA_IO_ROW_GROUP_SIZE", "512")
    monkeypatch.setenv("STRATA_IO_COMPRESSION", "zstd")

    s = IoSettings.load()

    assert s.root_dir == "tmp_out_env"
    assert s.row_group_size == 512
    assert s.compression == "zstd"


def test_io_settings_from_toml_when_no_env(tmp_path: Path, monkeypatch) -> None:
    _write_strata_toml(
        tmp_path,
        """
        [io]
        root_dir = "tmp_out_toml"
        row_group_size = 128
        compression = "snappy"
        strict_schema = false
        fsync = false
        log_level = "info"
        """.strip(),
    )
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)

    s = IoSettings.load()

    assert s.root_dir == "tmp_out_toml"
    assert s.row_group_size == 128
    assert s.compression == "snappy"
    assert s.strict_schema is False
    assert s.fsync is False
    assert s.log_level == "INFO"


def test_io_settings_from_pyproject_tool_table(tmp_path: Path, monkeypatch) -> None:
    (tmp_path / "pyproject.toml").write_text(
        """
        [project]
        name = "demo"

        [tool.strata.io]
        root_dir = "from_pyproject"
        """.strip()
    )
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)

    assert IoSettings.load().root_dir == "from_pyproject"


def test_io_settings_defaults_when_no_config(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)

    s = IoSettings.load()

    assert s.root_dir == "out"
    assert isinstance(s.row_group_size, int)
    assert s.compression in {"zstd", "lz4", "snappy"}
    assert s.strict_schema is True
    assert s.fsync is True


def test_invalid_env_values_are_ignored(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)
    monkeypatch.setenv("STRATA_IO_ROW_GROUP_SIZE", "many")
    monkeypatch.setenv("STRATA_IO_COMPRESSION", "brotli")

    s = IoSettings.load()

    assert s.row_group_size == IoSettings().row_group_size
    assert s.compression == IoSettings().compression


def test_explicit_unparseable_toml_raises(tmp_path: Path) -> None:
    bad = _write_strata_toml(tmp_path, "[io\nroot_dir = ")
    with pytest.raises(IoConfigError):
        IoSettings.from_toml(bad)


@pytest.mark.parametrize(
    "kwargs",
    [{"row_group_size": 0}, {"compression": "gzip"}, {"log_level": "LOUD"}],
)
def test_constructor_validates(kwargs: dict) -> None:
    with pytest.raises(IoConfigError):
        IoSettings(**kwargs)
