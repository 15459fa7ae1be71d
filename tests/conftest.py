from __future__ import annotations

from pathlib import Path

import pytest

from strata.io.config import IoSettings
from strata.io.table import Catalog


@pytest.fixture
def settings(tmp_path: Path) -> IoSettings:
    return IoSettings(root_dir=str(tmp_path / "warehouse"), fsync=False)


@pytest.fixture
def catalog(settings: IoSettings) -> Catalog:
    return Catalog(settings)
