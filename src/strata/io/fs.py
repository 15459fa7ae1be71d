"""
Filesystem helpers for strata.io (file protocol baseline).

Responsibilities
- Provide a minimal stdlib-only abstraction for basic filesystem operations used by strata.io:
  existence checks, directory creation, safe write handles, fsync, atomic renames, and
  exclusive publication of log entries.
- Establish clear semantics for the two write paths:
  - data parts: tmp write → fsync → atomic rename (os.replace; last writer wins, names are unique)
  - log entries: tmp write → fsync → exclusive link (os.link; fails if the target exists)

Import DAG discipline
- stdlib-only.

Notes
- Atomicity via os.replace/os.link is guaranteed only when src and dst reside on the same
  filesystem.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import BinaryIO


def exists(path: str) -> bool:
    """
    Check whether a path exists.

    Args:
        path (str): Filesystem path.

    Returns:
        bool: True if the path exists, False otherwise.
    """
    return os.path.exists(path)


def makedirs(path: str, exist_ok: bool = True) -> None:
    """
    Create directories recursively.

    Args:
        path (str): Directory path to create.
        exist_ok (bool): Do not error if the directory already exists.
    """
    os.makedirs(path, exist_ok=exist_ok)


@contextmanager
def open_write(path: str) -> Iterator[BinaryIO]:
    """
    Open a file for binary write as a context manager.

    Args:
        path (str): Destination path to open in write-binary mode.

    Yields:
        BinaryIO: A writable handle supporting .flush() and .fileno().

    Notes:
        Caller is responsible for fsync and the final rename/link of the temporary file.
    """
    fh = open(path, "wb")
    try:
        yield fh
    finally:
        fh.close()


def fsync_file(fh: BinaryIO) -> None:
    """
    Flush and fsync an open file handle.

    Args:
        fh (BinaryIO): An open file with .fileno().
    """
    fh.flush()
    os.fsync(fh.fileno())


def fsync_path(path: str) -> None:
    """
    Open a path read-only and fsync its file descriptor.

    Notes:
        Useful when a library wrote to a path directly (e.g., pyarrow.parquet.write_table),
        and data must hit the disk before the atomic rename.
    """
    fd = os.open(path, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def rename_atomic(src: str, dst: str) -> None:
    """
    Atomically rename src -> dst on the same filesystem, replacing dst if present.
    """
    os.replace(src, dst)


def link_exclusive(src: str, dst: str) -> bool:
    """
    Publish src at dst only if dst does not exist yet.

    Args:
        src (str): Fully written temporary file.
        dst (str): Final path that must not already exist.

    Returns:
        bool: True if dst was created; False if another writer created it first.

    Notes:
        The link is atomic: readers see either no dst or the complete file. src is removed in
        both cases.
    """
    try:
        os.link(src, dst)
    except FileExistsError:
        return False
    finally:
        remove_quietly(src)
    return True


def remove_quietly(path: str) -> None:
    """Remove a file if present; missing files are not an error."""
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


def listdir(path: str) -> list[str]:
    """
    List entry names in a directory (non-recursive).

    Returns:
        list[str]: Entry names; [] if the directory does not exist.
    """
    try:
        return os.listdir(path)
    except FileNotFoundError:
        return []


def is_parquet(path: str) -> bool:
    """True if path ends with ".parquet"."""
    return path.endswith(".parquet")
