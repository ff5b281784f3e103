"""Safe file I/O utilities.

Provides locked append for JSONL files (``fcntl`` + ``fsync``) and an
atomic whole-file rewrite for the line-oriented stores.
"""

from __future__ import annotations

import fcntl
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)


def safe_append_line(path: Path, line: str) -> None:
    """Append a single line to a file with locking and fsync.

    * ``fcntl.LOCK_EX`` prevents interleaved writes from concurrent
      processes that share the same file.
    * ``os.fsync`` ensures the data hits disk before the lock is
      released, so a crash immediately after return won't lose the line.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        fcntl.flock(f.fileno(), fcntl.LOCK_EX)
        try:
            f.write(line + "\n")
            f.flush()
            os.fsync(f.fileno())
        finally:
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)


def atomic_write_lines(path: Path, lines: Iterable[str]) -> None:
    """Replace *path* with *lines*, or leave it untouched on failure.

    Writes to a temporary sibling and ``os.replace``s it over the target,
    so readers never see a half-written file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            for line in lines:
                f.write(line + "\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def read_lines(path: Path) -> list[str]:
    """Return the non-empty lines of *path*; a missing file reads as empty."""
    if not path.exists():
        logger.debug("No data file at %s, starting empty", path)
        return []
    with open(path, encoding="utf-8") as f:
        return [line.rstrip("\n") for line in f if line.strip()]
