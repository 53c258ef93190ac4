"""
Atomic file writing with fsync so a run never leaves a half-written PEM.

Pattern:
  1. Write each payload to a temporary file in its target directory
  2. chmod to the final mode, fsync
  3. Only after every payload is staged, rename each into place (atomic on POSIX)

A failure while staging removes every temp file and publishes nothing.
Target directories are never created: a missing directory is an error.
"""
from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Sequence, Tuple

from pki.errors import OutputWriteError

logger = logging.getLogger(__name__)

StagedFile = Tuple[Path, bytes, int]


def atomic_write_files(files: Sequence[StagedFile]) -> None:
    """
    Write several (path, content, mode) files so that either all of them
    appear or, when staging fails, none of them do.

    Renames happen in the given order; put the file that must never be
    missing (the private key) first.
    """
    staged: list[tuple[str, Path, int]] = []
    try:
        for path, content, mode in files:
            staged.append((_stage(path, content, mode), path, mode))
    except OutputWriteError:
        for temp_path, _, _ in staged:
            _discard(temp_path)
        raise

    for i, (temp_path, path, mode) in enumerate(staged):
        logger.info("+ install -m %04o %s %s", mode, temp_path, path)
        try:
            os.replace(temp_path, path)
        except OSError as exc:
            for remaining, _, _ in staged[i:]:
                _discard(remaining)
            raise OutputWriteError(str(path), exc) from exc


# ─── Internal ──────────────────────────────────────────────────────────────────


def _stage(path: Path, content: bytes, mode: int) -> str:
    """Write *content* to a temp file beside *path*; return the temp path."""
    try:
        # Same directory as the target so the rename stays on one filesystem
        fd, temp_path = tempfile.mkstemp(
            prefix=f".{path.name}.",
            suffix=".tmp",
            dir=str(path.parent),
        )
    except OSError as exc:
        raise OutputWriteError(str(path), exc) from exc

    try:
        with os.fdopen(fd, "wb") as f:
            # mkstemp creates 0600; widen only where asked
            os.chmod(temp_path, mode)
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
    except OSError as exc:
        _discard(temp_path)
        raise OutputWriteError(str(path), exc) from exc

    logger.debug("Staged %d bytes for %s in %s", len(content), path, temp_path)
    return temp_path


def _discard(temp_path: str) -> None:
    try:
        os.unlink(temp_path)
    except FileNotFoundError:
        pass
