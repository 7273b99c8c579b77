from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def snapshot_tree(src: str, dst: str, *, dry_run: bool = False) -> bool:
    """Copy ``src`` to a new directory ``dst``, preserving symlinks and metadata.

    Returns False without touching anything if ``dst`` already exists, so an
    existing snapshot is never merged with a newer tree. The copy goes to a
    hidden staging directory first and is renamed into place once complete.
    """

    s = Path(src)
    d = Path(dst)
    if os.path.lexists(d):
        logger.info("Snapshot exists: %s", str(d))
        return False

    if dry_run:
        logger.info("Would snapshot %s -> %s", str(s), str(d))
        return True
    if not s.is_dir():
        raise FileNotFoundError(src)

    staging = d.with_name(f".{d.name}.partial")
    if os.path.lexists(staging):
        shutil.rmtree(staging)
    try:
        shutil.copytree(s, staging, symlinks=True, copy_function=shutil.copy2)
        staging.rename(d)
    finally:
        shutil.rmtree(staging, ignore_errors=True)
    logger.info("Snapshot %s -> %s", str(s), str(d))
    return True


def write_file(path: Path, contents: str, *, mode: int = 0o644, dry_run: bool = False) -> None:
    path = Path(path)
    if dry_run:
        logger.info("Would write %s", str(path))
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(contents, encoding="utf-8")
    os.chmod(path, mode)
    logger.info("Wrote %s", str(path))
