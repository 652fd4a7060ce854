from __future__ import annotations

import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

from .command import run_cmd, sudo

logger = logging.getLogger(__name__)


def _writable(path: Path) -> bool:
    """True if we can write path directly (no sudo needed)."""

    p = path
    while not p.exists():
        if p.parent == p:
            return False
        p = p.parent
    return os.access(p, os.W_OK)


def backup_path_for(path: Path, *, now: Optional[datetime] = None) -> Path:
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return path.with_name(f"{path.name}.backup-{stamp}")


def write_file(
    path: str | Path,
    contents: str,
    *,
    dry_run: bool,
    mode: Optional[int] = None,
    privileged: bool = False,
    backup: bool = False,
) -> Optional[Path]:
    """Write a text file, idempotently.

    privileged=True falls back to sudo when the target is not writable by us.
    backup=True copies an existing file to <name>.backup-YYYYmmdd_HHMMSS first.

    Returns the backup path when one was made.
    """

    p = Path(path)
    if dry_run:
        logger.info("DRY RUN: would write %s", str(p))
        return None

    use_sudo = privileged and not _writable(p)
    backup_to: Optional[Path] = None

    if backup and p.exists():
        backup_to = backup_path_for(p)
        if use_sudo:
            run_cmd(sudo(["cp", "-p", str(p), str(backup_to)]))
        else:
            backup_to.write_bytes(p.read_bytes())
        logger.info("Backed up %s -> %s", str(p), str(backup_to))

    if use_sudo:
        run_cmd(sudo(["mkdir", "-p", str(p.parent)]))
        run_cmd(sudo(["tee", str(p)]), input_text=contents)
        if mode is not None:
            run_cmd(sudo(["chmod", format(mode, "o"), str(p)]))
    else:
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(contents, encoding="utf-8")
        if mode is not None:
            p.chmod(mode)

    logger.debug("Wrote %s", str(p))
    return backup_to


def remove_path(path: str | Path, *, dry_run: bool, privileged: bool = False) -> bool:
    """Remove a file, symlink or directory tree. Missing paths are not an error."""

    p = Path(path)
    if not (p.exists() or p.is_symlink()):
        return False
    if dry_run:
        logger.info("DRY RUN: would remove %s", str(p))
        return True

    if privileged and not _writable(p.parent):
        run_cmd(sudo(["rm", "-rf", str(p)]), check=False)
    elif p.is_dir() and not p.is_symlink():
        shutil.rmtree(p)
    else:
        p.unlink()
    logger.debug("Removed %s", str(p))
    return True
