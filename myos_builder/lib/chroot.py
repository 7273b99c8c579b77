from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Sequence

from .command import CmdResult, run_cmd

logger = logging.getLogger(__name__)

BIND_MOUNTS = ("/dev", "/proc", "/sys")

HOST_RESOLV_CONF = Path("/etc/resolv.conf")
# Kept next to the original inside the target while the build host's copy is in place.
RESOLV_BACKUP = ".resolv.conf.myos-orig"
RESOLV_ABSENT = ".resolv.conf.myos-absent"


def chroot_cmd(target_root: str, argv: Sequence[str], *, check: bool = True, dry_run: bool = False) -> CmdResult:
    """Run a command inside target root."""

    return run_cmd(["chroot", target_root, *argv], check=check, dry_run=dry_run)


def chroot_script(target_root: str, script: str, *, dry_run: bool = False) -> CmdResult:
    """Run a bash snippet inside target root, stopping at the first failing line."""

    return chroot_cmd(target_root, ["/bin/bash", "-euo", "pipefail", "-c", script], dry_run=dry_run)


def mount_chroot_binds(target_root: str, *, dry_run: bool = False) -> None:
    # Minimal bind mounts for package managers and locale tooling
    for src in BIND_MOUNTS:
        dst = f"{target_root}{src}"
        if not dry_run:
            Path(dst).mkdir(parents=True, exist_ok=True)
        run_cmd(["mount", "--bind", src, dst], dry_run=dry_run)


def umount_chroot_binds(target_root: str, *, dry_run: bool = False) -> None:
    for src in reversed(BIND_MOUNTS):
        run_cmd(["umount", "-lf", f"{target_root}{src}"], check=False, dry_run=dry_run)


def copy_resolv_conf(target_root: str, *, dry_run: bool = False) -> None:
    """Give the chroot the host's DNS configuration so package managers can resolve mirrors.

    The target's own entry (often a systemd-resolved symlink) is moved aside
    and put back by restore_resolv_conf(). A rerun after an interrupted build
    keeps the first backup.
    """

    src = HOST_RESOLV_CONF
    etc = Path(target_root) / "etc"
    dst = etc / "resolv.conf"
    if dry_run:
        logger.info("Would copy %s -> %s", str(src), str(dst))
        return
    if not src.exists():
        logger.warning("Host has no %s; chroot may not resolve mirrors", str(src))
        return

    etc.mkdir(parents=True, exist_ok=True)
    backup = etc / RESOLV_BACKUP
    absent = etc / RESOLV_ABSENT
    if not os.path.lexists(backup) and not os.path.lexists(absent):
        if os.path.lexists(dst):
            os.rename(dst, backup)
        else:
            absent.touch()
    if os.path.lexists(dst):
        dst.unlink()
    shutil.copyfile(src, dst)


def restore_resolv_conf(target_root: str, *, dry_run: bool = False) -> None:
    """Undo copy_resolv_conf(): the image keeps its own resolv.conf, not the build host's."""

    etc = Path(target_root) / "etc"
    dst = etc / "resolv.conf"
    backup = etc / RESOLV_BACKUP
    absent = etc / RESOLV_ABSENT
    if dry_run:
        logger.info("Would restore %s", str(dst))
        return

    if os.path.lexists(backup):
        if os.path.lexists(dst):
            dst.unlink()
        os.rename(backup, dst)
    elif os.path.lexists(absent):
        if os.path.lexists(dst):
            dst.unlink()
        absent.unlink()
