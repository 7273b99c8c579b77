from __future__ import annotations

import logging
import os

from ..errors import PermissionDenied

logger = logging.getLogger(__name__)


def has_privilege() -> bool:
    return os.geteuid() == 0


def require_privilege(*, dry_run: bool = False) -> None:
    """Fail fast unless the process runs with root privileges.

    Stages that mount, chroot, mknod or write into root-owned trees need this.
    The check is done once, before the first stage runs.
    """

    if has_privilege():
        return
    if dry_run:
        logger.warning("Not running as root; continuing because this is a dry run")
        return
    raise PermissionDenied(
        f"Root privileges are required (euid={os.geteuid()}); re-run with sudo"
    )
