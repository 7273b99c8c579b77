from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceNode:
    name: str
    major: int
    minor: int
    mode: int


# Minimal console devices the busybox init needs before devtmpfs is mounted.
DEVICE_NODES = (
    DeviceNode(name="null", major=1, minor=3, mode=0o666),
    DeviceNode(name="zero", major=1, minor=5, mode=0o666),
    DeviceNode(name="console", major=5, minor=1, mode=0o600),
    DeviceNode(name="tty", major=5, minor=0, mode=0o666),
)


def create_device_nodes(
    dev_dir: Path,
    nodes: Iterable[DeviceNode] = DEVICE_NODES,
    *,
    dry_run: bool = False,
) -> List[Path]:
    """Create character device nodes under ``dev_dir``; existing ones are left alone."""

    dev_dir = Path(dev_dir)
    created: List[Path] = []
    if not dry_run:
        dev_dir.mkdir(parents=True, exist_ok=True)

    for node in nodes:
        path = dev_dir / node.name
        if os.path.lexists(path):
            logger.info("Device node exists: %s", str(path))
            continue
        if dry_run:
            logger.info("Would mknod %s c %d %d (mode %o)", str(path), node.major, node.minor, node.mode)
            continue
        os.mknod(path, stat.S_IFCHR | node.mode, os.makedev(node.major, node.minor))
        # mknod is subject to the umask
        os.chmod(path, node.mode)
        created.append(path)
        logger.info("Created %s c %d %d", str(path), node.major, node.minor)

    return created
