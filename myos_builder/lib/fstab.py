from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class FstabEntry:
    spec: str
    mountpoint: str
    fstype: str
    options: str = "defaults"
    dump: int = 0
    passno: int = 0

    def render(self) -> str:
        return f"{self.spec}\t{self.mountpoint}\t{self.fstype}\t{self.options}\t{self.dump}\t{self.passno}"


# Pseudo-filesystems for the live busybox root; nothing is backed by a disk.
LIVE_FSTAB = (
    FstabEntry(spec="proc", mountpoint="/proc", fstype="proc", options="nosuid,noexec,nodev"),
    FstabEntry(spec="sysfs", mountpoint="/sys", fstype="sysfs", options="nosuid,noexec,nodev"),
    FstabEntry(spec="devtmpfs", mountpoint="/dev", fstype="devtmpfs", options="mode=0755,nosuid"),
    FstabEntry(spec="tmpfs", mountpoint="/run", fstype="tmpfs", options="defaults"),
    FstabEntry(spec="tmpfs", mountpoint="/tmp", fstype="tmpfs", options="mode=1777,nosuid,nodev"),
)


def render_fstab(entries: Iterable[FstabEntry]) -> str:
    lines = ["# <file system>\t<mount point>\t<type>\t<options>\t<dump>\t<pass>"]
    lines += [e.render() for e in entries]
    return "\n".join(lines) + "\n"
