from __future__ import annotations

import logging
from typing import Sequence

from .chroot import chroot_cmd
from .command import run_cmd

logger = logging.getLogger(__name__)


def debootstrap_rootfs(
    *,
    target_root: str,
    suite: str = "bookworm",
    mirror: str = "http://deb.debian.org/debian/",
    arch: str | None = None,
    dry_run: bool = False,
) -> None:
    argv = ["debootstrap"]
    if arch:
        argv += ["--arch", arch]
    argv += [suite, target_root, mirror]
    run_cmd(argv, dry_run=dry_run)


def apt_update(target_root: str, *, dry_run: bool = False) -> None:
    chroot_cmd(target_root, ["apt-get", "update"], dry_run=dry_run)


def apt_install(
    target_root: str,
    packages: Sequence[str],
    *,
    with_recommends: bool = True,
    dry_run: bool = False,
) -> None:
    if not packages:
        return
    argv = ["apt-get", "install", "-y"]
    if not with_recommends:
        argv.append("--no-install-recommends")
    chroot_cmd(target_root, [*argv, *packages], dry_run=dry_run)


def dnf_host_install(
    packages: Sequence[str],
    *,
    groups: Sequence[str] = (),
    dry_run: bool = False,
) -> None:
    """Install build tooling on the host."""

    for group in groups:
        run_cmd(["dnf", "-y", "groupinstall", group], dry_run=dry_run)
    if packages:
        run_cmd(["dnf", "-y", "install", *packages], dry_run=dry_run)


def dnf_installroot(
    *,
    target_root: str,
    release: str,
    packages: Sequence[str],
    dry_run: bool = False,
) -> None:
    """Populate a Fedora tree with the host's dnf (chroot-style bootstrap)."""

    run_cmd(
        [
            "dnf",
            "-y",
            f"--installroot={target_root}",
            f"--releasever={release}",
            "install",
            *packages,
        ],
        dry_run=dry_run,
    )


def dnf_install(target_root: str, packages: Sequence[str], *, dry_run: bool = False) -> None:
    if not packages:
        return
    chroot_cmd(target_root, ["dnf", "-y", "install", *packages], dry_run=dry_run)


def dnf_copr_enable(target_root: str, repo: str, *, dry_run: bool = False) -> None:
    chroot_cmd(target_root, ["dnf", "-y", "copr", "enable", repo], dry_run=dry_run)
