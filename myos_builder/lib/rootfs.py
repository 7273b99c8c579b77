from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

from ..build_env import BuildEnvironment
from ..errors import AssemblyError, BootstrapFailure, BuildError, CommandError
from .assets import write_file
from .cache import present
from .chroot import chroot_cmd, copy_resolv_conf, mount_chroot_binds, restore_resolv_conf, umount_chroot_binds
from .devices import create_device_nodes
from .fetch import extract_archive, fetch_archive
from .fstab import LIVE_FSTAB, render_fstab
from .kbuild import make, set_kconfig
from .pkg import apt_install, apt_update, debootstrap_rootfs, dnf_copr_enable, dnf_install, dnf_installroot

logger = logging.getLogger(__name__)

ROOTFS_KINDS = ("bare", "debian-chroot", "fedora-chroot")

SKELETON_DIRS = (
    "bin", "boot", "dev", "etc", "home", "lib", "mnt", "opt", "proc", "root", "run",
    "sbin", "srv", "sys", "tmp", "usr/bin", "usr/lib", "usr/sbin", "var/log", "var/tmp",
)
STICKY_DIRS = ("tmp", "var/tmp")


@dataclass(frozen=True)
class RootfsTarget:
    kind: str  # bare|debian-chroot|fedora-chroot
    mount_path: Path
    packages: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.kind not in ROOTFS_KINDS:
            raise ValueError(f"Unsupported rootfs kind {self.kind!r} (expected one of {', '.join(ROOTFS_KINDS)})")


@dataclass(frozen=True)
class InitScript:
    """The live system's PID 1: mount pseudo-filesystems, then hand over to a shell."""

    banner: str = "Welcome to MyOS"
    shell: str = "/bin/sh"
    mounts: Tuple[Tuple[str, str, str], ...] = (
        ("proc", "proc", "/proc"),
        ("sysfs", "sysfs", "/sys"),
        ("devtmpfs", "devtmpfs", "/dev"),
    )

    def render(self) -> str:
        lines = ["#!/bin/sh"]
        for fstype, source, mountpoint in self.mounts:
            lines.append(f"mount -t {fstype} {source} {mountpoint}")
        lines.append(f'echo "{self.banner}"')
        lines.append(f"exec {self.shell}")
        return "\n".join(lines) + "\n"


def target_for(kind: str, env: BuildEnvironment) -> RootfsTarget:
    cfg = env.cfg
    if kind == "bare":
        return RootfsTarget(kind=kind, mount_path=env.root)
    if kind == "debian-chroot":
        return RootfsTarget(kind=kind, mount_path=env.debian_rootfs, packages=tuple(cfg.debian_packages))
    if kind == "fedora-chroot":
        return RootfsTarget(kind=kind, mount_path=env.fedora_rootfs, packages=tuple(cfg.fedora_packages))
    raise ValueError(f"Unsupported rootfs kind {kind!r}")


def assemble(target: RootfsTarget, env: BuildEnvironment) -> RootfsTarget:
    """Build one root filesystem. Any failure aborts the build."""

    logger.info("Assembling %s rootfs at %s", target.kind, str(target.mount_path))
    try:
        if target.kind == "bare":
            _assemble_bare(target, env)
        elif target.kind == "debian-chroot":
            _assemble_debian(target, env)
        else:
            _assemble_fedora(target, env)
    except AssemblyError:
        raise
    except (BuildError, OSError) as e:
        raise AssemblyError(f"{target.kind} rootfs assembly failed at {target.mount_path}: {e}") from e
    logger.info("Rootfs ready: %s (%s)", str(target.mount_path), target.kind)
    return target


# -- bare busybox root


def create_skeleton(root: Path, *, dry_run: bool = False) -> None:
    if dry_run:
        logger.info("Would create skeleton under %s", str(root))
        return
    for rel in SKELETON_DIRS:
        (root / rel).mkdir(parents=True, exist_ok=True)
    for rel in STICKY_DIRS:
        os.chmod(root / rel, 0o1777)


def install_busybox(env: BuildEnvironment, root: Path) -> None:
    """Static busybox from its release archive, installed with CONFIG_PREFIX=root."""

    if present(root / "bin/busybox"):
        logger.info("busybox already installed in %s", str(root))
        return

    version = env.cfg.busybox_version
    archive = fetch_archive(
        env.cfg.busybox_url, env.sources_dir / f"busybox-{version}.tar.bz2", dry_run=env.dry_run
    )
    src = extract_archive(archive, env.sources_dir, f"busybox-{version}", dry_run=env.dry_run)

    if not present(src / ".config"):
        make(src, ["defconfig"], dry_run=env.dry_run)
        # tc does not build against kernel headers >= 6.8
        set_kconfig(src / ".config", {"CONFIG_STATIC": "y", "CONFIG_TC": None}, dry_run=env.dry_run)

    make(src, jobs=env.jobs, dry_run=env.dry_run)
    make(src, ["install"], variables={"CONFIG_PREFIX": str(root)}, dry_run=env.dry_run)


def _assemble_bare(target: RootfsTarget, env: BuildEnvironment) -> None:
    root = target.mount_path
    dry_run = env.dry_run

    create_skeleton(root, dry_run=dry_run)
    install_busybox(env, root)

    write_file(root / "etc/hostname", env.cfg.hostname + "\n", dry_run=dry_run)
    write_file(root / "etc/fstab", render_fstab(LIVE_FSTAB), dry_run=dry_run)
    create_device_nodes(root / "dev", dry_run=dry_run)

    # Written last: /init doubles as the stage's completion marker.
    write_file(root / "init", InitScript().render(), mode=0o755, dry_run=dry_run)


# -- chroot targets


def _write_sudoers(root: Path, user: str, *, dry_run: bool) -> None:
    write_file(root / "etc/sudoers.d" / user, f"{user} ALL=(ALL) NOPASSWD:ALL\n", mode=0o440, dry_run=dry_run)


def create_user(root: Path, user: str, shell: str, *, dry_run: bool = False) -> None:
    if present(root / "home" / user):
        logger.info("User %s already exists in %s", user, str(root))
    else:
        chroot_cmd(str(root), ["useradd", "-m", "-s", shell, user], dry_run=dry_run)
    _write_sudoers(root, user, dry_run=dry_run)


def enable_debian_locale(root: Path, locale: str, *, dry_run: bool = False) -> None:
    """Uncomment (or add) ``locale`` in /etc/locale.gen and make it the default."""

    charset = locale.split(".", 1)[1] if "." in locale else "UTF-8"
    entry = f"{locale} {charset}"
    locale_gen = root / "etc/locale.gen"
    if dry_run:
        logger.info("Would enable %s in %s", entry, str(locale_gen))
    else:
        text = locale_gen.read_text(encoding="utf-8") if locale_gen.exists() else ""
        pattern = re.compile(rf"^#\s*{re.escape(entry)}\s*$", re.MULTILINE)
        if pattern.search(text):
            text = pattern.sub(entry, text)
        elif entry not in text.splitlines():
            text = text.rstrip("\n") + ("\n" if text else "") + entry + "\n"
        locale_gen.parent.mkdir(parents=True, exist_ok=True)
        locale_gen.write_text(text, encoding="utf-8")
    write_file(root / "etc/default/locale", f"LANG={locale}\n", dry_run=dry_run)


def _assemble_debian(target: RootfsTarget, env: BuildEnvironment) -> None:
    cfg = env.cfg
    root = target.mount_path
    dry_run = env.dry_run

    if present(root / "etc/debian_version"):
        logger.info("Debian %s already bootstrapped in %s", cfg.debian_suite, str(root))
    else:
        if not dry_run:
            root.mkdir(parents=True, exist_ok=True)
        try:
            debootstrap_rootfs(
                target_root=str(root),
                suite=cfg.debian_suite,
                mirror=cfg.debian_mirror,
                arch=cfg.debian_arch,
                dry_run=dry_run,
            )
        except CommandError as e:
            raise BootstrapFailure(f"debootstrap {cfg.debian_suite} failed for {root}") from e

    copy_resolv_conf(str(root), dry_run=dry_run)
    try:
        mount_chroot_binds(str(root), dry_run=dry_run)
        apt_update(str(root), dry_run=dry_run)
        apt_install(str(root), list(target.packages), dry_run=dry_run)
        enable_debian_locale(root, cfg.user_locale, dry_run=dry_run)
        chroot_cmd(str(root), ["locale-gen"], dry_run=dry_run)
        create_user(root, cfg.user_name, cfg.user_shell, dry_run=dry_run)
    finally:
        umount_chroot_binds(str(root), dry_run=dry_run)
        restore_resolv_conf(str(root), dry_run=dry_run)


def _assemble_fedora(target: RootfsTarget, env: BuildEnvironment) -> None:
    cfg = env.cfg
    root = target.mount_path
    dry_run = env.dry_run

    if present(root / "etc/fedora-release"):
        logger.info("Fedora %s already installed in %s", cfg.fedora_release, str(root))
    else:
        if not dry_run:
            root.mkdir(parents=True, exist_ok=True)
        try:
            dnf_installroot(
                target_root=str(root),
                release=cfg.fedora_release,
                packages=list(target.packages),
                dry_run=dry_run,
            )
        except CommandError as e:
            raise BootstrapFailure(f"dnf --installroot failed for Fedora {cfg.fedora_release} at {root}") from e

    copy_resolv_conf(str(root), dry_run=dry_run)
    try:
        mount_chroot_binds(str(root), dry_run=dry_run)
        if cfg.fedora_copr:
            dnf_copr_enable(str(root), cfg.fedora_copr, dry_run=dry_run)
        dnf_install(str(root), cfg.fedora_desktop_packages, dry_run=dry_run)
        write_file(root / "etc/locale.conf", f"LANG={cfg.user_locale}\n", dry_run=dry_run)
        create_user(root, cfg.user_name, cfg.user_shell, dry_run=dry_run)
    finally:
        umount_chroot_binds(str(root), dry_run=dry_run)
        restore_resolv_conf(str(root), dry_run=dry_run)
