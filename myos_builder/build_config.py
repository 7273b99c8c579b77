from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

DEFAULT_KERNEL_VERSION = "6.17.1"
DEFAULT_BUSYBOX_VERSION = "1.36.1"

DEFAULT_HOST_GROUPS = ["Development Tools"]
DEFAULT_HOST_PACKAGES = [
    "wget", "curl", "git", "xorriso", "grub2-tools", "grub2-tools-extra", "grub2-pc-modules",
    "debootstrap", "bc", "bison", "flex", "gawk", "m4", "texinfo", "elfutils-libelf-devel",
    "openssl-devel", "ncurses-devel", "perl", "python3", "cpio",
]
DEFAULT_DEBIAN_PACKAGES = ["sudo", "tasksel", "gnupg", "lsb-release", "locales"]
DEFAULT_FEDORA_PACKAGES = [
    "dnf", "dnf-plugins-core", "fedora-release", "glibc-langpack-en", "passwd", "sudo", "vim", "nano",
    "wget", "curl", "git", "zenity", "wine", "winetricks", "protontricks", "bottles", "cabextract",
    "zsh", "htop", "tmux", "NetworkManager",
]
DEFAULT_FEDORA_DESKTOP = ["gnome-shell", "gdm", "nautilus", "mutter", "gnome-control-center", "gnome-session"]


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"build config section {name!r} must be a mapping")
    return value


@dataclass(frozen=True)
class BuildConfig:
    raw: Dict[str, Any]

    # -- paths

    @property
    def root(self) -> Path:
        configured = _section(self.raw, "paths").get("root")
        if configured:
            return Path(str(configured)).expanduser()
        env_root = os.environ.get("MYOS_ROOT")
        if env_root:
            return Path(env_root).expanduser()
        return Path.home() / "MyOSUltimate"

    @property
    def iso_output(self) -> Path:
        configured = _section(self.raw, "paths").get("iso_output")
        return Path(str(configured)).expanduser() if configured else Path.home() / "MyOSUltimate_Live.iso"

    # -- build

    @property
    def jobs(self) -> int:
        return int(_section(self.raw, "build").get("jobs") or os.cpu_count() or 1)

    @property
    def privilege_required(self) -> bool:
        return bool(_section(self.raw, "build").get("privilege_required", True))

    # -- sources

    @property
    def kernel_version(self) -> str:
        return str(_section(self.raw, "kernel").get("version") or DEFAULT_KERNEL_VERSION)

    @property
    def kernel_url(self) -> str:
        v = self.kernel_version
        return str(
            _section(self.raw, "kernel").get("url")
            or f"https://cdn.kernel.org/pub/linux/kernel/v{v.split('.')[0]}.x/linux-{v}.tar.xz"
        )

    @property
    def busybox_version(self) -> str:
        return str(_section(self.raw, "busybox").get("version") or DEFAULT_BUSYBOX_VERSION)

    @property
    def busybox_url(self) -> str:
        v = self.busybox_version
        return str(_section(self.raw, "busybox").get("url") or f"https://busybox.net/downloads/busybox-{v}.tar.bz2")

    # -- host

    @property
    def host_groups(self) -> List[str]:
        return list(_section(self.raw, "host").get("groups") or DEFAULT_HOST_GROUPS)

    @property
    def host_packages(self) -> List[str]:
        return list(_section(self.raw, "host").get("packages") or DEFAULT_HOST_PACKAGES)

    # -- debian

    @property
    def debian_suite(self) -> str:
        return str(_section(self.raw, "debian").get("suite") or "bookworm")

    @property
    def debian_mirror(self) -> str:
        return str(_section(self.raw, "debian").get("mirror") or "http://deb.debian.org/debian/")

    @property
    def debian_arch(self) -> str:
        return str(_section(self.raw, "debian").get("arch") or "amd64")

    @property
    def debian_packages(self) -> List[str]:
        return list(_section(self.raw, "debian").get("packages") or DEFAULT_DEBIAN_PACKAGES)

    # -- fedora

    @property
    def fedora_release(self) -> str:
        return str(_section(self.raw, "fedora").get("release") or "42")

    @property
    def fedora_packages(self) -> List[str]:
        return list(_section(self.raw, "fedora").get("packages") or DEFAULT_FEDORA_PACKAGES)

    @property
    def fedora_copr(self) -> Optional[str]:
        fedora = _section(self.raw, "fedora")
        if "copr" in fedora:
            return str(fedora["copr"]) if fedora["copr"] else None
        return "gnome-49/gnome-49"

    @property
    def fedora_desktop_packages(self) -> List[str]:
        return list(_section(self.raw, "fedora").get("desktop_packages") or DEFAULT_FEDORA_DESKTOP)

    # -- user

    @property
    def user_name(self) -> str:
        return str(_section(self.raw, "user").get("name") or "user")

    @property
    def user_shell(self) -> str:
        return str(_section(self.raw, "user").get("shell") or "/bin/bash")

    @property
    def user_locale(self) -> str:
        return str(_section(self.raw, "user").get("locale") or "en_US.UTF-8")

    # -- theme

    @property
    def theme_repo(self) -> str:
        return str(
            _section(self.raw, "theme").get("repo") or "https://github.com/vinceliuice/WhiteSur-gtk-theme.git"
        )

    @property
    def theme_name(self) -> str:
        return str(_section(self.raw, "theme").get("name") or "WhiteSur")

    # -- image

    @property
    def hostname(self) -> str:
        return str(_section(self.raw, "image").get("hostname") or "myos")

    @property
    def image_title(self) -> str:
        return str(_section(self.raw, "image").get("title") or f"MyOS Ultimate {self.kernel_version} (live)")

    @property
    def display_manager(self) -> str:
        return str(_section(self.raw, "image").get("display_manager") or "gdm")

    # -- pipeline

    @property
    def disabled_stages(self) -> List[str]:
        return [str(s) for s in (_section(self.raw, "pipeline").get("disabled_stages") or [])]


def load_build_config(path: Optional[str]) -> BuildConfig:
    """Load a YAML build config; ``None`` gives the built-in defaults."""

    if path is None:
        return BuildConfig(raw={})

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("build config must be YAML")

    try:
        import yaml  # type: ignore
    except Exception as e:
        raise RuntimeError("PyYAML is required to read build_config.yaml") from e

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError("build_config.yaml must contain a mapping/object")

    return BuildConfig(raw=raw)
