from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

from myos_builder.build_config import BuildConfig
from myos_builder.build_env import BuildEnvironment
from myos_builder.lib import chroot as chroot_mod
from myos_builder.lib import command as command_mod
from myos_builder.lib import fetch as fetch_mod
from myos_builder.logging_utils import reset_logging


ARCHIVE_SUFFIXES = (".tar.xz", ".tar.bz2", ".tar.gz")


class FakeTools:
    """Stands in for subprocess.run and simulates the outputs of the external tools."""

    def __init__(self) -> None:
        self.calls: List[Tuple[List[str], Optional[str]]] = []
        self.failures: Dict[str, int] = {}

    def fail(self, program: str, returncode: int = 1) -> None:
        self.failures[program] = returncode

    def argv0s(self) -> List[str]:
        return [argv[0] for argv, _ in self.calls]

    def commands(self, program: str) -> List[List[str]]:
        return [argv for argv, _ in self.calls if argv[0] == program]

    def __call__(self, argv, input=None, text=None, stdout=None, stderr=None, cwd=None, env=None):
        argv = list(argv)
        self.calls.append((argv, cwd))
        rc = self.failures.get(argv[0])
        if rc:
            return subprocess.CompletedProcess(argv, rc, "", f"{argv[0]}: simulated failure")
        handler = getattr(self, "_" + argv[0].replace("-", "_"), None)
        if handler is not None:
            handler(argv, cwd)
        return subprocess.CompletedProcess(argv, 0, "", "")

    def _tar(self, argv: List[str], cwd: Optional[str]) -> None:
        archive = Path(argv[argv.index("-xf") + 1])
        dest = Path(argv[argv.index("-C") + 1])
        top = archive.name
        for suffix in ARCHIVE_SUFFIXES:
            if top.endswith(suffix):
                top = top[: -len(suffix)]
        (dest / top).mkdir(parents=True, exist_ok=True)
        (dest / top / "Makefile").write_text("all:\n", encoding="utf-8")

    def _make(self, argv: List[str], cwd: Optional[str]) -> None:
        src = Path(cwd or ".")
        args = argv[1:]
        targets = [a for a in args if not a.startswith("-") and "=" not in a]
        variables = dict(a.split("=", 1) for a in args if "=" in a and not a.startswith("-"))

        if "defconfig" in targets:
            (src / ".config").write_text("# CONFIG_STATIC is not set\nCONFIG_TC=y\n", encoding="utf-8")
        elif "modules_install" in targets:
            version = src.name[len("linux-"):]
            (Path(variables["INSTALL_MOD_PATH"]) / "lib/modules" / version).mkdir(parents=True, exist_ok=True)
        elif "install" in targets:
            prefix = Path(variables["CONFIG_PREFIX"])
            (prefix / "bin").mkdir(parents=True, exist_ok=True)
            (prefix / "bin/busybox").write_bytes(b"\x7fELF busybox")
        elif not targets:
            if src.name.startswith("linux-"):
                bz = src / "arch/x86/boot/bzImage"
                bz.parent.mkdir(parents=True, exist_ok=True)
                bz.write_bytes(b"bzImage")
            else:
                (src / "busybox").write_bytes(b"\x7fELF busybox")

    def _grub_mkrescue(self, argv: List[str], cwd: Optional[str]) -> None:
        out = Path(argv[argv.index("-o") + 1])
        out.write_bytes(b"CD001 fake iso")

    def _debootstrap(self, argv: List[str], cwd: Optional[str]) -> None:
        root = Path(argv[-2])
        (root / "etc").mkdir(parents=True, exist_ok=True)
        (root / "etc/debian_version").write_text("12.0\n", encoding="utf-8")

    def _dnf(self, argv: List[str], cwd: Optional[str]) -> None:
        for a in argv:
            if a.startswith("--installroot="):
                root = Path(a.split("=", 1)[1])
                (root / "etc").mkdir(parents=True, exist_ok=True)
                (root / "etc/fedora-release").write_text("Fedora release 42\n", encoding="utf-8")

    def _git(self, argv: List[str], cwd: Optional[str]) -> None:
        if argv[1] == "clone":
            dest = Path(argv[-1])
            dest.mkdir(parents=True, exist_ok=True)
            (dest / "install.sh").write_text("#!/bin/bash\n", encoding="utf-8")

    def _chroot(self, argv: List[str], cwd: Optional[str]) -> None:
        root = Path(argv[1])
        inner = argv[2:]
        if inner and inner[0] == "useradd":
            (root / "home" / inner[-1]).mkdir(parents=True, exist_ok=True)


class FakeResponse:
    def __init__(self, payload: bytes) -> None:
        self.payload = payload
        self.headers = {"content-length": str(len(payload))}

    def raise_for_status(self) -> None:
        return None

    def iter_content(self, chunk_size: int = 1024) -> Any:
        yield self.payload


class FakeSession:
    def __init__(self) -> None:
        self.urls: List[str] = []

    def get(self, url: str, timeout: float = 0, stream: bool = False) -> FakeResponse:
        self.urls.append(url)
        return FakeResponse(f"archive from {url}".encode("utf-8"))


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    reset_logging()


@pytest.fixture
def fake_tools(monkeypatch) -> FakeTools:
    tools = FakeTools()
    monkeypatch.setattr(command_mod.subprocess, "run", tools)
    return tools


@pytest.fixture
def fake_session(monkeypatch) -> FakeSession:
    session = FakeSession()
    monkeypatch.setattr(fetch_mod, "session", session)
    return session


@pytest.fixture
def fake_mknod(monkeypatch) -> List[Tuple[str, int, int]]:
    """Record mknod calls and leave a regular file in place of the node."""

    made: List[Tuple[str, int, int]] = []

    def _mknod(path, mode=0o600, device=0):
        Path(path).touch()
        made.append((str(path), mode, device))

    monkeypatch.setattr(os, "mknod", _mknod)
    return made


def make_config(tmp_path: Path, **sections: Dict[str, Any]) -> BuildConfig:
    raw: Dict[str, Any] = {
        "paths": {"root": str(tmp_path / "root"), "iso_output": str(tmp_path / "out" / "MyOS_Live.iso")},
        "build": {"jobs": 4, "privilege_required": False},
    }
    for name, values in sections.items():
        raw.setdefault(name, {}).update(values)
    return BuildConfig(raw=raw)


@pytest.fixture
def env(tmp_path) -> BuildEnvironment:
    cfg = make_config(tmp_path)
    cfg.root.mkdir(parents=True, exist_ok=True)
    return BuildEnvironment.from_config(cfg)


@pytest.fixture
def make_cfg(tmp_path):
    def _make(**sections: Dict[str, Any]) -> BuildConfig:
        return make_config(tmp_path, **sections)

    return _make


@pytest.fixture
def host_resolv(tmp_path, monkeypatch) -> Path:
    """A stand-in for the build host's /etc/resolv.conf."""

    path = tmp_path / "host-resolv.conf"
    path.write_text("nameserver 192.0.2.53\n", encoding="utf-8")
    monkeypatch.setattr(chroot_mod, "HOST_RESOLV_CONF", path)
    return path
