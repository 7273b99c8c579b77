import os
import shutil
import stat

import pytest

from myos_builder.lib.assets import snapshot_tree
from myos_builder.lib.factory_reset import (
    DESKTOP_ENTRY_PATH,
    FACTORY_ETC,
    RESET_SCRIPT_PATH,
    install_reset_tooling,
    render_reset_script,
)


@pytest.fixture
def rootfs(tmp_path):
    root = tmp_path / "fedora42-rootfs"
    (root / "etc/gdm").mkdir(parents=True)
    (root / "etc/hostname").write_text("myos\n", encoding="utf-8")
    (root / "etc/gdm/custom.conf").write_text("[daemon]\n", encoding="utf-8")
    os.symlink("../usr/share/zoneinfo/UTC", root / "etc/localtime")
    return root


def test_snapshot_matches_etc_at_snapshot_time(rootfs):
    install_reset_tooling(rootfs)
    (rootfs / "etc/added-later.conf").write_text("x\n", encoding="utf-8")

    factory = rootfs / FACTORY_ETC
    assert (factory / "hostname").read_text(encoding="utf-8") == "myos\n"
    assert (factory / "gdm/custom.conf").is_file()
    assert not (factory / "added-later.conf").exists()
    assert not (factory / "etc").exists()


def test_snapshot_keeps_symlinks(rootfs):
    install_reset_tooling(rootfs)

    link = rootfs / FACTORY_ETC / "localtime"
    assert link.is_symlink()
    assert os.readlink(link) == "../usr/share/zoneinfo/UTC"


def test_existing_snapshot_is_not_replaced(rootfs):
    install_reset_tooling(rootfs)
    (rootfs / "etc/hostname").write_text("changed\n", encoding="utf-8")

    assert snapshot_tree(str(rootfs / "etc"), str(rootfs / FACTORY_ETC)) is False
    assert (rootfs / FACTORY_ETC / "hostname").read_text(encoding="utf-8") == "myos\n"


def test_snapshot_requires_source_tree(tmp_path):
    with pytest.raises(FileNotFoundError):
        snapshot_tree(str(tmp_path / "missing"), str(tmp_path / "copy"))


def test_reset_script_and_launcher(rootfs):
    install_reset_tooling(rootfs, display_manager="sddm")

    script = rootfs / RESET_SCRIPT_PATH
    assert stat.S_IMODE(script.stat().st_mode) == 0o755
    text = script.read_text(encoding="utf-8")
    assert text.startswith("#!/bin/bash\n")
    assert "systemctl restart sddm" in text
    assert "cp -a /etc.factory/. /etc/" in text

    entry = (rootfs / DESKTOP_ENTRY_PATH).read_text(encoding="utf-8")
    assert entry.startswith("[Desktop Entry]\n")
    assert f"Exec=pkexec /{RESET_SCRIPT_PATH}" in entry


def test_reset_script_asks_before_erasing():
    text = render_reset_script(display_manager="gdm")

    confirm = text.index("zenity --question")
    password = text.index("zenity --password")
    wipe = text.index("rm -rf")
    assert confirm < password < wipe
    assert 'if [ "$EUID" -ne 0 ]' in text


def test_interrupted_snapshot_is_redone_in_full(tmp_path, monkeypatch):
    root = tmp_path / "rootfs"
    (root / "etc").mkdir(parents=True)
    for name in ("a.conf", "b.conf", "c.conf"):
        (root / "etc" / name).write_text(name, encoding="utf-8")

    real_copy2 = shutil.copy2

    def flaky_copy2(src, dst, **kwargs):
        if os.path.basename(src) == "b.conf":
            raise OSError("disk full")
        return real_copy2(src, dst, **kwargs)

    monkeypatch.setattr(shutil, "copy2", flaky_copy2)
    with pytest.raises(OSError):
        install_reset_tooling(root)
    assert not os.path.lexists(root / FACTORY_ETC)
    assert not os.path.lexists(root / f".{FACTORY_ETC}.partial")

    monkeypatch.setattr(shutil, "copy2", real_copy2)
    install_reset_tooling(root)
    assert sorted(os.listdir(root / FACTORY_ETC)) == ["a.conf", "b.conf", "c.conf"]
