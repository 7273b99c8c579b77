from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass
from pathlib import Path

from .assets import snapshot_tree, write_file

logger = logging.getLogger(__name__)

RESET_SCRIPT_PATH = "usr/local/bin/reset-to-factory.sh"
DESKTOP_ENTRY_PATH = "usr/share/applications/reset-to-factory.desktop"
FACTORY_ETC = "etc.factory"


@dataclass(frozen=True)
class DesktopEntry:
    name: str
    exec_cmd: str
    comment: str = ""
    icon: str = "system-reboot"
    categories: str = "System;Settings;"
    terminal: bool = False

    def render(self) -> str:
        lines = [
            "[Desktop Entry]",
            "Type=Application",
            f"Name={self.name}",
        ]
        if self.comment:
            lines.append(f"Comment={self.comment}")
        lines += [
            f"Exec={self.exec_cmd}",
            f"Icon={self.icon}",
            f"Terminal={'true' if self.terminal else 'false'}",
            f"Categories={self.categories}",
        ]
        return "\n".join(lines) + "\n"


def render_reset_script(*, display_manager: str, factory_dir: str = "/" + FACTORY_ETC) -> str:
    """Shell script shipped in the image. It is not run at build time."""

    dm = shlex.quote(display_manager)
    factory = shlex.quote(factory_dir)
    return f"""#!/bin/bash
if [ "$EUID" -ne 0 ]; then
  zenity --error --text="Root privileges required!"
  exit 1
fi

if ! zenity --question --text="All user data will be erased! Continue?" --ok-label="Yes" --cancel-label="No"; then
  exit 0
fi

PASSWORD=$(zenity --password --title="Confirm Admin Password") || exit 0
if ! printf '%s\\n' "$PASSWORD" | sudo -S -k true 2>/dev/null; then
  zenity --error --text="Wrong password"
  exit 1
fi

if [ ! -d {factory} ]; then
  zenity --error --text="Factory snapshot {factory_dir} is missing"
  exit 1
fi

find /home -mindepth 1 -maxdepth 1 -exec rm -rf {{}} +
cp -a {factory}/. /etc/
systemctl restart {dm}
zenity --info --text="OS has been reset to factory settings."
"""


def install_reset_tooling(rootfs: Path, *, display_manager: str = "gdm", dry_run: bool = False) -> None:
    """Snapshot /etc and ship the reset script plus its launcher into ``rootfs``."""

    rootfs = Path(rootfs)
    snapshot_tree(str(rootfs / "etc"), str(rootfs / FACTORY_ETC), dry_run=dry_run)

    write_file(
        rootfs / RESET_SCRIPT_PATH,
        render_reset_script(display_manager=display_manager),
        mode=0o755,
        dry_run=dry_run,
    )
    entry = DesktopEntry(
        name="Reset to Factory Settings",
        comment="Erase user data and restore the original system configuration",
        exec_cmd=f"pkexec /{RESET_SCRIPT_PATH}",
    )
    write_file(rootfs / DESKTOP_ENTRY_PATH, entry.render(), dry_run=dry_run)
    logger.info("Factory reset tooling installed into %s", str(rootfs))
