from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import Optional

from ..build_env import BuildEnvironment
from ..lib.assets import write_file
from ..lib.chroot import chroot_script, mount_chroot_binds, umount_chroot_binds

logger = logging.getLogger(__name__)

DRIVER_HELPER_PATH = "usr/local/bin/install-windows-driver.sh"

DRIVER_HELPER = """#!/bin/bash
zenity --info --text="Select INF driver file to install..."
DRIVER=$(zenity --file-selection --file-filter="*.inf")
if [ -n "$DRIVER" ]; then
    wine rundll32 setupapi.dll,InstallHinfSection DefaultInstall 132 "$DRIVER"
    zenity --info --text="Driver installed via Wine!"
fi
"""


class WineStage:
    stage_id = "70_wine"
    description = "Prepare Wine/Bottles and the INF driver helper in the Fedora chroot"
    allow_failure = True
    requires_privilege = True

    def marker(self, env: BuildEnvironment) -> Optional[Path]:
        return env.fedora_rootfs / DRIVER_HELPER_PATH

    def run(self, env: BuildEnvironment) -> None:
        user = shlex.quote(env.cfg.user_name)
        root = str(env.fedora_rootfs)
        script = "\n".join(
            [
                f"install -d -o {user} -g {user} /home/{user}/WindowsDrivers",
                f"runuser -u {user} -- wineboot -i",
                f"runuser -u {user} -- bottles-cli new --bottle-name DefaultBottle --environment gaming",
            ]
        )

        mount_chroot_binds(root, dry_run=env.dry_run)
        try:
            chroot_script(root, script, dry_run=env.dry_run)
        finally:
            umount_chroot_binds(root, dry_run=env.dry_run)

        write_file(env.fedora_rootfs / DRIVER_HELPER_PATH, DRIVER_HELPER, mode=0o755, dry_run=env.dry_run)
        logger.info("Wine prefix and driver helper ready for %s", env.cfg.user_name)
