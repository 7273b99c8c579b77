from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..build_env import BuildEnvironment
from ..lib.chroot import chroot_script, mount_chroot_binds, umount_chroot_binds
from ..lib.fetch import git_clone

logger = logging.getLogger(__name__)


class ThemeStage:
    stage_id = "60_theme"
    description = "Install the GTK theme into the Fedora chroot"
    allow_failure = True
    requires_privilege = True

    def marker(self, env: BuildEnvironment) -> Optional[Path]:
        return env.fedora_rootfs / "usr/share/themes" / f"{env.cfg.theme_name}-Dark"

    def run(self, env: BuildEnvironment) -> None:
        name = env.cfg.theme_name
        rel_checkout = f"opt/{name}-gtk-theme"
        git_clone(env.cfg.theme_repo, env.fedora_rootfs / rel_checkout, dry_run=env.dry_run)

        root = str(env.fedora_rootfs)
        mount_chroot_binds(root, dry_run=env.dry_run)
        try:
            chroot_script(root, f"cd /{rel_checkout} && ./install.sh -d /usr/share/themes", dry_run=env.dry_run)
        finally:
            umount_chroot_binds(root, dry_run=env.dry_run)
        logger.info("Theme %s installed", name)
