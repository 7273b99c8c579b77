from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..build_env import BuildEnvironment
from ..lib.rootfs import assemble, target_for


class DebianRootfsStage:
    stage_id = "40_debian_rootfs"
    description = "Bootstrap the Debian chroot and set up its user"
    allow_failure = False
    requires_privilege = True

    def marker(self, env: BuildEnvironment) -> Optional[Path]:
        # The sudoers entry is the last thing the post-install sequence writes.
        return env.debian_rootfs / "etc/sudoers.d" / env.cfg.user_name

    def run(self, env: BuildEnvironment) -> None:
        assemble(target_for("debian-chroot", env), env)
