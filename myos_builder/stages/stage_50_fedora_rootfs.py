from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..build_env import BuildEnvironment
from ..lib.rootfs import assemble, target_for


class FedoraRootfsStage:
    stage_id = "50_fedora_rootfs"
    description = "Install the Fedora chroot with the GNOME desktop"
    allow_failure = False
    requires_privilege = True

    def marker(self, env: BuildEnvironment) -> Optional[Path]:
        return env.fedora_rootfs / "etc/sudoers.d" / env.cfg.user_name

    def run(self, env: BuildEnvironment) -> None:
        assemble(target_for("fedora-chroot", env), env)
