from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..build_env import BuildEnvironment
from ..lib.rootfs import assemble, target_for


class BareRootfsStage:
    stage_id = "30_bare_rootfs"
    description = "Assemble the busybox live root filesystem"
    allow_failure = False
    requires_privilege = True

    def marker(self, env: BuildEnvironment) -> Optional[Path]:
        return env.init_script

    def run(self, env: BuildEnvironment) -> None:
        assemble(target_for("bare", env), env)
