from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..build_env import BuildEnvironment
from ..lib.factory_reset import RESET_SCRIPT_PATH, install_reset_tooling


class FactoryResetStage:
    stage_id = "80_factory_reset"
    description = "Snapshot /etc and ship the factory-reset tooling"
    allow_failure = False
    requires_privilege = True

    def marker(self, env: BuildEnvironment) -> Optional[Path]:
        return env.fedora_rootfs / RESET_SCRIPT_PATH

    def run(self, env: BuildEnvironment) -> None:
        install_reset_tooling(env.fedora_rootfs, display_manager=env.cfg.display_manager, dry_run=env.dry_run)
