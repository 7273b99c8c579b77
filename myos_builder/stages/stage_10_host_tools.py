from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..build_env import BuildEnvironment
from ..lib.pkg import dnf_host_install

logger = logging.getLogger(__name__)


class HostToolsStage:
    stage_id = "10_host_tools"
    description = "Install host build tooling with dnf"
    allow_failure = False
    requires_privilege = True

    def marker(self, env: BuildEnvironment) -> Optional[Path]:
        # dnf is a no-op for packages that are already installed.
        return None

    def run(self, env: BuildEnvironment) -> None:
        cfg = env.cfg
        dnf_host_install(cfg.host_packages, groups=cfg.host_groups, dry_run=env.dry_run)
        logger.info("Host tools installed (%d packages, groups=%s)", len(cfg.host_packages), cfg.host_groups)
