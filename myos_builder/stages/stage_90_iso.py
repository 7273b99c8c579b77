from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..build_env import BuildEnvironment
from ..lib.iso import GrubConfig, ImageArtifact, MenuEntry, finalize

logger = logging.getLogger(__name__)


class BuildIsoStage:
    stage_id = "90_iso"
    description = "Stage kernel and init, write grub.cfg and master the live ISO"
    allow_failure = False
    requires_privilege = True

    def marker(self, env: BuildEnvironment) -> Optional[Path]:
        return env.iso_output

    def run(self, env: BuildEnvironment) -> None:
        artifact = ImageArtifact(
            kernel_image_path=env.kernel_image,
            init_script_path=env.init_script,
            output_iso_path=env.iso_output,
            bootloader_config=GrubConfig(entries=(MenuEntry(title=env.cfg.image_title),)),
        )
        out = finalize(artifact, env)
        logger.info("Test ISO: qemu-system-x86_64 -cdrom %s -m 4096 -boot d", str(out))
