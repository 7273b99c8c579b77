from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional

from ..build_env import BuildEnvironment
from ..errors import BuildFailure
from ..lib.cache import present
from ..lib.fetch import extract_archive, fetch_archive
from ..lib.kbuild import make

logger = logging.getLogger(__name__)

BZIMAGE = "arch/x86/boot/bzImage"


class BuildKernelStage:
    stage_id = "20_kernel"
    description = "Download, build and install the Linux kernel"
    allow_failure = False
    requires_privilege = True

    def marker(self, env: BuildEnvironment) -> Optional[Path]:
        return env.kernel_image

    def run(self, env: BuildEnvironment) -> None:
        version = env.cfg.kernel_version
        dry_run = env.dry_run

        archive = fetch_archive(env.cfg.kernel_url, env.sources_dir / f"linux-{version}.tar.xz", dry_run=dry_run)
        src = extract_archive(archive, env.sources_dir, f"linux-{version}", dry_run=dry_run)

        if present(src / ".config"):
            logger.info("Kernel already configured: %s", str(src / ".config"))
        else:
            make(src, ["defconfig"], dry_run=dry_run)

        bzimage = src / BZIMAGE
        if present(bzimage):
            logger.info("Kernel already built: %s", str(bzimage))
        else:
            make(src, jobs=env.jobs, dry_run=dry_run)

        if present(env.root / "lib/modules" / version):
            logger.info("Kernel modules already installed for %s", version)
        else:
            make(src, ["modules_install"], variables={"INSTALL_MOD_PATH": str(env.root)}, dry_run=dry_run)

        if dry_run:
            logger.info("Would copy %s -> %s", str(bzimage), str(env.kernel_image))
            return
        if not bzimage.is_file():
            raise BuildFailure(f"Kernel build produced no {BZIMAGE} in {src}")
        env.boot_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(bzimage, env.kernel_image)
        logger.info("Kernel installed: %s", str(env.kernel_image))
