from __future__ import annotations

import hashlib
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

from ..build_env import BuildEnvironment
from ..errors import CommandError, FinalizeFailure
from .assets import write_file
from .command import run_cmd

logger = logging.getLogger(__name__)

# Fixed locations inside the ISO tree; grub.cfg refers to them verbatim.
ISO_KERNEL_PATH = "boot/vmlinuz"
ISO_INIT_PATH = "init"
ISO_GRUB_CFG_PATH = "boot/grub/grub.cfg"


@dataclass(frozen=True)
class MenuEntry:
    title: str
    kernel: str = "/" + ISO_KERNEL_PATH
    initrd: str = "/" + ISO_INIT_PATH
    cmdline: str = ""

    def render(self) -> str:
        linux = f"    linux {self.kernel}"
        if self.cmdline:
            linux += f" {self.cmdline}"
        title = self.title.replace('"', "'")
        return f'menuentry "{title}" {{\n{linux}\n    initrd {self.initrd}\n}}\n'


@dataclass(frozen=True)
class GrubConfig:
    entries: Tuple[MenuEntry, ...]
    timeout: int = 5
    default: int = 0

    def render(self) -> str:
        head = f"set timeout={self.timeout}\nset default={self.default}\n"
        return head + "".join(e.render() for e in self.entries)


@dataclass(frozen=True)
class ImageArtifact:
    kernel_image_path: Path
    init_script_path: Path
    output_iso_path: Path
    bootloader_config: GrubConfig = field(default_factory=lambda: GrubConfig(entries=(MenuEntry(title="MyOS"),)))


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def finalize(artifact: ImageArtifact, env: BuildEnvironment) -> Path:
    """Stage kernel + init under the ISO tree, write grub.cfg and master the ISO."""

    iso_dir = env.iso_dir
    out = Path(artifact.output_iso_path)
    dry_run = env.dry_run

    if not dry_run:
        for label, p in (("kernel image", artifact.kernel_image_path), ("init payload", artifact.init_script_path)):
            if not Path(p).is_file():
                raise FinalizeFailure(f"Missing {label}: {p}")

    if dry_run:
        logger.info("Would stage %s and %s into %s", artifact.kernel_image_path, artifact.init_script_path, iso_dir)
    else:
        (iso_dir / "boot/grub").mkdir(parents=True, exist_ok=True)
        shutil.copy2(artifact.kernel_image_path, iso_dir / ISO_KERNEL_PATH)
        shutil.copy2(artifact.init_script_path, iso_dir / ISO_INIT_PATH)
    write_file(iso_dir / ISO_GRUB_CFG_PATH, artifact.bootloader_config.render(), dry_run=dry_run)

    if not dry_run:
        out.parent.mkdir(parents=True, exist_ok=True)
    try:
        run_cmd(["grub-mkrescue", "-o", str(out), str(iso_dir)], dry_run=dry_run)
    except CommandError as e:
        out.unlink(missing_ok=True)
        raise FinalizeFailure(f"grub-mkrescue failed for {iso_dir}") from e

    if dry_run:
        return out

    if not out.is_file() or out.stat().st_size == 0:
        out.unlink(missing_ok=True)
        raise FinalizeFailure(f"grub-mkrescue produced no ISO at {out}")

    sums = out.with_name(out.name + ".sha256")
    sums.write_text(f"{sha256_file(out)}  {out.name}\n", encoding="utf-8")
    logger.info("ISO written: %s", str(out))
    return out
