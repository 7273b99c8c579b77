from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .build_config import BuildConfig


@dataclass(frozen=True)
class BuildEnvironment:
    """Everything a stage needs to know about the current build.

    Created once per run and handed to every stage.
    """

    cfg: BuildConfig
    root: Path
    jobs: int
    log_path: Path
    error_log_path: Path
    dry_run: bool = False

    @classmethod
    def from_config(
        cls,
        cfg: BuildConfig,
        *,
        root: Path | None = None,
        log_path: Path | None = None,
        error_log_path: Path | None = None,
        dry_run: bool = False,
    ) -> "BuildEnvironment":
        r = Path(root) if root else cfg.root
        return cls(
            cfg=cfg,
            root=r,
            jobs=cfg.jobs,
            log_path=Path(log_path) if log_path else r / "build.log",
            error_log_path=Path(error_log_path) if error_log_path else r / "build_error.log",
            dry_run=dry_run,
        )

    @property
    def sources_dir(self) -> Path:
        return self.root / "sources"

    @property
    def boot_dir(self) -> Path:
        return self.root / "boot"

    @property
    def kernel_image(self) -> Path:
        return self.boot_dir / f"vmlinuz-{self.cfg.kernel_version}"

    @property
    def init_script(self) -> Path:
        return self.root / "init"

    @property
    def debian_rootfs(self) -> Path:
        return self.root / "debian-rootfs"

    @property
    def fedora_rootfs(self) -> Path:
        return self.root / f"fedora{self.cfg.fedora_release}-rootfs"

    @property
    def iso_dir(self) -> Path:
        return self.root / "iso"

    @property
    def iso_output(self) -> Path:
        return self.cfg.iso_output

    @property
    def state_path(self) -> Path:
        return self.root / "build_state.json"
