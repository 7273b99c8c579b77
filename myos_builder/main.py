from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .build_config import BuildConfig, load_build_config
from .build_env import BuildEnvironment
from .build_state import load_build_state, record_run, save_build_state
from .errors import StageFailure
from .logging_utils import configure_logging
from .pipeline import PipelineResult, Stage, run_pipeline, select_stages
from .stages import (
    BareRootfsStage,
    BuildIsoStage,
    BuildKernelStage,
    DebianRootfsStage,
    FactoryResetStage,
    FedoraRootfsStage,
    HostToolsStage,
    ThemeStage,
    WineStage,
)

logger = logging.getLogger(__name__)


def build_stages(cfg: BuildConfig) -> List[Stage]:
    stages: List[Stage] = [
        HostToolsStage(),
        BuildKernelStage(),
        BareRootfsStage(),
        DebianRootfsStage(),
        FedoraRootfsStage(),
        ThemeStage(),
        WineStage(),
        FactoryResetStage(),
        BuildIsoStage(),
    ]
    disabled = set(cfg.disabled_stages)
    unknown = disabled - {s.stage_id for s in stages}
    if unknown:
        raise ValueError(f"Unknown stages in pipeline.disabled_stages: {', '.join(sorted(unknown))}")
    return [s for s in stages if s.stage_id not in disabled]


def run(
    *,
    cfg: BuildConfig,
    root: Optional[Path] = None,
    log_path: Optional[Path] = None,
    error_log_path: Optional[Path] = None,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
    dry_run: bool = False,
    stages: Optional[Sequence[Stage]] = None,
    also_console: bool = True,
) -> PipelineResult:
    """Run the build pipeline and record the outcome in build_state.json."""

    env = BuildEnvironment.from_config(
        cfg, root=root, log_path=log_path, error_log_path=error_log_path, dry_run=dry_run
    )
    configure_logging(str(env.log_path), str(env.error_log_path), also_console=also_console)

    if stages is None:
        stages = build_stages(cfg)

    logger.info("=== MyOS build started (root=%s, jobs=%d, dry_run=%s) ===", str(env.root), env.jobs, dry_run)

    try:
        state = load_build_state(str(env.state_path))
    except ValueError as e:
        # The record is rewritten at the end of this run.
        logger.warning("Ignoring unreadable %s: %s", str(env.state_path), e)
        state = {}
    result = PipelineResult()
    try:
        run_pipeline(
            env=env,
            stages=stages,
            start_at=start_at,
            stop_after=stop_after,
            force=force,
            check_privilege=cfg.privilege_required,
            result=result,
        )
    except StageFailure as e:
        logger.error("=== MyOS build failed at stage %s (exit status %d) ===", e.stage_id, e.exit_status)
        record_run(state, result, ok=False, error=str(e))
        raise
    else:
        record_run(state, result, ok=True)
    finally:
        save_build_state(str(env.state_path), state)

    logger.info(
        "=== MyOS build completed (ran=%d skipped=%d tolerated=%s) ===",
        len(result.ran),
        len(result.skipped),
        result.tolerated or "none",
    )
    return result


def _print_stages(stages: Sequence[Stage]) -> None:
    for s in stages:
        flags = []
        if s.requires_privilege:
            flags.append("root")
        if s.allow_failure:
            flags.append("best-effort")
        print(f"{s.stage_id:<20} [{','.join(flags) or '-'}] {s.description}")


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="myos-build", description="Build the MyOS Ultimate live ISO")
    p.add_argument("--config", default=None, help="Path to build_config.yaml (defaults are used when omitted)")
    p.add_argument("--root", default=None, help="Build root (default: paths.root, $MYOS_ROOT or ~/MyOSUltimate)")
    p.add_argument("--log", default=None, help="General build log (default: <root>/build.log)")
    p.add_argument("--error-log", default=None, help="Error-only log (default: <root>/build_error.log)")
    p.add_argument("--start-at", default=None, help="Start at stage_id (e.g. 30_bare_rootfs)")
    p.add_argument("--stop-after", default=None, help="Stop after stage_id")
    p.add_argument("--force", action="store_true", help="Re-run stages even if their output exists")
    p.add_argument("--dry-run", action="store_true", help="Log commands without running them")
    p.add_argument("--list-stages", action="store_true", help="Print the stage plan and exit")

    args = p.parse_args(argv)

    try:
        cfg = load_build_config(args.config)
        stages = build_stages(cfg)
    except (FileNotFoundError, ValueError) as e:
        p.error(f"invalid build config: {e}")

    if args.list_stages:
        _print_stages(stages)
        return 0

    try:
        select_stages(stages, start_at=args.start_at, stop_after=args.stop_after)
    except ValueError as e:
        print(f"myos-build: {e}", file=sys.stderr)
        return 2

    try:
        run(
            cfg=cfg,
            root=Path(args.root).expanduser() if args.root else None,
            log_path=Path(args.log) if args.log else None,
            error_log_path=Path(args.error_log) if args.error_log else None,
            start_at=args.start_at,
            stop_after=args.stop_after,
            force=bool(args.force),
            dry_run=bool(args.dry_run),
            stages=stages,
        )
    except StageFailure as e:
        print(f"myos-build: {e}", file=sys.stderr)
        return e.exit_status
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
