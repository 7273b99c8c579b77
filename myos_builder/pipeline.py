from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence

from .build_env import BuildEnvironment
from .errors import PermissionDenied, StageFailure, exit_status_of
from .lib.cache import present
from .lib.privilege import require_privilege

logger = logging.getLogger(__name__)


class Stage(Protocol):
    """A single idempotent stage."""

    stage_id: str
    description: str
    allow_failure: bool
    requires_privilege: bool

    def marker(self, env: BuildEnvironment) -> Optional[Path]:
        """Path whose presence means the stage's output already exists."""
        ...

    def run(self, env: BuildEnvironment) -> None:
        ...


@dataclass(frozen=True)
class CallableStage:
    stage_id: str
    action: Callable[[BuildEnvironment], None]
    skip_if_present: Optional[Path] = None
    description: str = ""
    allow_failure: bool = False
    requires_privilege: bool = False

    def marker(self, env: BuildEnvironment) -> Optional[Path]:
        return self.skip_if_present

    def run(self, env: BuildEnvironment) -> None:
        self.action(env)


@dataclass
class PipelineResult:
    ran: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    tolerated: List[str] = field(default_factory=list)
    failed: Optional[str] = None


def select_stages(
    stages: Sequence[Stage],
    *,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
) -> List[Stage]:
    ids = [s.stage_id for s in stages]
    for name, value in (("start_at", start_at), ("stop_after", stop_after)):
        if value is not None and value not in ids:
            raise ValueError(f"Unknown stage for {name}: {value!r} (known: {', '.join(ids)})")

    first = ids.index(start_at) if start_at else 0
    last = ids.index(stop_after) if stop_after else len(ids) - 1
    if last < first:
        raise ValueError(f"stop_after={stop_after!r} comes before start_at={start_at!r}")
    return list(stages[first : last + 1])


def run_pipeline(
    *,
    env: BuildEnvironment,
    stages: Sequence[Stage],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
    check_privilege: bool = True,
    result: Optional[PipelineResult] = None,
) -> PipelineResult:
    """Run stages in order, skipping those whose marker exists.

    A failing stage stops the run with StageFailure unless it allows failure.
    Outcomes are collected into ``result`` when given, so a caller still has
    them after a failure.
    """

    selected = select_stages(stages, start_at=start_at, stop_after=stop_after)
    if result is None:
        result = PipelineResult()

    privileged = [s for s in selected if s.requires_privilege]
    if check_privilege and privileged:
        try:
            require_privilege(dry_run=env.dry_run)
        except PermissionDenied as e:
            logger.error("Privilege check failed before %s: %s", privileged[0].stage_id, e)
            result.failed = privileged[0].stage_id
            raise StageFailure(privileged[0].stage_id, 1, str(e)) from e

    for stage in selected:
        sid = stage.stage_id
        logger.info("Stage %s started: %s", sid, stage.description)

        marker = stage.marker(env)
        if not force and present(marker):
            logger.info("Stage %s skipped (%s present)", sid, str(marker))
            result.skipped.append(sid)
            continue

        try:
            stage.run(env)
        except Exception as e:
            if stage.allow_failure:
                logger.error("Stage %s failed (tolerated): %s", sid, e)
                result.tolerated.append(sid)
                continue
            logger.error("Stage %s failed: %s", sid, e)
            result.failed = sid
            raise StageFailure(sid, exit_status_of(e), f"Stage {sid} failed: {e}") from e

        logger.info("Stage %s succeeded", sid)
        result.ran.append(sid)

    return result
