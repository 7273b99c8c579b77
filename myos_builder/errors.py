from __future__ import annotations

from typing import Optional, Sequence


class BuildError(RuntimeError):
    """Base class for every failure the builder reports."""


class PermissionDenied(BuildError):
    pass


class CommandError(BuildError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"Command failed ({returncode}): {' '.join(self.argv)}\n{stderr}".rstrip())


class DownloadFailure(BuildError):
    pass


class ExtractionFailure(BuildError):
    pass


class BuildFailure(BuildError):
    pass


class AssemblyError(BuildError):
    pass


class BootstrapFailure(AssemblyError):
    pass


class FinalizeFailure(BuildError):
    pass


class StageFailure(BuildError):
    """A mandatory stage failed; the pipeline stopped at ``stage_id``."""

    def __init__(self, stage_id: str, exit_status: int = 1, message: Optional[str] = None) -> None:
        self.stage_id = stage_id
        self.exit_status = exit_status or 1
        super().__init__(message or f"Stage {stage_id} failed (exit status {self.exit_status})")


def exit_status_of(exc: BaseException) -> int:
    """Walk the cause chain for the first failing command's return code."""

    seen = set()
    cur: Optional[BaseException] = exc
    while cur is not None and id(cur) not in seen:
        seen.add(id(cur))
        if isinstance(cur, CommandError) and cur.returncode:
            # Killed by a signal: report it the way a shell would.
            return cur.returncode if cur.returncode > 0 else 128 - cur.returncode
        cur = cur.__cause__ or cur.__context__
    return 1
