from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Dict, Optional

from .pipeline import PipelineResult


def load_build_state(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}
    data = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("build_state.json must contain an object")
    return data


def save_build_state(path: str, state: Dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(state, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def record_run(
    state: Dict[str, Any],
    result: PipelineResult,
    *,
    ok: bool,
    error: Optional[str] = None,
) -> Dict[str, Any]:
    """Store the outcome of the latest run; earlier runs are kept as a short history."""

    run: Dict[str, Any] = {
        "finished_at": time.strftime("%Y-%m-%dT%H:%M:%S%z"),
        "ok": ok,
        "ran": list(result.ran),
        "skipped": list(result.skipped),
        "tolerated": list(result.tolerated),
        "failed": result.failed,
    }
    if error:
        run["error"] = error

    history = state.setdefault("history", [])
    if state.get("last_run"):
        history.append(state["last_run"])
        del history[:-9]
    state["last_run"] = run
    return state
