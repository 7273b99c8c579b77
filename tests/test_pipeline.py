import logging

import pytest

from myos_builder.errors import CommandError, PermissionDenied, StageFailure
from myos_builder.lib import privilege
from myos_builder.pipeline import CallableStage, PipelineResult, run_pipeline, select_stages


def _stage(stage_id, calls, *, marker=None, fail=None, allow_failure=False, requires_privilege=False):
    def _action(env):
        calls.append(stage_id)
        if fail is not None:
            raise fail

    return CallableStage(
        stage_id=stage_id,
        action=_action,
        skip_if_present=marker,
        description=f"stage {stage_id}",
        allow_failure=allow_failure,
        requires_privilege=requires_privilege,
    )


def test_stages_run_in_declared_order(env):
    calls = []
    stages = [_stage(s, calls) for s in ("a", "b", "c")]

    result = run_pipeline(env=env, stages=stages)

    assert calls == ["a", "b", "c"]
    assert result.ran == ["a", "b", "c"]
    assert result.skipped == []


def test_stage_is_skipped_when_marker_exists(env, tmp_path):
    marker = tmp_path / "done"
    marker.write_text("x", encoding="utf-8")
    calls = []

    result = run_pipeline(env=env, stages=[_stage("a", calls, marker=marker), _stage("b", calls)])

    assert calls == ["b"]
    assert result.skipped == ["a"]
    assert result.ran == ["b"]


def test_force_ignores_markers(env, tmp_path):
    marker = tmp_path / "done"
    marker.write_text("x", encoding="utf-8")
    calls = []

    run_pipeline(env=env, stages=[_stage("a", calls, marker=marker)], force=True)

    assert calls == ["a"]


def test_mandatory_failure_stops_the_pipeline(env):
    calls = []
    stages = [
        _stage("a", calls),
        _stage("b", calls, fail=CommandError(["make"], 2, "boom")),
        _stage("c", calls),
    ]
    result = PipelineResult()

    with pytest.raises(StageFailure) as excinfo:
        run_pipeline(env=env, stages=stages, result=result)

    assert calls == ["a", "b"]
    assert excinfo.value.stage_id == "b"
    assert excinfo.value.exit_status == 2
    assert isinstance(excinfo.value.__cause__, CommandError)
    assert result.failed == "b"
    assert result.ran == ["a"]


def test_failure_without_command_exit_status_reports_one(env):
    calls = []
    with pytest.raises(StageFailure) as excinfo:
        run_pipeline(env=env, stages=[_stage("a", calls, fail=RuntimeError("nope"))])
    assert excinfo.value.exit_status == 1


def test_allow_failure_stage_is_logged_and_skipped_over(env, caplog):
    calls = []
    stages = [
        _stage("theme", calls, fail=RuntimeError("install.sh exploded"), allow_failure=True),
        _stage("iso", calls),
    ]

    with caplog.at_level(logging.INFO):
        result = run_pipeline(env=env, stages=stages)

    assert calls == ["theme", "iso"]
    assert result.tolerated == ["theme"]
    assert result.ran == ["iso"]
    errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
    assert any("theme" in r.getMessage() and "tolerated" in r.getMessage() for r in errors)


def test_stage_outcomes_are_logged(env, tmp_path, caplog):
    marker = tmp_path / "m"
    marker.touch()
    calls = []

    with caplog.at_level(logging.INFO):
        run_pipeline(env=env, stages=[_stage("a", calls, marker=marker), _stage("b", calls)])

    messages = [r.getMessage() for r in caplog.records]
    assert any(m.startswith("Stage a started") for m in messages)
    assert any(m.startswith("Stage a skipped") for m in messages)
    assert any(m.startswith("Stage b started") for m in messages)
    assert "Stage b succeeded" in messages


def test_missing_privilege_aborts_before_any_stage(env, monkeypatch):
    monkeypatch.setattr(privilege.os, "geteuid", lambda: 1000)
    calls = []
    stages = [_stage("a", calls), _stage("b", calls, requires_privilege=True)]

    with pytest.raises(StageFailure) as excinfo:
        run_pipeline(env=env, stages=stages)

    assert calls == []
    assert excinfo.value.stage_id == "b"
    assert isinstance(excinfo.value.__cause__, PermissionDenied)


def test_privilege_check_passes_for_root(env, monkeypatch):
    monkeypatch.setattr(privilege.os, "geteuid", lambda: 0)
    calls = []

    run_pipeline(env=env, stages=[_stage("a", calls, requires_privilege=True)])

    assert calls == ["a"]


def test_privilege_check_can_be_disabled(env, monkeypatch):
    monkeypatch.setattr(privilege.os, "geteuid", lambda: 1000)
    calls = []

    run_pipeline(env=env, stages=[_stage("a", calls, requires_privilege=True)], check_privilege=False)

    assert calls == ["a"]


def test_start_at_and_stop_after_select_a_slice(env):
    calls = []
    stages = [_stage(s, calls) for s in ("a", "b", "c", "d")]

    run_pipeline(env=env, stages=stages, start_at="b", stop_after="c")

    assert calls == ["b", "c"]


def test_unknown_stage_ids_are_rejected_before_running(env):
    calls = []
    stages = [_stage("a", calls)]

    with pytest.raises(ValueError):
        run_pipeline(env=env, stages=stages, start_at="zz")
    with pytest.raises(ValueError):
        select_stages(stages, stop_after="zz")
    assert calls == []
