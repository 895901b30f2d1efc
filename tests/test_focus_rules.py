"""
Tests for the focus session phase machine.

The clock is injected: every call gets an explicit `now`.
Run with: python -m pytest tests/test_focus_rules.py -v
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from taskboard.domain.common.errors import NotFoundError, ValidationError
from taskboard.domain.focus import rules
from taskboard.domain.focus.models import FocusPhase, FocusTimerSettings
from taskboard.domain.tasks.models import Subtask, Task, TaskTimer

T0 = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
MIN = timedelta(minutes=1)


def _task() -> Task:
    return Task(
        id="t1",
        title="Deep work",
        created_at=T0,
        updated_at=T0,
        subtasks=(Subtask("s1", "outline"), Subtask("s2", "draft")),
        timer=TaskTimer(started_at=T0),
    )


def _run_phase(state, now):
    """Tick exactly at the end of the current countdown."""
    end = now + rules.remaining(state, now)
    return rules.tick(state, end), end


def test_start_session_defaults():
    state = rules.start_session(_task(), FocusTimerSettings(), T0)
    assert state.phase is FocusPhase.WORK
    assert state.time_remaining == 25 * MIN
    assert state.sessions_completed == 0
    assert rules.is_running(state)
    assert rules.formatted_time(state, T0) == "25:00"
    assert rules.formatted_time(state, T0 + 90 * timedelta(seconds=1)) == "23:30"


def test_long_break_after_fourth_work_phase():
    """WORK phases 1-3 lead to SHORT_BREAK, the 4th to LONG_BREAK."""
    settings = FocusTimerSettings(auto_start_break=True, auto_start_work=True)
    state = rules.start_session(_task(), settings, T0)
    now = T0
    seen = []
    for _ in range(4):
        state, now = _run_phase(state, now)
        seen.append((state.sessions_completed, state.phase))
        state, now = _run_phase(state, now)
        assert state.phase is FocusPhase.WORK
    assert seen == [
        (1, FocusPhase.SHORT_BREAK),
        (2, FocusPhase.SHORT_BREAK),
        (3, FocusPhase.SHORT_BREAK),
        (4, FocusPhase.LONG_BREAK),
    ]


def test_one_transition_per_tick_and_boundary_start():
    """A late tick moves one phase; the new phase starts at the old one's end."""
    settings = FocusTimerSettings(auto_start_break=True)
    state = rules.start_session(_task(), settings, T0)
    late = T0 + 40 * MIN
    state = rules.tick(state, late)
    assert state.phase is FocusPhase.SHORT_BREAK
    assert state.sessions_completed == 1
    # break started at T0+25min, so 5 minutes are already gone
    assert rules.remaining(state, late) == timedelta(0)


def test_transition_waits_for_acknowledgement_when_not_auto_started():
    settings = FocusTimerSettings(auto_start_break=False)
    state = rules.start_session(_task(), settings, T0)
    state = rules.tick(state, T0 + 25 * MIN)
    assert state.phase is FocusPhase.SHORT_BREAK
    assert state.show_transition is True
    assert not rules.is_running(state)
    # frozen while waiting
    assert rules.remaining(state, T0 + 60 * MIN) == 5 * MIN
    assert rules.tick(state, T0 + 60 * MIN) is state

    state = rules.dismiss_transition(state, T0 + 60 * MIN)
    assert state.show_transition is False
    assert rules.remaining(state, T0 + 62 * MIN) == 3 * MIN


def test_break_end_waits_by_default():
    state = rules.start_session(_task(), FocusTimerSettings(), T0)
    state, now = _run_phase(state, T0)
    assert state.phase is FocusPhase.SHORT_BREAK and rules.is_running(state)
    state, now = _run_phase(state, now)
    assert state.phase is FocusPhase.WORK
    assert state.show_transition is True
    assert state.time_remaining == 25 * MIN


def test_pause_resume_freezes_countdown():
    state = rules.start_session(_task(), FocusTimerSettings(), T0)
    state = rules.pause(state, T0 + 10 * MIN)
    assert state.is_paused
    assert rules.remaining(state, T0 + 50 * MIN) == 15 * MIN
    assert rules.tick(state, T0 + 50 * MIN).phase is FocusPhase.WORK

    state = rules.resume(state, T0 + 50 * MIN)
    assert rules.remaining(state, T0 + 55 * MIN) == 10 * MIN


def test_add_and_subtract_time_clamp_at_zero():
    state = rules.start_session(_task(), FocusTimerSettings(), T0)
    state = rules.add_time(state, T0)
    assert rules.remaining(state, T0) == 30 * MIN
    for _ in range(10):
        state = rules.subtract_time(state, T0)
    assert rules.remaining(state, T0) == timedelta(0)
    assert rules.formatted_time(state, T0) == "00:00"


def test_reset_timer_restores_phase_length():
    state = rules.start_session(_task(), FocusTimerSettings(), T0)
    state = rules.reset_timer(state, T0 + 12 * MIN)
    assert rules.remaining(state, T0 + 12 * MIN) == 25 * MIN


def test_start_break_manually_does_not_count_a_session():
    state = rules.start_session(_task(), FocusTimerSettings(), T0)
    state = rules.start_break_manually(state, T0 + 3 * MIN)
    assert state.phase is FocusPhase.SHORT_BREAK
    assert state.sessions_completed == 0
    assert rules.is_running(state)

    four = replace(rules.start_session(_task(), FocusTimerSettings(), T0), sessions_completed=4)
    assert rules.start_break_manually(four, T0).phase is FocusPhase.LONG_BREAK
    # only from WORK
    assert rules.start_break_manually(state, T0 + 4 * MIN) is state


def test_update_settings_applies_to_untouched_countdown():
    state = rules.start_session(_task(), FocusTimerSettings(), T0)
    state = rules.pause(state, T0)
    state = rules.update_settings(state, FocusTimerSettings(work_duration=50 * MIN), T0)
    assert state.time_remaining == 50 * MIN

    running = rules.start_session(_task(), FocusTimerSettings(), T0)
    running = rules.update_settings(running, FocusTimerSettings(work_duration=50 * MIN), T0 + 5 * MIN)
    assert rules.remaining(running, T0 + 5 * MIN) == 20 * MIN


def test_toggle_subtask():
    state = rules.start_session(_task(), FocusTimerSettings(), T0)
    state = rules.toggle_subtask(state, "s2", T0 + MIN)
    assert [s.is_completed for s in state.task.subtasks] == [False, True]
    assert state.task.updated_at == T0 + MIN
    with pytest.raises(NotFoundError):
        rules.toggle_subtask(state, "nope", T0)


def test_complete_task_from_any_phase():
    state = rules.start_session(_task(), FocusTimerSettings(), T0)
    state, now = _run_phase(state, T0)
    done = rules.complete_task(state, now + MIN)
    assert done.phase is FocusPhase.COMPLETED
    assert done.task.completed is True
    assert done.task.timer is None
    assert done.sessions_completed == 1
    assert rules.tick(done, now + 60 * MIN) is done
    assert rules.pause(done, now) is done


def test_progress():
    state = rules.start_session(_task(), FocusTimerSettings(), T0)
    assert rules.progress(state, T0) == 0.0
    assert rules.progress(state, T0 + 5 * MIN) == pytest.approx(0.2)
    assert rules.progress(state, T0 + 90 * MIN) == 1.0
    zero = rules.start_session(_task(), FocusTimerSettings(work_duration=timedelta(0)), T0)
    assert rules.progress(zero, T0) == 1.0


def test_to_record():
    state = rules.start_session(_task(), FocusTimerSettings(), T0)
    record = rules.to_record(state, T0 + 30 * MIN, completed=False)
    assert record.task_id == "t1"
    assert record.start_time == T0
    assert record.duration == 30 * MIN
    assert record.completed is False


def test_settings_validation():
    with pytest.raises(ValidationError):
        FocusTimerSettings(sessions_until_long_break=0)
    with pytest.raises(ValidationError):
        FocusTimerSettings(work_duration=-MIN)


def test_complete_already_completed_task_clears_timer():
    task = replace(_task(), completed=True, completed_at=T0)
    state = rules.start_session(task, FocusTimerSettings(), T0)
    done = rules.complete_task(state, T0 + MIN)
    assert done.task.timer is None
    assert done.task.completed_at == T0
