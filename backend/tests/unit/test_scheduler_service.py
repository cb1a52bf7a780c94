"""
Unit tests for SchedulerService.
"""

from datetime import date, datetime, timedelta, timezone
from itertools import combinations

import pytest

from planner.core.exceptions import (
    CyclicDependencyError,
    InvalidConfigurationError,
    ScheduleIntegrityError,
)
from planner.models.enums import Priority, UnscheduledReason
from planner.models.schedule import (
    BusyInterval,
    PlanningWindow,
    ScheduleRequest,
    TaskItem,
    ValidationReport,
    WorkingHoursConfig,
)
from planner.services.schedule_validator import ScheduleValidator
from planner.services.scheduler_service import SchedulerService, schedule_tasks
from planner.services.time_grid import TimeGrid

UTC = timezone.utc
MONDAY = date(2025, 3, 3)


def at(day: date, hour: int, minute: int = 0, tz=UTC) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=tz)


def make_config(**overrides) -> WorkingHoursConfig:
    values = {
        "start_minutes": 9 * 60,
        "end_minutes": 17 * 60,
        "include_saturday": False,
        "include_sunday": False,
        "max_session_minutes": 240,
        "buffer_minutes": 15,
    }
    values.update(overrides)
    return WorkingHoursConfig(**values)


def make_task(
    task_id: str,
    estimated_minutes: int = 60,
    priority: Priority = Priority.MEDIUM,
    due_by: datetime | None = None,
    depends_on: list[str] | None = None,
    tags: list[str] | None = None,
) -> TaskItem:
    return TaskItem(
        id=task_id,
        title=f"Task {task_id}",
        priority=priority,
        estimated_minutes=estimated_minutes,
        due_by=due_by,
        depends_on=frozenset(depends_on or []),
        tags=frozenset(tags or []),
    )


def make_request(
    tasks: list[TaskItem],
    busy: list[tuple[datetime, datetime]] | None = None,
    days: int = 1,
    config: WorkingHoursConfig | None = None,
    start: date = MONDAY,
    utc_offset_minutes: int = 0,
) -> ScheduleRequest:
    return ScheduleRequest(
        planning_window=PlanningWindow(start=start, end=start + timedelta(days=days - 1)),
        config=config or make_config(),
        tasks=tasks,
        busy_intervals=[BusyInterval(start=s, end=e) for s, e in busy or []],
        utc_offset_minutes=utc_offset_minutes,
    )


def assert_schedule_properties(request: ScheduleRequest, result) -> None:
    buffer = timedelta(minutes=request.config.buffer_minutes)
    for a, b in combinations(result.sessions, 2):
        assert a.end + buffer <= b.start or b.end + buffer <= a.start

    windows = TimeGrid().windows_for(request.planning_window, request.config, request.tzinfo)
    for session in result.sessions:
        assert session.end - session.start == timedelta(minutes=session.minutes)
        assert any(w.start <= session.start and session.end <= w.end for w in windows)

    report = ScheduleValidator().validate(request, result)
    assert report.valid, report.violations


def test_long_task_is_split_and_spills_to_next_day():
    """480 minutes with a 15 minute buffer does not fit one 8-hour window."""
    service = SchedulerService()
    request = make_request([make_task("big", estimated_minutes=480)], days=2)

    result = service.build_schedule(request)

    assert [(s.session_index, s.minutes) for s in result.sessions] == [(1, 240), (2, 240)]
    assert result.sessions[0].start == at(MONDAY, 9)
    assert result.sessions[0].end == at(MONDAY, 13)
    assert result.sessions[1].start == at(MONDAY + timedelta(days=1), 9)
    assert result.total_minutes_scheduled == 480
    assert result.unscheduled == []
    assert_schedule_properties(request, result)


def test_split_sessions_back_to_back_with_buffer_gap():
    service = SchedulerService()
    request = make_request([make_task("big", estimated_minutes=450)])

    result = service.build_schedule(request)

    first, second = result.sessions
    assert (first.minutes, second.minutes) == (240, 210)
    assert second.start - first.end == timedelta(minutes=15)
    assert second.end <= at(MONDAY, 17)
    assert_schedule_properties(request, result)


def test_fully_booked_day_leaves_task_unscheduled():
    service = SchedulerService()
    request = make_request(
        [make_task("t", estimated_minutes=60)],
        busy=[(at(MONDAY, 9), at(MONDAY, 17))],
    )

    result = service.build_schedule(request)

    assert result.sessions == []
    assert [(u.task_id, u.reason) for u in result.unscheduled] == [
        ("t", UnscheduledReason.NO_AVAILABLE_SLOT)
    ]
    assert result.unscheduled[0].reason == "no_available_slot"
    assert result.total_minutes_scheduled == 0


def test_dependency_runs_first():
    service = SchedulerService()
    request = make_request(
        [
            make_task("b", estimated_minutes=60, priority=Priority.URGENT, depends_on=["a"]),
            make_task("a", estimated_minutes=60, priority=Priority.LOW),
        ]
    )

    result = service.build_schedule(request)

    a_sessions = result.sessions_for("a")
    b_sessions = result.sessions_for("b")
    assert a_sessions and b_sessions
    assert max(s.start for s in a_sessions) < min(s.start for s in b_sessions)
    assert max(s.end for s in a_sessions) <= min(s.start for s in b_sessions)
    assert_schedule_properties(request, result)


def test_dependent_does_not_backfill_earlier_gap():
    """A dependent never lands in a gap that precedes its dependency."""
    service = SchedulerService()
    request = make_request(
        [
            make_task("a", estimated_minutes=240),
            make_task("b", estimated_minutes=30, depends_on=["a"]),
        ],
        busy=[(at(MONDAY, 10), at(MONDAY, 11))],
    )

    result = service.build_schedule(request)

    (a_session,) = result.sessions_for("a")
    (b_session,) = result.sessions_for("b")
    assert a_session.start == at(MONDAY, 11, 15)
    assert b_session.start >= a_session.end + timedelta(minutes=15)
    assert_schedule_properties(request, result)


def test_late_placement_is_kept_and_reported():
    service = SchedulerService()
    request = make_request(
        [make_task("late", estimated_minutes=60, due_by=at(MONDAY, 10))],
        busy=[(at(MONDAY, 9), at(MONDAY, 12))],
    )

    result = service.build_schedule(request)

    (session,) = result.sessions
    assert session.start == at(MONDAY, 12, 15)
    assert result.conflicts == ["late scheduled after its due date"]


def test_late_conflict_reported_once_per_task():
    service = SchedulerService()
    request = make_request(
        [make_task("late", estimated_minutes=600, due_by=at(MONDAY, 9))],
        days=3,
    )

    result = service.build_schedule(request)

    assert len(result.sessions) == 3
    assert result.conflicts == ["late scheduled after its due date"]


def test_unplaceable_unit_does_not_abort_run():
    service = SchedulerService()
    request = make_request(
        [
            make_task("huge", estimated_minutes=500, priority=Priority.URGENT),
            make_task("small", estimated_minutes=60),
        ],
        config=make_config(max_session_minutes=600),
    )

    result = service.build_schedule(request)

    assert [u.task_id for u in result.unscheduled] == ["huge"]
    assert [s.task_id for s in result.sessions] == ["small"]


def test_dependents_of_unscheduled_task_are_reported():
    service = SchedulerService()
    request = make_request(
        [
            make_task("a", estimated_minutes=60),
            make_task("b", estimated_minutes=30, depends_on=["a"]),
            make_task("c", estimated_minutes=30),
        ],
        busy=[(at(MONDAY, 9), at(MONDAY, 16))],
    )

    result = service.build_schedule(request)

    reasons = {u.task_id: u.reason for u in result.unscheduled}
    assert reasons == {
        "a": UnscheduledReason.NO_AVAILABLE_SLOT,
        "b": UnscheduledReason.DEPENDENCY_UNSCHEDULED,
    }
    assert [s.task_id for s in result.sessions] == ["c"]


def test_busy_time_and_buffer_are_avoided():
    service = SchedulerService()
    request = make_request(
        [make_task("t", estimated_minutes=90)],
        busy=[(at(MONDAY, 9), at(MONDAY, 10)), (at(MONDAY, 11), at(MONDAY, 12))],
    )

    result = service.build_schedule(request)

    (session,) = result.sessions
    assert session.start == at(MONDAY, 12, 15)
    assert session.end == at(MONDAY, 13, 45)


def test_gap_is_filled_by_later_unit():
    service = SchedulerService()
    request = make_request(
        [
            make_task("long", estimated_minutes=120, priority=Priority.HIGH),
            make_task("short", estimated_minutes=30, priority=Priority.LOW),
        ],
        busy=[(at(MONDAY, 10), at(MONDAY, 12))],
    )

    result = service.build_schedule(request)

    starts = {s.task_id: s.start for s in result.sessions}
    assert starts["long"] == at(MONDAY, 12, 15)
    assert starts["short"] == at(MONDAY, 9)
    assert_schedule_properties(request, result)


def test_priority_gets_earliest_slot():
    service = SchedulerService()
    request = make_request(
        [
            make_task("low", priority=Priority.LOW),
            make_task("urgent", priority=Priority.URGENT),
        ]
    )

    result = service.build_schedule(request)

    assert result.sessions[0].task_id == "urgent"
    assert result.sessions[0].start == at(MONDAY, 9)


def test_weekend_is_skipped_unless_included():
    service = SchedulerService()
    friday = MONDAY + timedelta(days=4)
    tasks = [make_task(str(i), estimated_minutes=240) for i in range(3)]

    weekdays_only = service.build_schedule(make_request(tasks, days=4, start=friday))
    with_saturday = service.build_schedule(
        make_request(tasks, days=4, start=friday, config=make_config(include_saturday=True))
    )

    assert {s.start.date().weekday() for s in weekdays_only.sessions} == {4, 0}
    assert 5 in {s.start.date().weekday() for s in with_saturday.sessions}


def test_offset_is_applied_to_windows():
    service = SchedulerService()
    offset = -5 * 60
    tz = timezone(timedelta(minutes=offset))
    request = make_request([make_task("t")], utc_offset_minutes=offset)

    result = service.build_schedule(request)

    assert result.sessions[0].start == at(MONDAY, 9, tz=tz)
    assert result.sessions[0].start.astimezone(UTC) == at(MONDAY, 14)


def test_malformed_busy_interval_is_reported_not_fatal():
    service = SchedulerService()
    request = make_request(
        [make_task("t")],
        busy=[(at(MONDAY, 12), at(MONDAY, 11))],
    )

    result = service.build_schedule(request)

    assert len(result.sessions) == 1
    assert len(result.conflicts) == 1
    assert "malformed" in result.conflicts[0]


def test_invalid_configuration_is_fatal():
    service = SchedulerService()
    request = make_request([make_task("t")], config=make_config(start_minutes=17 * 60))

    with pytest.raises(InvalidConfigurationError):
        service.build_schedule(request)


def test_cycle_is_fatal():
    service = SchedulerService()
    request = make_request(
        [make_task("a", depends_on=["b"]), make_task("b", depends_on=["a"])]
    )

    with pytest.raises(CyclicDependencyError):
        service.build_schedule(request)


def test_empty_task_list():
    result = schedule_tasks(make_request([]))

    assert result.sessions == []
    assert result.unscheduled == []
    assert result.total_minutes_scheduled == 0


def test_identical_inputs_give_identical_output():
    tasks = [
        make_task("a", estimated_minutes=300, priority=Priority.HIGH, tags=["backend"]),
        make_task("b", estimated_minutes=45, depends_on=["a"], tags=["frontend"]),
        make_task("c", estimated_minutes=120, due_by=at(MONDAY, 15)),
        make_task("d", estimated_minutes=200, priority=Priority.LOW, tags=["backend", "ops"]),
    ]
    busy = [
        (at(MONDAY, 10), at(MONDAY, 11)),
        (at(MONDAY, 10, 30), at(MONDAY, 12)),
        (at(MONDAY + timedelta(days=1), 13), at(MONDAY + timedelta(days=1), 14)),
    ]
    service = SchedulerService()

    first = service.build_schedule(make_request(tasks, busy=busy, days=5))
    second = service.build_schedule(make_request(tasks, busy=busy, days=5))

    assert first.model_dump_json() == second.model_dump_json()
    assert_schedule_properties(make_request(tasks, busy=busy, days=5), first)


def test_many_tasks_keep_all_invariants():
    tasks = [
        make_task(
            f"t{i:02d}",
            estimated_minutes=30 + (i * 37) % 400,
            priority=Priority.from_rank(i % 4),
            depends_on=[f"t{i - 3:02d}"] if i >= 3 and i % 2 == 0 else None,
        )
        for i in range(25)
    ]
    busy = [
        (at(MONDAY + timedelta(days=d), 9 + d % 4, 20), at(MONDAY + timedelta(days=d), 13 + d % 3))
        for d in range(10)
    ]
    request = make_request(tasks, busy=busy, days=10, config=make_config(buffer_minutes=10))

    result = SchedulerService().build_schedule(request)

    assert result.sessions
    assert_schedule_properties(request, result)


def test_failed_validation_raises_integrity_error(monkeypatch):
    service = SchedulerService(validate=True)
    monkeypatch.setattr(
        service.validator,
        "validate",
        lambda request, result: ValidationReport(valid=False, violations=["t#1: overlaps busy calendar time"]),
    )

    with pytest.raises(ScheduleIntegrityError) as exc_info:
        service.build_schedule(make_request([make_task("t")]))

    assert exc_info.value.violations == ["t#1: overlaps busy calendar time"]


def test_validation_can_be_disabled(monkeypatch):
    service = SchedulerService(validate=False)
    monkeypatch.setattr(
        service.validator,
        "validate",
        lambda request, result: ValidationReport(valid=False, violations=["never checked"]),
    )

    result = service.build_schedule(make_request([make_task("t")]))

    assert len(result.sessions) == 1
