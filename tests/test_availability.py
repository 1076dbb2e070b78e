from datetime import date

import pytest

from app import availability
from app.availability import (
    ACTION_ASSIGNMENT,
    ACTION_MOVEMENT,
    ACTION_SERVICE,
    check_action,
    derive_state,
    ranges_overlap,
    truncated_end,
)
from app.errors import InvalidInput
from app.schemas import (
    AssignmentEvent,
    EquipmentState,
    FleetEvents,
    MovementEvent,
    ServiceEvent,
)

EQ = 1


def assignment(id, start, end=None, project_id=1, equipment_id=EQ):
    return AssignmentEvent(id=id, equipment_id=equipment_id, project_id=project_id, start_date=start, end_date=end)


def service(id, start, end, type="ROUTINE", equipment_id=EQ):
    return ServiceEvent(id=id, equipment_id=equipment_id, scheduled_start=start, scheduled_end=end, type=type)


def movement(id, start, from_project_id=1, to_project_id=2, equipment_id=EQ):
    return MovementEvent(
        id=id, equipment_id=equipment_id, start_date=start,
        from_project_id=from_project_id, to_project_id=to_project_id,
    )


def events(assignments=(), services=(), movements=()):
    return FleetEvents(assignments=list(assignments), services=list(services), movements=list(movements))


# -------------------------
# State
# -------------------------
def test_no_records_is_available():
    assert derive_state(EQ, events(), date(2024, 2, 15)) == EquipmentState.AVAILABLE


def test_active_movement_dominates_everything():
    ev = events(
        assignments=[assignment(1, date(2024, 1, 1))],
        services=[service(1, date(2024, 2, 10), date(2024, 2, 20))],
        movements=[movement(1, date(2024, 2, 1))],
    )
    assert derive_state(EQ, ev, date(2024, 2, 15)) == EquipmentState.MOVEMENT


def test_running_service_beats_assignment():
    ev = events(
        assignments=[assignment(1, date(2024, 1, 1))],
        services=[service(1, date(2024, 2, 14), date(2024, 2, 16))],
    )
    assert derive_state(EQ, ev, date(2024, 2, 15)) == EquipmentState.MAINTENANCE


def test_open_assignment_is_assigned():
    ev = events(assignments=[assignment(1, date(2024, 1, 1))])
    assert derive_state(EQ, ev, date(2024, 2, 15)) == EquipmentState.ASSIGNED


def test_assignment_that_ended_is_never_current():
    ev = events(assignments=[assignment(1, date(2024, 1, 1), date(2024, 2, 14))])
    today = date(2024, 2, 15)
    assert availability.current_assignment(EQ, ev.assignments, today) is None
    assert derive_state(EQ, ev, today) == EquipmentState.AVAILABLE


def test_assignment_starting_later_is_not_current():
    ev = events(assignments=[assignment(1, date(2024, 3, 1), date(2024, 3, 5))])
    assert derive_state(EQ, ev, date(2024, 2, 15)) == EquipmentState.AVAILABLE


@pytest.mark.parametrize("today", [date(2024, 2, 28), date(2024, 3, 1)])
def test_movement_from_march_first(today):
    ev = events(movements=[movement(1, date(2024, 3, 1))])
    assert derive_state(EQ, ev, today) == EquipmentState.MOVEMENT


def test_future_movement_outranks_future_service():
    ev = events(
        services=[service(1, date(2024, 2, 20), date(2024, 2, 22))],
        movements=[movement(1, date(2024, 6, 1))],
    )
    assert derive_state(EQ, ev, date(2024, 2, 15)) == EquipmentState.MOVEMENT


def test_future_service_is_scheduled():
    ev = events(services=[service(1, date(2024, 2, 20), date(2024, 2, 22))])
    assert derive_state(EQ, ev, date(2024, 2, 15)) == EquipmentState.SERVICE_SCHEDULED


def test_other_equipment_records_are_ignored():
    ev = events(
        assignments=[assignment(1, date(2024, 1, 1), equipment_id=2)],
        movements=[movement(1, date(2024, 1, 1), equipment_id=2)],
    )
    assert derive_state(EQ, ev, date(2024, 2, 15)) == EquipmentState.AVAILABLE


def test_latest_started_assignment_is_current():
    ev = events(assignments=[
        assignment(1, date(2024, 1, 1), project_id=1),
        assignment(2, date(2024, 2, 1), project_id=2),
    ])
    assert availability.current_assignment(EQ, ev.assignments, date(2024, 2, 15)).id == 2


# -------------------------
# Date ranges
# -------------------------
@pytest.mark.parametrize("a, b, expected", [
    ((date(2024, 1, 1), date(2024, 1, 10)), (date(2024, 1, 5), date(2024, 1, 20)), True),
    ((date(2024, 1, 1), date(2024, 1, 10)), (date(2024, 1, 10), date(2024, 1, 20)), True),
    ((date(2024, 1, 1), date(2024, 1, 10)), (date(2024, 1, 11), date(2024, 1, 20)), False),
    ((date(2024, 1, 1), date(2024, 1, 31)), (date(2024, 1, 10), date(2024, 1, 12)), True),
])
def test_ranges_overlap_is_symmetric(a, b, expected):
    assert ranges_overlap(*a, *b) is expected
    assert ranges_overlap(*b, *a) is expected


def test_truncated_end_is_day_before():
    assert truncated_end(date(2024, 1, 1), date(2024, 2, 1)) == date(2024, 1, 31)


def test_truncated_end_never_before_start():
    assert truncated_end(date(2024, 2, 1), date(2024, 2, 1)) == date(2024, 2, 1)
    assert truncated_end(date(2024, 2, 5), date(2024, 2, 1)) == date(2024, 2, 5)


# -------------------------
# Services
# -------------------------
def test_service_truncates_open_assignment():
    ev = events(assignments=[assignment(7, date(2024, 1, 1))])
    plan = check_action(
        ACTION_SERVICE, EQ, ev,
        start=date(2024, 2, 1), end=date(2024, 2, 7), today=date(2024, 1, 15),
    )
    assert not plan.blocked
    assert [c.event_id for c in plan.conflicts] == [7]
    assert len(plan.truncations) == 1
    t = plan.truncations[0]
    assert (t.assignment_id, t.old_end, t.new_end) == (7, None, date(2024, 1, 31))


def test_service_without_auto_resolve_only_warns():
    ev = events(assignments=[assignment(7, date(2024, 1, 1))])
    plan = check_action(
        ACTION_SERVICE, EQ, ev,
        start=date(2024, 2, 1), end=date(2024, 2, 7), today=date(2024, 1, 15), auto_resolve=False,
    )
    assert not plan.blocked
    assert len(plan.conflicts) == 1
    assert plan.truncations == []


def test_service_defaults_to_a_week():
    plan = check_action(ACTION_SERVICE, EQ, events(), start=date(2024, 2, 1), today=date(2024, 1, 15))
    assert plan.end == date(2024, 2, 8)
    assert plan.conflicts == []


def test_truncation_only_when_it_shortens():
    # a one-day assignment hit on its only day cannot get any shorter
    ev = events(assignments=[assignment(7, date(2024, 2, 1), date(2024, 2, 1))])
    plan = check_action(
        ACTION_SERVICE, EQ, ev,
        start=date(2024, 2, 1), end=date(2024, 2, 3), today=date(2024, 2, 1),
    )
    assert len(plan.conflicts) == 1
    assert plan.truncations == []


def test_service_blocked_by_movement():
    ev = events(movements=[movement(3, date(2024, 3, 1))])
    plan = check_action(ACTION_SERVICE, EQ, ev, start=date(2024, 2, 25), today=date(2024, 2, 15))
    assert plan.blocked
    assert plan.block_reason == "Cannot schedule service: equipment is in movement from 2024-03-01"


# -------------------------
# Assignments
# -------------------------
def test_assignment_ends_before_upcoming_service():
    ev = events(services=[service(5, date(2024, 2, 1), date(2024, 2, 7))])
    plan = check_action(ACTION_ASSIGNMENT, EQ, ev, start=date(2024, 1, 20), today=date(2024, 1, 15))
    assert plan.end == date(2024, 1, 31)
    assert [(c.kind, c.event_id) for c in plan.conflicts] == [(ACTION_SERVICE, 5)]


def test_assignment_keeps_end_without_auto_resolve():
    ev = events(services=[service(5, date(2024, 2, 1), date(2024, 2, 7))])
    plan = check_action(
        ACTION_ASSIGNMENT, EQ, ev,
        start=date(2024, 1, 20), end=date(2024, 2, 3), today=date(2024, 1, 15), auto_resolve=False,
    )
    assert plan.end == date(2024, 2, 3)
    assert len(plan.conflicts) == 1


def test_assignment_clear_of_service_has_no_conflict():
    ev = events(services=[service(5, date(2024, 2, 1), date(2024, 2, 7))])
    plan = check_action(
        ACTION_ASSIGNMENT, EQ, ev,
        start=date(2024, 2, 8), end=date(2024, 2, 20), today=date(2024, 1, 15),
    )
    assert plan.conflicts == []
    assert plan.end == date(2024, 2, 20)


def test_assignment_before_movement_is_allowed():
    ev = events(movements=[movement(3, date(2024, 3, 1))])
    plan = check_action(
        ACTION_ASSIGNMENT, EQ, ev,
        start=date(2024, 2, 20), end=date(2024, 2, 28), today=date(2024, 2, 15),
    )
    assert not plan.blocked


@pytest.mark.parametrize("end", [date(2024, 3, 1), None])
def test_assignment_reaching_movement_is_blocked(end):
    ev = events(movements=[movement(3, date(2024, 3, 1))])
    plan = check_action(
        ACTION_ASSIGNMENT, EQ, ev,
        start=date(2024, 2, 20), end=end, today=date(2024, 2, 15),
    )
    assert plan.blocked
    assert plan.block_reason == "Cannot schedule assignment: equipment is in movement from 2024-03-01"


# -------------------------
# Movements
# -------------------------
def test_movement_truncates_assignment_at_origin():
    ev = events(assignments=[assignment(7, date(2024, 1, 1), project_id=1)])
    plan = check_action(
        ACTION_MOVEMENT, EQ, ev,
        start=date(2024, 2, 20), today=date(2024, 2, 15), from_project_id=1,
    )
    assert plan.end is None
    assert [t.new_end for t in plan.truncations] == [date(2024, 2, 19)]


def test_movement_from_other_project_has_no_conflict():
    ev = events(assignments=[assignment(7, date(2024, 1, 1), project_id=1)])
    plan = check_action(
        ACTION_MOVEMENT, EQ, ev,
        start=date(2024, 2, 20), today=date(2024, 2, 15), from_project_id=2,
    )
    assert plan.conflicts == []


def test_movement_after_assignment_end_has_no_conflict():
    ev = events(assignments=[assignment(7, date(2024, 1, 1), date(2024, 2, 18), project_id=1)])
    plan = check_action(
        ACTION_MOVEMENT, EQ, ev,
        start=date(2024, 2, 20), today=date(2024, 2, 15), from_project_id=1,
    )
    assert plan.conflicts == []


def test_unknown_action():
    with pytest.raises(InvalidInput):
        check_action("delivery", EQ, events(), start=date(2024, 2, 1), today=date(2024, 2, 1))


def test_plan_to_dict_uses_api_keys():
    ev = events(assignments=[assignment(7, date(2024, 1, 1))])
    plan = check_action(
        ACTION_SERVICE, EQ, ev,
        start=date(2024, 2, 1), end=date(2024, 2, 7), today=date(2024, 1, 15),
    )
    data = plan.to_dict()
    assert data["startDate"] == "2024-02-01"
    assert data["endDate"] == "2024-02-07"
    assert data["blocked"] is False
    assert data["truncations"] == [{"assignmentId": 7, "oldEnd": None, "newEnd": "2024-01-31"}]
    assert data["conflicts"][0]["eventId"] == 7


# -------------------------
# Validation
# -------------------------
def test_validate_assignment():
    with pytest.raises(InvalidInput, match="Select a project"):
        availability.validate_assignment(None, date(2024, 2, 1), None)
    with pytest.raises(InvalidInput, match="Select start date"):
        availability.validate_assignment(1, None, None)
    with pytest.raises(InvalidInput, match="End date must be after start date"):
        availability.validate_assignment(1, date(2024, 2, 2), date(2024, 2, 1))
    availability.validate_assignment(1, date(2024, 2, 1), date(2024, 2, 1))


def test_validate_service_and_movement():
    with pytest.raises(InvalidInput, match="Select service start date"):
        availability.validate_service(None, None)
    with pytest.raises(InvalidInput, match="Select destination project"):
        availability.validate_movement(date(2024, 2, 1), 1, None)
    with pytest.raises(InvalidInput, match="must differ"):
        availability.validate_movement(date(2024, 2, 1), 2, 2)
    availability.validate_movement(date(2024, 2, 1), None, 2)
