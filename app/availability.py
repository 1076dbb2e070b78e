# app/availability.py
"""
Equipment availability rules.

State derivation and conflict detection over the assignment / service /
movement records of one piece of equipment. Everything here is pure: "today"
is always passed in, nothing talks to the API.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional

from app import utils
from app.errors import InvalidInput
from app.schemas import (
    AssignmentEvent,
    EquipmentState,
    FleetEvents,
    MovementEvent,
    ServiceEvent,
)

ACTION_ASSIGNMENT = "assignment"
ACTION_SERVICE = "service"
ACTION_MOVEMENT = "movement"
ACTIONS = (ACTION_ASSIGNMENT, ACTION_SERVICE, ACTION_MOVEMENT)

# the dashboard books a service for a week unless told otherwise
DEFAULT_SERVICE_DAYS = 7


# -------------------------
# Date ranges
# -------------------------
def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    # closed ranges
    return a_start <= b_end and b_start <= a_end


def assignment_end(assignment: AssignmentEvent, today: date) -> date:
    if assignment.end_date is not None:
        return assignment.end_date
    return utils.add_days(today, utils.OPEN_END_DAYS)


def truncated_end(assignment_start: date, window_start: date) -> date:
    """End an assignment the day before ``window_start``, never before it starts."""
    new_end = utils.add_days(window_start, -1)
    if new_end < assignment_start:
        return assignment_start
    return new_end


# -------------------------
# Lookups
# -------------------------
def _of(equipment_id: int, items: Iterable):
    return [i for i in items if i.equipment_id == equipment_id]


def active_movement(equipment_id: int, movements: Iterable[MovementEvent], today: date) -> Optional[MovementEvent]:
    started = [m for m in _of(equipment_id, movements) if m.start_date <= today]
    started.sort(key=lambda m: m.start_date, reverse=True)
    return started[0] if started else None


def next_movement(equipment_id: int, movements: Iterable[MovementEvent], today: date) -> Optional[MovementEvent]:
    future = [m for m in _of(equipment_id, movements) if m.start_date > today]
    future.sort(key=lambda m: m.start_date)
    return future[0] if future else None


def current_assignment(equipment_id: int, assignments: Iterable[AssignmentEvent], today: date) -> Optional[AssignmentEvent]:
    active = [
        a for a in _of(equipment_id, assignments)
        if a.start_date <= today <= assignment_end(a, today)
    ]
    active.sort(key=lambda a: a.start_date, reverse=True)
    return active[0] if active else None


def active_service(equipment_id: int, services: Iterable[ServiceEvent], today: date) -> Optional[ServiceEvent]:
    for s in _of(equipment_id, services):
        if s.scheduled_start <= today <= s.scheduled_end:
            return s
    return None


def next_service(equipment_id: int, services: Iterable[ServiceEvent], today: date) -> Optional[ServiceEvent]:
    """Earliest-starting service that has not finished yet (may be running today)."""
    pending = [s for s in _of(equipment_id, services) if s.scheduled_end >= today]
    pending.sort(key=lambda s: s.scheduled_start)
    return pending[0] if pending else None


def upcoming_service(equipment_id: int, services: Iterable[ServiceEvent], today: date) -> Optional[ServiceEvent]:
    nxt = next_service(equipment_id, services, today)
    if nxt and nxt.scheduled_start > today:
        return nxt
    return None


# -------------------------
# State
# -------------------------
def derive_state(equipment_id: int, events: FleetEvents, today: date) -> EquipmentState:
    """
    First match wins:
      active movement > running service > current assignment
      > future movement > future service > available
    """
    if active_movement(equipment_id, events.movements, today):
        return EquipmentState.MOVEMENT
    if active_service(equipment_id, events.services, today):
        return EquipmentState.MAINTENANCE
    if current_assignment(equipment_id, events.assignments, today):
        return EquipmentState.ASSIGNED
    # TODO: confirm with product whether a far-off movement should outrank a nearer service
    if next_movement(equipment_id, events.movements, today):
        return EquipmentState.MOVEMENT
    if any(s.scheduled_start > today for s in _of(equipment_id, events.services)):
        return EquipmentState.SERVICE_SCHEDULED
    return EquipmentState.AVAILABLE


# -------------------------
# Conflicts
# -------------------------
@dataclass
class Conflict:
    kind: str  # the kind of the existing record: assignment / service / movement
    event_id: int
    message: str
    blocking: bool = False

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "eventId": self.event_id,
            "message": self.message,
            "blocking": self.blocking,
        }


@dataclass
class Truncation:
    assignment_id: int
    old_end: Optional[date]
    new_end: date

    def to_dict(self) -> dict:
        return {
            "assignmentId": self.assignment_id,
            "oldEnd": self.old_end.isoformat() if self.old_end else None,
            "newEnd": self.new_end.isoformat(),
        }


@dataclass
class ActionPlan:
    action: str
    equipment_id: int
    start: date
    end: Optional[date]
    auto_resolve: bool
    conflicts: List[Conflict] = field(default_factory=list)
    truncations: List[Truncation] = field(default_factory=list)

    @property
    def blocked(self) -> bool:
        return any(c.blocking for c in self.conflicts)

    @property
    def block_reason(self) -> Optional[str]:
        for c in self.conflicts:
            if c.blocking:
                return c.message
        return None

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "equipmentId": self.equipment_id,
            "startDate": self.start.isoformat(),
            "endDate": self.end.isoformat() if self.end else None,
            "autoResolve": self.auto_resolve,
            "blocked": self.blocked,
            "conflicts": [c.to_dict() for c in self.conflicts],
            "truncations": [t.to_dict() for t in self.truncations],
        }


def _movement_block(plan: ActionPlan, movements: List[MovementEvent], until: date) -> None:
    # movements are open-ended, so any movement starting by `until` overlaps
    for m in movements:
        if m.start_date <= until:
            plan.conflicts.append(Conflict(
                kind=ACTION_MOVEMENT,
                event_id=m.id,
                message=f"Cannot schedule {plan.action}: equipment is in movement from {m.start_date.isoformat()}",
                blocking=True,
            ))
            return


def _resolve_assignment(plan: ActionPlan, assignment: AssignmentEvent, window_start: date, today: date,
                        message: str) -> None:
    plan.conflicts.append(Conflict(kind=ACTION_ASSIGNMENT, event_id=assignment.id, message=message))
    if not plan.auto_resolve:
        return
    new_end = truncated_end(assignment.start_date, window_start)
    if new_end < assignment_end(assignment, today):
        plan.truncations.append(Truncation(assignment.id, assignment.end_date, new_end))


def check_action(
    action: str,
    equipment_id: int,
    events: FleetEvents,
    *,
    start: date,
    end: Optional[date] = None,
    today: date,
    auto_resolve: bool = True,
    from_project_id: Optional[int] = None,
) -> ActionPlan:
    """
    Check a proposed assignment / service / movement against the existing
    records of one piece of equipment.

    Hard conflicts mark the plan blocked. Soft ones are listed as warnings and,
    with ``auto_resolve``, turned into an adjusted end date for a new
    assignment or into truncations of an existing one.
    """
    if action not in ACTIONS:
        raise InvalidInput(f"Unknown action '{action}'")

    plan = ActionPlan(action, equipment_id, start, end, auto_resolve)
    movements = _of(equipment_id, events.movements)
    current = current_assignment(equipment_id, events.assignments, today)

    if action == ACTION_ASSIGNMENT:
        check_end = end or utils.add_days(today, utils.OPEN_END_DAYS)
        _movement_block(plan, movements, check_end)
        if plan.blocked:
            return plan

        svc = upcoming_service(equipment_id, events.services, today)
        if svc and ranges_overlap(start, check_end, svc.scheduled_start, svc.scheduled_end):
            plan.conflicts.append(Conflict(
                kind=ACTION_SERVICE,
                event_id=svc.id,
                message=(
                    f"Overlaps {svc.type.value} service "
                    f"{svc.scheduled_start.isoformat()} to {svc.scheduled_end.isoformat()}"
                ),
            ))
            if auto_resolve:
                plan.end = truncated_end(start, svc.scheduled_start)

    elif action == ACTION_SERVICE:
        window_end = end or utils.add_days(start, DEFAULT_SERVICE_DAYS)
        plan.end = window_end
        _movement_block(plan, movements, window_end)
        if plan.blocked:
            return plan

        if current and ranges_overlap(current.start_date, assignment_end(current, today), start, window_end):
            _resolve_assignment(
                plan, current, start, today,
                f"Overlaps current assignment to project #{current.project_id}",
            )

    else:
        if (
            current
            and from_project_id is not None
            and from_project_id == current.project_id
            and current.start_date <= start <= assignment_end(current, today)
        ):
            _resolve_assignment(
                plan, current, start, today,
                f"Equipment is still assigned to project #{current.project_id} on {start.isoformat()}",
            )

    return plan


# -------------------------
# Input validation
# -------------------------
def validate_assignment(project_id: Optional[int], start: Optional[date], end: Optional[date]) -> None:
    if not project_id:
        raise InvalidInput("Select a project")
    if start is None:
        raise InvalidInput("Select start date")
    if end is not None and end < start:
        raise InvalidInput("End date must be after start date")


def validate_service(start: Optional[date], end: Optional[date]) -> None:
    if start is None:
        raise InvalidInput("Select service start date")
    if end is not None and end < start:
        raise InvalidInput("Service end must be after its start")


def validate_movement(start: Optional[date], from_project_id: Optional[int], to_project_id: Optional[int]) -> None:
    if start is None:
        raise InvalidInput("Select movement start date")
    if not to_project_id:
        raise InvalidInput("Select destination project")
    if from_project_id and from_project_id == to_project_id:
        raise InvalidInput("Origin and destination project must differ")
