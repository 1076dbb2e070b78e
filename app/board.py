# app/board.py
"""Fleet board rows, filters and the month calendar."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional

from app import utils
from app.availability import (
    assignment_end,
    current_assignment,
    derive_state,
    next_service,
)
from app.schemas import (
    AssignmentEvent,
    DashboardProject,
    EquipmentAsset,
    EquipmentState,
    FleetEvents,
    LifecycleStage,
    ServiceEvent,
    ServiceType,
)


@dataclass
class BoardRow:
    equipment: EquipmentAsset
    state: EquipmentState
    assignment: Optional[AssignmentEvent]
    assignment_project: Optional[DashboardProject]
    next_service: Optional[ServiceEvent]

    def to_dict(self) -> dict:
        return {
            "equipment": self.equipment.to_api(),
            "state": self.state.value,
            "assignment": self.assignment.to_api() if self.assignment else None,
            "assignmentProject": self.assignment_project.to_api() if self.assignment_project else None,
            "nextService": self.next_service.to_api() if self.next_service else None,
        }


def selectable_projects(projects: Iterable[DashboardProject]) -> List[DashboardProject]:
    # estimates can't receive equipment
    return [p for p in projects if p.lifecycle_stage != LifecycleStage.ESTIMATION]


def build_rows(
    fleet: Iterable[EquipmentAsset],
    events: FleetEvents,
    projects: Iterable[DashboardProject],
    today: date,
) -> List[BoardRow]:
    by_id = {p.id: p for p in projects}
    rows = []
    for e in fleet:
        assignment = current_assignment(e.id, events.assignments, today)
        rows.append(BoardRow(
            equipment=e,
            state=derive_state(e.id, events, today),
            assignment=assignment,
            assignment_project=by_id.get(assignment.project_id) if assignment else None,
            next_service=next_service(e.id, events.services, today),
        ))
    return rows


def filter_rows(
    rows: Iterable[BoardRow],
    *,
    search: Optional[str] = None,
    equipment_type: Optional[str] = None,
) -> List[BoardRow]:
    """Type and free-text filter (name, serial code, current project name)."""
    term = (search or "").strip().lower()
    out = []
    for r in rows:
        if equipment_type and r.equipment.type.value != equipment_type:
            continue
        if term:
            project_name = r.assignment_project.name if r.assignment_project else ""
            hay = (r.equipment.name, r.equipment.serial_code or "", project_name)
            if not any(term in h.lower() for h in hay):
                continue
        out.append(r)
    return out


def count_states(rows: Iterable[BoardRow]) -> Dict[str, int]:
    counts = {s.value: 0 for s in EquipmentState}
    for r in rows:
        counts[r.state.value] += 1
    return counts


# -------------------------
# Month calendar
# -------------------------
@dataclass
class CalendarItem:
    equipment_id: int
    equipment_name: str
    serial_code: Optional[str] = None
    assignment_project: Optional[str] = None
    service_kind: Optional[str] = None  # SERVICE / MAINTENANCE / MOVEMENT
    service_label: Optional[str] = None

    def rank(self) -> int:
        if self.service_kind:
            return 0
        if self.assignment_project:
            return 1
        return 2

    def to_dict(self) -> dict:
        return {
            "equipmentId": self.equipment_id,
            "equipmentName": self.equipment_name,
            "serialCode": self.serial_code,
            "assignmentProject": self.assignment_project,
            "serviceKind": self.service_kind,
            "serviceLabel": self.service_label,
        }


def calendar_window(month: date):
    start = utils.start_of_week(utils.start_of_month(month))
    end = utils.end_of_week(utils.end_of_month(month))
    return start, end


def month_calendar(
    month: date,
    fleet: Iterable[EquipmentAsset],
    events: FleetEvents,
    projects: Iterable[DashboardProject],
    today: date,
    *,
    show_assignments: bool = True,
    show_services: bool = True,
    show_movements: bool = True,
) -> Dict[date, List[CalendarItem]]:
    """Per-day equipment activity over the Sunday..Saturday grid covering ``month``."""
    window_start, window_end = calendar_window(month)
    equipment = {e.id: e for e in fleet}
    project_names = {p.id: p.name for p in projects}
    by_day: Dict[date, Dict[int, CalendarItem]] = {}

    def upsert(day: date, equipment_id: int, **patch):
        day_map = by_day.setdefault(day, {})
        item = day_map.get(equipment_id)
        if item is None:
            eq = equipment[equipment_id]
            item = CalendarItem(equipment_id, eq.name, eq.serial_code)
            day_map[equipment_id] = item
        for k, v in patch.items():
            setattr(item, k, v)

    def clip(start: date, end: date):
        return max(start, window_start), min(end, window_end)

    if show_assignments:
        for a in events.assignments:
            if a.equipment_id not in equipment:
                continue
            start, end = clip(a.start_date, assignment_end(a, today))
            name = project_names.get(a.project_id) or f"Project #{a.project_id}"
            for d in utils.days_between(start, end):
                upsert(d, a.equipment_id, assignment_project=name)

    if show_services:
        for s in events.services:
            if s.equipment_id not in equipment:
                continue
            start, end = clip(s.scheduled_start, s.scheduled_end)
            kind = "MAINTENANCE" if s.type == ServiceType.REPAIR else "SERVICE"
            for d in utils.days_between(start, end):
                upsert(d, s.equipment_id, service_kind=kind, service_label=s.type.value)

    if show_movements:
        for m in events.movements:
            if m.equipment_id not in equipment:
                continue
            # movements have no end; they fill the rest of the grid
            start, end = clip(m.start_date, window_end)
            for d in utils.days_between(start, end):
                upsert(d, m.equipment_id, service_kind="MOVEMENT", service_label="MOVEMENT")

    return {
        day: sorted(items.values(), key=lambda i: (i.rank(), i.equipment_name))
        for day, items in sorted(by_day.items())
    }
