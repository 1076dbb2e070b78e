# app/routers/equipment.py
from __future__ import annotations
from datetime import date
from typing import List, Optional

import pandas as pd
from fastapi import APIRouter, Depends, Query

from .. import availability, board, schemas, utils
from ..config import settings
from ..deps import get_store, get_today
from ..errors import InvalidInput
from ..store import FleetStore

router = APIRouter(prefix="/equipment", tags=["Equipment"])


# -------------------------
# Board
# -------------------------
@router.get("/")
def list_equipment(
    state: Optional[schemas.EquipmentState] = None,
    type: Optional[schemas.EquipmentType] = None,
    search: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=0),
    offset: int = Query(0, ge=0),
    today: date = Depends(get_today),
    store: FleetStore = Depends(get_store),
):
    rows = board.build_rows(store.fleet, store.events, store.projects, today)
    rows = board.filter_rows(rows, search=search, equipment_type=type.value if type else None)
    counts = board.count_states(rows)  # before the state filter, like the dashboard tabs
    if state:
        rows = [r for r in rows if r.state == state]

    limit = settings.PAGE_SIZE if limit is None else limit
    page = rows[offset:offset + limit]
    return {
        "today": today,
        "total": len(rows),
        "counts": counts,
        "rows": [r.to_dict() for r in page],
    }


@router.get("/projects", response_model=List[schemas.DashboardProject])
def selectable_projects(store: FleetStore = Depends(get_store)):
    return board.selectable_projects(store.projects)


@router.post("/reload")
def reload_everything(store: FleetStore = Depends(get_store)):
    store.reload_all()
    return {"ok": True}


@router.get("/calendar")
def month_calendar(
    month: Optional[date] = None,
    assignments: bool = True,
    services: bool = True,
    movements: bool = True,
    search: Optional[str] = None,
    type: Optional[schemas.EquipmentType] = None,
    today: date = Depends(get_today),
    store: FleetStore = Depends(get_store),
):
    month = utils.start_of_month(month or today)
    rows = board.build_rows(store.fleet, store.events, store.projects, today)
    rows = board.filter_rows(rows, search=search, equipment_type=type.value if type else None)
    start, end = board.calendar_window(month)
    days = board.month_calendar(
        month,
        [r.equipment for r in rows],
        store.events,
        store.projects,
        today,
        show_assignments=assignments,
        show_services=services,
        show_movements=movements,
    )
    return {
        "month": month,
        "start": start,
        "end": end,
        "days": {d.isoformat(): [i.to_dict() for i in items] for d, items in days.items()},
    }


# -------------------------
# Export (.xlsx)
# -------------------------
@router.get("/export.xlsx")
def export_equipment(today: date = Depends(get_today), store: FleetStore = Depends(get_store)):
    rows = board.build_rows(store.fleet, store.events, store.projects, today)
    df = pd.DataFrame(
        [
            dict(
                equipment_id=r.equipment.id,
                equipment_name=r.equipment.name,
                serial_code=r.equipment.serial_code,
                type=r.equipment.type.value,
                state=r.state.value,
                assigned_project=r.assignment_project.name if r.assignment_project else None,
                assigned_since=r.assignment.start_date if r.assignment else None,
                next_service_type=r.next_service.type.value if r.next_service else None,
                next_service_start=r.next_service.scheduled_start if r.next_service else None,
                next_service_end=r.next_service.scheduled_end if r.next_service else None,
            )
            for r in rows
        ]
    )
    return utils.excel_response(df, f"equipment-{today.isoformat()}.xlsx")


# -------------------------
# CRUD
# -------------------------
@router.get("/{equipment_id}")
def get_equipment(
    equipment_id: int,
    today: date = Depends(get_today),
    store: FleetStore = Depends(get_store),
):
    equipment = store.equipment(equipment_id)
    events = store.events
    rows = board.build_rows([equipment], events, store.projects, today)
    detail = rows[0].to_dict()
    detail["assignments"] = [a.to_api() for a in events.assignments if a.equipment_id == equipment_id]
    detail["services"] = [s.to_api() for s in events.services if s.equipment_id == equipment_id]
    detail["movements"] = [m.to_api() for m in events.movements if m.equipment_id == equipment_id]
    return detail


@router.get("/{equipment_id}/state")
def get_state(
    equipment_id: int,
    today: date = Depends(get_today),
    store: FleetStore = Depends(get_store),
):
    store.equipment(equipment_id)
    return {
        "equipmentId": equipment_id,
        "on": today,
        "state": availability.derive_state(equipment_id, store.events, today),
    }


@router.post("/")
def create_equipment(payload: schemas.EquipmentCreate, store: FleetStore = Depends(get_store)):
    return store.create_equipment(_clean(payload))


@router.put("/{equipment_id}")
def update_equipment(
    equipment_id: int,
    payload: schemas.EquipmentCreate,
    store: FleetStore = Depends(get_store),
):
    return store.update_equipment(equipment_id, _clean(payload))


@router.delete("/{equipment_id}")
def delete_equipment(equipment_id: int, store: FleetStore = Depends(get_store)):
    store.delete_equipment(equipment_id)
    return {"ok": True}


def _clean(payload: schemas.EquipmentCreate) -> schemas.EquipmentCreate:
    name = payload.name.strip()
    if not name:
        raise InvalidInput("Equipment name is required")
    return payload.model_copy(update={
        "name": name,
        "serial_code": (payload.serial_code or "").strip() or None,
    })


# -------------------------
# Scheduling
# -------------------------
@router.post("/{equipment_id}/assignments")
def create_assignment(
    equipment_id: int,
    payload: schemas.AssignmentCreate,
    today: date = Depends(get_today),
    store: FleetStore = Depends(get_store),
):
    return store.assign(equipment_id, payload, today)


@router.post("/{equipment_id}/services")
def create_service(
    equipment_id: int,
    payload: schemas.ServiceCreate,
    today: date = Depends(get_today),
    store: FleetStore = Depends(get_store),
):
    return store.schedule_service(equipment_id, payload, today)


@router.post("/{equipment_id}/movements")
def create_movement(
    equipment_id: int,
    payload: schemas.MovementCreate,
    today: date = Depends(get_today),
    store: FleetStore = Depends(get_store),
):
    return store.schedule_movement(equipment_id, payload, today)


# dry runs: same checks, nothing sent
@router.post("/{equipment_id}/assignments/check")
def check_assignment(
    equipment_id: int,
    payload: schemas.AssignmentCreate,
    today: date = Depends(get_today),
    store: FleetStore = Depends(get_store),
):
    return store.plan(availability.ACTION_ASSIGNMENT, equipment_id, payload, today).to_dict()


@router.post("/{equipment_id}/services/check")
def check_service(
    equipment_id: int,
    payload: schemas.ServiceCreate,
    today: date = Depends(get_today),
    store: FleetStore = Depends(get_store),
):
    return store.plan(availability.ACTION_SERVICE, equipment_id, payload, today).to_dict()


@router.post("/{equipment_id}/movements/check")
def check_movement(
    equipment_id: int,
    payload: schemas.MovementCreate,
    today: date = Depends(get_today),
    store: FleetStore = Depends(get_store),
):
    return store.plan(availability.ACTION_MOVEMENT, equipment_id, payload, today).to_dict()
