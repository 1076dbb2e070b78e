# app/review.py
"""
Coordinator review of field equipment requests.

A request is PENDING until a coordinator approves or rejects it (or the
requester cancels). Decided requests never go back to PENDING.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Iterable, List, Optional

from app import availability
from app.errors import InvalidInput
from app.schemas import (
    ApprovePayload,
    EquipmentRequest,
    FleetEvents,
    RequestStatus,
    RequestType,
)

TERMINAL = {RequestStatus.APPROVED, RequestStatus.REJECTED, RequestStatus.CANCELLED}

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def can_transition(current: RequestStatus, target: RequestStatus) -> bool:
    return current == RequestStatus.PENDING and target in TERMINAL


def ensure_pending(req: EquipmentRequest) -> None:
    if req.status != RequestStatus.PENDING:
        raise InvalidInput(f"Request #{req.id} is already {req.status.value.lower()}")


def pending_requests(requests: Iterable[EquipmentRequest]) -> List[EquipmentRequest]:
    return sorted(
        (r for r in requests if r.status == RequestStatus.PENDING),
        key=lambda r: r.start_date,
    )


def _decided_key(r: EquipmentRequest) -> datetime:
    if r.decided_at is None:
        return _EPOCH
    if r.decided_at.tzinfo is None:
        return r.decided_at.replace(tzinfo=timezone.utc)
    return r.decided_at


def request_history(requests: Iterable[EquipmentRequest]) -> List[EquipmentRequest]:
    # newest decision first; undated ones sink to the bottom
    return sorted(
        (r for r in requests if r.status != RequestStatus.PENDING),
        key=_decided_key,
        reverse=True,
    )


def approval_defaults(req: EquipmentRequest) -> ApprovePayload:
    """Parameters a coordinator starts from when opening a request."""
    return ApprovePayload(
        equipment_id=req.equipment_id,
        start_date=req.start_date,
        end_date=req.end_date,
        from_project_id=req.from_project_id,
        to_project_id=req.to_project_id,
        decision_note=req.decision_note,
        auto_resolve=True,
    )


def validate_approval(req: EquipmentRequest, payload: ApprovePayload) -> None:
    ensure_pending(req)
    if payload.start_date is None:
        raise InvalidInput("Select start date")
    if not payload.equipment_id:
        raise InvalidInput("Select equipment to approve")

    if req.type == RequestType.ASSIGNMENT:
        if payload.end_date is None:
            raise InvalidInput("Select end date")
        if payload.end_date < payload.start_date:
            raise InvalidInput("End date must be after start date")
    elif not payload.to_project_id:
        raise InvalidInput("Select destination project")


def approval_body(req: EquipmentRequest, payload: ApprovePayload) -> dict:
    body = {
        "equipmentId": payload.equipment_id,
        "startDate": payload.start_date.isoformat(),
        "decisionNote": (payload.decision_note or "").strip() or None,
        "autoResolve": payload.auto_resolve,
    }
    if req.type == RequestType.ASSIGNMENT:
        body["endDate"] = payload.end_date.isoformat()
    else:
        body["fromProjectId"] = payload.from_project_id
        body["toProjectId"] = payload.to_project_id
    return body


def preview_approval(
    req: EquipmentRequest,
    payload: ApprovePayload,
    events: FleetEvents,
    today: date,
) -> availability.ActionPlan:
    """
    Run the scheduling checks against the chosen equipment. The plan is only
    shown to the coordinator; the API applies any resolution itself.
    """
    action = (
        availability.ACTION_ASSIGNMENT
        if req.type == RequestType.ASSIGNMENT
        else availability.ACTION_MOVEMENT
    )
    plan = availability.check_action(
        action,
        payload.equipment_id,
        events,
        start=payload.start_date,
        end=payload.end_date if action == availability.ACTION_ASSIGNMENT else None,
        today=today,
        auto_resolve=payload.auto_resolve,
        from_project_id=payload.from_project_id,
    )
    if action == availability.ACTION_ASSIGNMENT:
        _flag_overlapping_assignments(plan, events, today, payload.end_date)
    return plan


def _flag_overlapping_assignments(
    plan: availability.ActionPlan, events: FleetEvents, today: date, end: date
) -> None:
    # an approved assignment may end an overlapping one server-side
    for a in events.assignments:
        if a.equipment_id != plan.equipment_id:
            continue
        if availability.ranges_overlap(a.start_date, availability.assignment_end(a, today), plan.start, end):
            plan.conflicts.append(availability.Conflict(
                kind=availability.ACTION_ASSIGNMENT,
                event_id=a.id,
                message=f"Overlaps existing assignment for project #{a.project_id}",
            ))


def validate_rejection(req: EquipmentRequest, note: Optional[str]) -> str:
    ensure_pending(req)
    note = (note or "").strip()
    if not note:
        raise InvalidInput("Add a note before rejecting")
    return note
