# app/store.py
"""
Read-through cache of the coordination API.

Collections are fetched on first use and refetched in full after every
mutation that touches them. There are no optimistic updates: a failed call
leaves the cache exactly as it was.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from app import availability, review
from app.client import CoordinationClient
from app.errors import ConflictError, NotFound
from app.projects import validate_new_project, validate_project_name
from app.schemas import (
    ApprovePayload,
    AssignmentCreate,
    DashboardProject,
    EquipmentAsset,
    EquipmentCreate,
    EquipmentRequest,
    FleetEvents,
    MovementCreate,
    ProjectCreate,
    ServiceCreate,
)

logger = logging.getLogger(__name__)


class FleetStore:
    def __init__(self, client: CoordinationClient):
        self.client = client
        self._projects: Optional[List[DashboardProject]] = None
        self._fleet: Optional[List[EquipmentAsset]] = None
        self._events: Optional[FleetEvents] = None
        self._requests: Optional[List[EquipmentRequest]] = None

    # -------------------------
    # Reloads
    # -------------------------
    def reload_projects(self) -> None:
        self._projects = self.client.list_projects()
        logger.info("Reloaded %d projects", len(self._projects))

    def reload_fleet(self) -> None:
        self._fleet = self.client.list_equipment()
        logger.info("Reloaded %d equipment", len(self._fleet))

    def reload_events(self) -> None:
        self._events = self.client.fleet_events()
        logger.info(
            "Reloaded fleet events: %d assignments, %d services, %d movements",
            len(self._events.assignments),
            len(self._events.services),
            len(self._events.movements),
        )

    def reload_requests(self) -> None:
        self._requests = self.client.list_requests()
        logger.info("Reloaded %d requests", len(self._requests))

    def reload_all(self) -> None:
        self.reload_projects()
        self.reload_fleet()
        self.reload_events()
        self.reload_requests()

    def _reload_fleet_and_events(self) -> None:
        self.reload_events()
        self.reload_fleet()

    # -------------------------
    # Cached collections
    # -------------------------
    @property
    def projects(self) -> List[DashboardProject]:
        if self._projects is None:
            self.reload_projects()
        return self._projects

    @property
    def fleet(self) -> List[EquipmentAsset]:
        if self._fleet is None:
            self.reload_fleet()
        return self._fleet

    @property
    def events(self) -> FleetEvents:
        if self._events is None:
            self.reload_events()
        return self._events

    @property
    def requests(self) -> List[EquipmentRequest]:
        if self._requests is None:
            self.reload_requests()
        return self._requests

    def equipment(self, equipment_id: int) -> EquipmentAsset:
        for e in self.fleet:
            if e.id == equipment_id:
                return e
        raise NotFound("Equipment not found")

    def request(self, request_id: int) -> EquipmentRequest:
        for r in self.requests:
            if r.id == request_id:
                return r
        raise NotFound("Request not found")

    # -------------------------
    # Equipment
    # -------------------------
    def create_equipment(self, payload: EquipmentCreate) -> dict:
        created = self.client.create_equipment(payload)
        self._reload_fleet_and_events()
        return created

    def update_equipment(self, equipment_id: int, payload: EquipmentCreate) -> dict:
        self.equipment(equipment_id)
        updated = self.client.update_equipment(equipment_id, payload)
        self._reload_fleet_and_events()
        return updated

    def delete_equipment(self, equipment_id: int) -> None:
        self.equipment(equipment_id)
        self.client.delete_equipment(equipment_id)
        self._reload_fleet_and_events()

    # -------------------------
    # Scheduling
    # -------------------------
    def _apply_truncations(self, plan: availability.ActionPlan) -> None:
        for t in plan.truncations:
            logger.info(
                "Auto-resolve: assignment %s end %s -> %s",
                t.assignment_id, t.old_end, t.new_end,
            )
            self.client.update_assignment_end(t.assignment_id, t.new_end)

    @staticmethod
    def _raise_if_blocked(plan: availability.ActionPlan) -> None:
        if plan.blocked:
            raise ConflictError(plan.block_reason, [c.to_dict() for c in plan.conflicts])

    def plan(self, action: str, equipment_id: int, payload, today: date) -> availability.ActionPlan:
        """Validate ``payload`` and check it against the cached events, without sending anything."""
        self.equipment(equipment_id)
        if action == availability.ACTION_ASSIGNMENT:
            availability.validate_assignment(payload.project_id, payload.start_date, payload.end_date)
            return availability.check_action(
                action, equipment_id, self.events,
                start=payload.start_date, end=payload.end_date,
                today=today, auto_resolve=payload.auto_resolve,
            )
        if action == availability.ACTION_SERVICE:
            availability.validate_service(payload.scheduled_start, payload.scheduled_end)
            return availability.check_action(
                action, equipment_id, self.events,
                start=payload.scheduled_start, end=payload.scheduled_end,
                today=today, auto_resolve=payload.auto_resolve,
            )
        availability.validate_movement(payload.start_date, payload.from_project_id, payload.to_project_id)
        return availability.check_action(
            action, equipment_id, self.events,
            start=payload.start_date, today=today,
            auto_resolve=payload.auto_resolve, from_project_id=payload.from_project_id,
        )

    def assign(self, equipment_id: int, payload: AssignmentCreate, today: date) -> dict:
        plan = self.plan(availability.ACTION_ASSIGNMENT, equipment_id, payload, today)
        self._raise_if_blocked(plan)
        created = self.client.create_assignment(equipment_id, {
            "projectId": payload.project_id,
            "startDate": plan.start.isoformat(),
            "endDate": plan.end.isoformat() if plan.end else None,
            "autoResolve": payload.auto_resolve,
        })
        self._reload_fleet_and_events()
        return {"created": created, "plan": plan.to_dict()}

    def schedule_service(self, equipment_id: int, payload: ServiceCreate, today: date) -> dict:
        plan = self.plan(availability.ACTION_SERVICE, equipment_id, payload, today)
        self._raise_if_blocked(plan)
        created = self.client.create_service(equipment_id, {
            "type": payload.type.value,
            "scheduledStart": plan.start.isoformat(),
            "scheduledEnd": plan.end.isoformat(),
            "notes": (payload.notes or "").strip() or None,
            "autoResolve": payload.auto_resolve,
        })
        try:
            self._apply_truncations(plan)
        finally:
            self._reload_fleet_and_events()
        return {"created": created, "plan": plan.to_dict()}

    def schedule_movement(self, equipment_id: int, payload: MovementCreate, today: date) -> dict:
        plan = self.plan(availability.ACTION_MOVEMENT, equipment_id, payload, today)
        created = self.client.create_movement(equipment_id, {
            "startDate": plan.start.isoformat(),
            "fromProjectId": payload.from_project_id,
            "toProjectId": payload.to_project_id,
            "notes": (payload.notes or "").strip() or None,
            "autoResolve": payload.auto_resolve,
        })
        try:
            self._apply_truncations(plan)
        finally:
            self._reload_fleet_and_events()
        return {"created": created, "plan": plan.to_dict()}

    # -------------------------
    # Requests
    # -------------------------
    def approval_payload(self, request_id: int, overrides: ApprovePayload) -> ApprovePayload:
        req = self.request(request_id)
        base = review.approval_defaults(req)
        return base.model_copy(update=overrides.model_dump(include=overrides.model_fields_set))

    def preview_request(self, request_id: int, overrides: ApprovePayload, today: date) -> dict:
        req = self.request(request_id)
        payload = self.approval_payload(request_id, overrides)
        review.validate_approval(req, payload)
        self.equipment(payload.equipment_id)
        plan = review.preview_approval(req, payload, self.events, today)
        return {"request": req.to_api(), "plan": plan.to_dict()}

    def approve_request(self, request_id: int, overrides: ApprovePayload, today: date) -> dict:
        req = self.request(request_id)
        payload = self.approval_payload(request_id, overrides)
        review.validate_approval(req, payload)
        self.equipment(payload.equipment_id)
        # conflicts are informational here; the API resolves them on approval
        plan = review.preview_approval(req, payload, self.events, today)
        result = self.client.approve_request(request_id, review.approval_body(req, payload))
        self.reload_requests()
        self._reload_fleet_and_events()
        return {"result": result, "plan": plan.to_dict()}

    def reject_request(self, request_id: int, note: Optional[str]) -> dict:
        req = self.request(request_id)
        note = review.validate_rejection(req, note)
        result = self.client.reject_request(request_id, note)
        self.reload_requests()
        return {"result": result}

    # -------------------------
    # Projects
    # -------------------------
    def create_project(self, payload: ProjectCreate) -> dict:
        created = self.client.create_project(validate_new_project(payload))
        self.reload_projects()
        return created

    def rename_project(self, project_id: int, name: str) -> dict:
        updated = self.client.rename_project(project_id, validate_project_name(name))
        self.reload_projects()
        return updated

    def delete_project(self, project_id: int) -> None:
        self.client.delete_project(project_id)
        self.reload_projects()
