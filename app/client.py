# app/client.py
"""
HTTP client for the coordination API (projects, notes, files, fleet,
fleet events, equipment requests).

Every call returns parsed models or raises ``ApiError`` carrying the upstream
status and message. Nothing is retried.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, List, Optional

import httpx

from app import schemas
from app.config import settings
from app.errors import ApiError

logger = logging.getLogger(__name__)


class CoordinationClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        kwargs: dict[str, Any] = {"base_url": self.base_url}
        timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT
        if timeout is not None:
            kwargs["timeout"] = timeout
        if transport is not None:
            kwargs["transport"] = transport
        self._http = httpx.Client(**kwargs)

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # -------------------------
    # Plumbing
    # -------------------------
    def _request(self, method: str, path: str, what: str, **kwargs) -> httpx.Response:
        logger.debug("%s %s", method, path)
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.HTTPError as ex:
            logger.warning("%s %s failed: %s", method, path, ex)
            raise ApiError(f"Failed to {what}: {ex}") from ex
        if response.is_error:
            message = response.text.strip() or f"Failed to {what}: {response.reason_phrase}"
            logger.warning("%s %s -> %s %s", method, path, response.status_code, message)
            raise ApiError(message, status_code=response.status_code)
        return response

    @staticmethod
    def _json(response: httpx.Response):
        return response.json() if response.content else None

    @staticmethod
    def _params(**params) -> dict:
        return {k: v for k, v in params.items() if v is not None}

    # -------------------------
    # Projects
    # -------------------------
    def list_projects(self, stage: Optional[str] = None) -> List[schemas.DashboardProject]:
        r = self._request("GET", "/projects/dashboard", "fetch projects", params=self._params(stage=stage))
        return [schemas.DashboardProject.model_validate(p) for p in r.json()]

    def create_project(self, payload: schemas.ProjectCreate) -> dict:
        r = self._request("POST", "/projects/coordination", "create project", json=payload.to_api())
        return self._json(r)

    def rename_project(self, project_id: int, name: str) -> dict:
        r = self._request("PUT", f"/projects/{project_id}", "update project", json={"name": name})
        return self._json(r)

    def delete_project(self, project_id: int) -> None:
        self._request("DELETE", f"/projects/{project_id}", "delete project")

    # -------------------------
    # Notes
    # -------------------------
    def list_notes(self, project_id: int, note_type: Optional[str] = None) -> List[schemas.ProjectNote]:
        r = self._request(
            "GET", f"/projects/{project_id}/notes", "fetch notes", params=self._params(type=note_type)
        )
        return [schemas.ProjectNote.model_validate(n) for n in r.json()]

    def create_note(self, project_id: int, payload: schemas.NoteCreate) -> schemas.ProjectNote:
        r = self._request("POST", f"/projects/{project_id}/notes", "create note", json=payload.to_api())
        return schemas.ProjectNote.model_validate(r.json())

    def delete_note(self, project_id: int, note_id: int) -> None:
        self._request("DELETE", f"/projects/{project_id}/notes/{note_id}", "delete note")

    def upload_note_image(self, project_id: int, filename: str, content: bytes, content_type: str) -> str:
        r = self._request(
            "POST",
            f"/projects/{project_id}/notes/image",
            "upload image",
            files={"image": (filename, content, content_type)},
        )
        data = self._json(r)
        url = data.get("imageUrl") if isinstance(data, dict) else None
        if not url:
            logger.warning("POST %s -> no imageUrl in response", r.request.url.path)
            raise ApiError("Failed to upload image: response has no imageUrl", status_code=r.status_code)
        return url

    # -------------------------
    # Files
    # -------------------------
    def list_files(self, project_id: int, category: Optional[str] = None) -> List[schemas.ProjectFile]:
        r = self._request(
            "GET", f"/projects/{project_id}/files", "fetch files", params=self._params(category=category)
        )
        return [schemas.ProjectFile.model_validate(f) for f in r.json()]

    def create_file_link(self, project_id: int, payload: schemas.FileLinkCreate) -> schemas.ProjectFile:
        r = self._request("POST", f"/projects/{project_id}/files", "create file link", json=payload.to_api())
        return schemas.ProjectFile.model_validate(r.json())

    def upload_file(
        self, project_id: int, category: str, filename: str, content: bytes, content_type: str
    ) -> schemas.ProjectFile:
        r = self._request(
            "POST",
            f"/projects/{project_id}/files/upload",
            "upload file",
            params={"category": category},
            files={"file": (filename, content, content_type)},
        )
        return schemas.ProjectFile.model_validate(r.json())

    def delete_file(self, project_id: int, file_id: int) -> None:
        self._request("DELETE", f"/projects/{project_id}/files/{file_id}", "delete file")

    def list_project_equipment(self, project_id: int) -> List[schemas.ProjectEquipmentItem]:
        r = self._request("GET", f"/projects/{project_id}/equipment", "fetch project equipment")
        return [schemas.ProjectEquipmentItem.model_validate(i) for i in r.json()]

    # -------------------------
    # Fleet
    # -------------------------
    def list_equipment(self) -> List[schemas.EquipmentAsset]:
        r = self._request("GET", "/equipment", "fetch equipment")
        return [schemas.EquipmentAsset.model_validate(e) for e in r.json()]

    def create_equipment(self, payload: schemas.EquipmentCreate) -> dict:
        r = self._request("POST", "/equipment", "create equipment", json=payload.to_api())
        return self._json(r)

    def update_equipment(self, equipment_id: int, payload: schemas.EquipmentCreate) -> dict:
        r = self._request("PUT", f"/equipment/{equipment_id}", "update equipment", json=payload.to_api())
        return self._json(r)

    def delete_equipment(self, equipment_id: int) -> None:
        self._request("DELETE", f"/equipment/{equipment_id}", "delete equipment")

    # -------------------------
    # Fleet events
    # -------------------------
    def fleet_events(self) -> schemas.FleetEvents:
        r = self._request("GET", "/equipment/events/fleet", "fetch fleet events")
        return schemas.FleetEvents.model_validate(r.json())

    def create_assignment(self, equipment_id: int, body: dict) -> dict:
        r = self._request("POST", f"/equipment/{equipment_id}/assignments", "create assignment", json=body)
        return self._json(r)

    def create_service(self, equipment_id: int, body: dict) -> dict:
        r = self._request("POST", f"/equipment/{equipment_id}/services", "schedule service", json=body)
        return self._json(r)

    def create_movement(self, equipment_id: int, body: dict) -> dict:
        r = self._request("POST", f"/equipment/{equipment_id}/movements", "schedule movement", json=body)
        return self._json(r)

    def update_assignment_end(self, assignment_id: int, end_date: date) -> dict:
        r = self._request(
            "PUT",
            f"/equipment/assignments/{assignment_id}",
            "update assignment",
            json={"endDate": end_date.isoformat()},
        )
        return self._json(r)

    # -------------------------
    # Requests
    # -------------------------
    def list_requests(self) -> List[schemas.EquipmentRequest]:
        r = self._request("GET", "/equipment/requests", "fetch requests")
        return [schemas.EquipmentRequest.model_validate(x) for x in r.json()]

    def approve_request(self, request_id: int, body: dict) -> dict:
        r = self._request("POST", f"/equipment/requests/{request_id}/approve", "approve request", json=body)
        return self._json(r)

    def reject_request(self, request_id: int, decision_note: str) -> dict:
        r = self._request(
            "POST",
            f"/equipment/requests/{request_id}/reject",
            "reject request",
            json={"decisionNote": decision_note},
        )
        return self._json(r)
