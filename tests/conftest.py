import json
import re

import httpx
import pytest
from fastapi.testclient import TestClient

from app.client import CoordinationClient
from app.main import create_app
from app.store import FleetStore

BASE_URL = "http://coordination.test/api/v1"


class FakeApi:
    """In-memory coordination API served through ``httpx.MockTransport``."""

    def __init__(self):
        self.projects = [
            {"id": 1, "name": "Harbor Tower", "address": "12 Pier Rd", "lifecycleStage": "ONGOING"},
            {"id": 2, "name": "North Depot", "address": "4 Rail St", "lifecycleStage": "AWARDED"},
            {"id": 3, "name": "Old Mill", "address": "1 Mill Ln", "lifecycleStage": "COMPLETED"},
            {"id": 4, "name": "Riverside Bid", "address": None, "lifecycleStage": "ESTIMATION"},
        ]
        self.equipment = [
            {"id": 10, "name": "Manlift A", "serialCode": "ML-1", "type": "MANLIFT"},
            {"id": 11, "name": "Truck B", "serialCode": "TR-2", "type": "TRUCK"},
            {"id": 12, "name": "Forklift C", "serialCode": None, "type": "FORKLIFT"},
            {"id": 13, "name": "Excavator D", "serialCode": "EX-4", "type": "EXCAVATOR"},
        ]
        self.events = {
            "assignments": [
                {"id": 100, "equipmentId": 10, "projectId": 1,
                 "startDate": "2024-01-01T00:00:00.000Z", "endDate": None},
            ],
            "services": [
                {"id": 200, "equipmentId": 10, "type": "ROUTINE",
                 "scheduledStart": "2024-03-01", "scheduledEnd": "2024-03-07"},
                {"id": 201, "equipmentId": 11, "type": "REPAIR",
                 "scheduledStart": "2024-02-14T00:00:00.000Z", "scheduledEnd": "2024-02-16T00:00:00.000Z"},
            ],
            "movements": [
                {"id": 300, "equipmentId": 12, "startDate": "2024-03-01",
                 "fromProjectId": 1, "toProjectId": 2},
            ],
        }
        self.requests = [
            {"id": 1, "type": "ASSIGNMENT", "projectId": 2, "requestedType": "EXCAVATOR",
             "startDate": "2024-02-20", "endDate": "2024-02-28", "status": "PENDING"},
            {"id": 2, "type": "MOVEMENT", "projectId": 2, "equipmentId": 10,
             "startDate": "2024-02-18", "fromProjectId": 1, "toProjectId": 2, "status": "PENDING"},
            {"id": 3, "type": "ASSIGNMENT", "projectId": 1, "equipmentId": 13,
             "startDate": "2024-02-01", "endDate": "2024-02-05", "status": "APPROVED",
             "decidedAt": "2024-02-10T09:00:00Z"},
            {"id": 4, "type": "ASSIGNMENT", "projectId": 1, "requestedType": "TRUCK",
             "startDate": "2024-02-02", "endDate": "2024-02-03", "status": "REJECTED",
             "decidedAt": "2024-02-12T09:00:00Z", "decisionNote": "No trucks free"},
        ]
        self.notes = [
            {"id": 1, "content": "Crane delivery moved to Friday", "type": "SCHEDULE",
             "author": {"id": 7, "name": "Dana"}, "createdAt": "2024-02-10T08:00:00Z"},
            {"id": 2, "content": "Rebar short by 2 tons", "type": "MATERIAL",
             "author": {"id": 7, "name": "Dana"}, "createdAt": "2024-02-11T08:00:00Z"},
        ]
        self.files = [
            {"id": 1, "projectId": 1, "name": "Level 3 drawings", "url": "https://files.test/l3",
             "category": "DRAWINGS_LINK", "uploadedAt": "2024-02-01T10:00:00Z"},
            {"id": 2, "projectId": 1, "name": "Change order 7", "url": "https://files.test/co7.pdf",
             "category": "CHANGE_ORDERS", "uploadedAt": "2024-02-03T10:00:00Z"},
        ]
        self.project_equipment = [
            {"assignmentId": 100, "equipmentId": 10, "equipmentName": "Manlift A", "serialCode": "ML-1",
             "type": "MANLIFT", "status": "ASSIGNED", "deliveryDate": "2024-01-01T00:00:00.000Z"},
        ]
        self.calls = []
        self.failures = {}

    # -------------------------
    # helpers for assertions
    # -------------------------
    def fail(self, method: str, path: str, status: int = 500, text: str = "") -> None:
        self.failures[(method, path)] = (status, text)

    def sent(self, method: str = None):
        return [c for c in self.calls if method is None or c[0] == method]

    def count(self, method: str, path: str) -> int:
        return sum(1 for m, p, _ in self.calls if m == method and p == path)

    # -------------------------
    # transport
    # -------------------------
    def handler(self, request: httpx.Request) -> httpx.Response:
        method = request.method
        path = request.url.path[len("/api/v1"):]
        body = None
        if request.headers.get("content-type", "").startswith("application/json") and request.content:
            body = json.loads(request.content)
        self.calls.append((method, path, body))

        if (method, path) in self.failures:
            status, text = self.failures[(method, path)]
            return httpx.Response(status, text=text)

        for m, pattern, respond in self._routes():
            if m == method and re.fullmatch(pattern, path):
                return respond(request, body)
        return httpx.Response(404, text=f"No route {method} {path}")

    def _routes(self):
        ok = lambda request, body: httpx.Response(200, json={"ok": True})
        gone = lambda request, body: httpx.Response(204)
        created = lambda request, body: httpx.Response(201, json={"id": 999, **(body or {})})
        return [
            ("GET", r"/projects/dashboard", lambda r, b: httpx.Response(200, json=self.projects)),
            ("POST", r"/projects/coordination", created),
            ("PUT", r"/projects/\d+", ok),
            ("DELETE", r"/projects/\d+", gone),
            ("GET", r"/projects/\d+/notes", lambda r, b: httpx.Response(200, json=self.notes)),
            ("POST", r"/projects/\d+/notes/image",
             lambda r, b: httpx.Response(200, json={"imageUrl": "https://files.test/img.png"})),
            ("POST", r"/projects/\d+/notes", lambda r, b: httpx.Response(201, json={
                "id": 3, "author": {"id": 7}, "createdAt": "2024-02-15T08:00:00Z", **b})),
            ("DELETE", r"/projects/\d+/notes/\d+", gone),
            ("GET", r"/projects/\d+/files", lambda r, b: httpx.Response(200, json=self.files)),
            ("POST", r"/projects/\d+/files/upload", lambda r, b: httpx.Response(201, json={
                "id": 9, "projectId": 1, "name": "upload.pdf", "url": "https://files.test/upload.pdf",
                "category": r.url.params["category"], "uploadedAt": "2024-02-15T08:00:00Z"})),
            ("POST", r"/projects/\d+/files", lambda r, b: httpx.Response(201, json={
                "id": 8, "projectId": 1, "uploadedAt": "2024-02-15T08:00:00Z", **b})),
            ("DELETE", r"/projects/\d+/files/\d+", gone),
            ("GET", r"/projects/\d+/equipment", lambda r, b: httpx.Response(200, json=self.project_equipment)),
            ("GET", r"/equipment", lambda r, b: httpx.Response(200, json=self.equipment)),
            ("POST", r"/equipment", created),
            ("GET", r"/equipment/events/fleet", lambda r, b: httpx.Response(200, json=self.events)),
            ("GET", r"/equipment/requests", lambda r, b: httpx.Response(200, json=self.requests)),
            ("POST", r"/equipment/requests/\d+/(approve|reject)", ok),
            ("PUT", r"/equipment/assignments/\d+", ok),
            ("POST", r"/equipment/\d+/(assignments|services|movements)", created),
            ("PUT", r"/equipment/\d+", ok),
            ("DELETE", r"/equipment/\d+", gone),
        ]


@pytest.fixture
def fake_api():
    return FakeApi()


@pytest.fixture
def api_client(fake_api):
    client = CoordinationClient(base_url=BASE_URL, transport=httpx.MockTransport(fake_api.handler))
    yield client
    client.close()


@pytest.fixture
def store(api_client):
    return FleetStore(api_client)


@pytest.fixture
def http(api_client):
    return TestClient(create_app(api_client))
