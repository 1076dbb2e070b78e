# app/routers/requests.py
from __future__ import annotations
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends

from .. import review, schemas
from ..deps import get_store, get_today
from ..store import FleetStore

router = APIRouter(prefix="/requests", tags=["Requests"])


@router.get("/", response_model=List[schemas.EquipmentRequest])
def list_requests(
    view: Optional[str] = "pending",  # pending / history / all
    store: FleetStore = Depends(get_store),
):
    if view == "pending":
        return review.pending_requests(store.requests)
    if view == "history":
        return review.request_history(store.requests)
    return store.requests


@router.get("/{request_id}", response_model=schemas.EquipmentRequest)
def get_request(request_id: int, store: FleetStore = Depends(get_store)):
    return store.request(request_id)


@router.post("/{request_id}/check")
def check_request(
    request_id: int,
    payload: schemas.ApprovePayload,
    today: date = Depends(get_today),
    store: FleetStore = Depends(get_store),
):
    return store.preview_request(request_id, payload, today)


@router.post("/{request_id}/approve")
def approve_request(
    request_id: int,
    payload: schemas.ApprovePayload,
    today: date = Depends(get_today),
    store: FleetStore = Depends(get_store),
):
    return store.approve_request(request_id, payload, today)


@router.post("/{request_id}/reject")
def reject_request(
    request_id: int,
    payload: schemas.RejectPayload,
    store: FleetStore = Depends(get_store),
):
    return store.reject_request(request_id, payload.decision_note)
