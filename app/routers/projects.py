# app/routers/projects.py
from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from starlette.concurrency import run_in_threadpool

from .. import projects, schemas
from ..deps import get_store
from ..errors import InvalidInput
from ..store import FleetStore

router = APIRouter(prefix="/projects", tags=["Projects"])


# -------------------------
# Projects
# -------------------------
@router.get("/", response_model=List[schemas.DashboardProject])
def list_projects(
    stage: Optional[str] = "active",  # active / awarded / completed / all
    search: Optional[str] = None,
    store: FleetStore = Depends(get_store),
):
    return projects.filter_projects(store.projects, stage, search)


@router.post("/")
def create_project(payload: schemas.ProjectCreate, store: FleetStore = Depends(get_store)):
    return store.create_project(payload)


@router.put("/{project_id}")
def rename_project(project_id: int, payload: schemas.ProjectRename, store: FleetStore = Depends(get_store)):
    return store.rename_project(project_id, payload.name)


@router.delete("/{project_id}")
def delete_project(project_id: int, store: FleetStore = Depends(get_store)):
    store.delete_project(project_id)
    return {"ok": True}


@router.get("/{project_id}/equipment", response_model=List[schemas.ProjectEquipmentItem])
def project_equipment(project_id: int, store: FleetStore = Depends(get_store)):
    return store.client.list_project_equipment(project_id)


# -------------------------
# Notes
# -------------------------
@router.get("/{project_id}/notes", response_model=List[schemas.ProjectNote])
def list_notes(
    project_id: int,
    type: Optional[schemas.NoteType] = None,
    search: Optional[str] = None,
    store: FleetStore = Depends(get_store),
):
    notes = store.client.list_notes(project_id, type.value if type else None)
    return projects.search_notes(notes, search)


@router.post("/{project_id}/notes", response_model=schemas.ProjectNote)
def create_note(project_id: int, payload: schemas.NoteCreate, store: FleetStore = Depends(get_store)):
    return store.client.create_note(project_id, projects.validate_note(payload))


@router.delete("/{project_id}/notes/{note_id}")
def delete_note(project_id: int, note_id: int, store: FleetStore = Depends(get_store)):
    store.client.delete_note(project_id, note_id)
    return {"ok": True}


@router.post("/{project_id}/notes/image")
async def upload_note_image(
    project_id: int,
    image: UploadFile = File(...),
    store: FleetStore = Depends(get_store),
):
    content_type = image.content_type or ""
    if not content_type.startswith("image/"):
        raise InvalidInput("Only image files can be attached to notes")
    content = await image.read()
    url = await run_in_threadpool(
        store.client.upload_note_image, project_id, image.filename or "image", content, content_type
    )
    return {"imageUrl": url}


# -------------------------
# Files
# -------------------------
@router.get("/{project_id}/files")
def list_files(
    project_id: int,
    category: Optional[schemas.FileCategory] = None,
    search: Optional[str] = None,
    grouped: bool = False,
    store: FleetStore = Depends(get_store),
):
    files = store.client.list_files(project_id, category.value if category else None)
    if grouped:
        return {
            c: [f.to_api() for f in items]
            for c, items in projects.files_by_category(files, search).items()
        }
    term = (search or "").lower()
    return [f.to_api() for f in files if not term or term in f.name.lower()]


@router.post("/{project_id}/files", response_model=schemas.ProjectFile)
def create_file_link(project_id: int, payload: schemas.FileLinkCreate, store: FleetStore = Depends(get_store)):
    return store.client.create_file_link(project_id, projects.validate_file_link(payload))


@router.post("/{project_id}/files/upload", response_model=schemas.ProjectFile)
async def upload_file(
    project_id: int,
    category: schemas.FileCategory,
    file: UploadFile = File(...),
    store: FleetStore = Depends(get_store),
):
    content = await file.read()
    return await run_in_threadpool(
        store.client.upload_file,
        project_id,
        category.value,
        file.filename or "upload",
        content,
        file.content_type or "application/octet-stream",
    )


@router.delete("/{project_id}/files/{file_id}")
def delete_file(project_id: int, file_id: int, store: FleetStore = Depends(get_store)):
    store.client.delete_file(project_id, file_id)
    return {"ok": True}
