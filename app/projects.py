# app/projects.py
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from app.errors import InvalidInput
from app.schemas import (
    DashboardProject,
    FileCategory,
    FileLinkCreate,
    LifecycleStage,
    NoteCreate,
    ProjectCreate,
    ProjectFile,
    ProjectNote,
)

STAGE_FILTERS = {
    "active": {LifecycleStage.ONGOING, LifecycleStage.AWARDED},
    "awarded": {LifecycleStage.AWARDED},
    "completed": {LifecycleStage.COMPLETED},
}


def filter_projects(
    projects: Iterable[DashboardProject],
    stage_filter: Optional[str] = "active",
    search: Optional[str] = None,
) -> List[DashboardProject]:
    """``stage_filter`` is active / awarded / completed; anything else shows all."""
    stages = STAGE_FILTERS.get((stage_filter or "").lower())
    term = (search or "").strip().lower()
    out = []
    for p in projects:
        if stages is not None and p.lifecycle_stage not in stages:
            continue
        if term and term not in f"{p.name} {p.address or ''}".lower():
            continue
        out.append(p)
    return out


def validate_new_project(payload: ProjectCreate) -> ProjectCreate:
    name = payload.name.strip()
    address = payload.exact_location.strip()
    if not name:
        raise InvalidInput("Project name is required")
    if not address:
        raise InvalidInput("Project address is required")
    if payload.lifecycle_stage == LifecycleStage.ESTIMATION:
        raise InvalidInput("Estimation projects can't be created from the coordination board")
    return payload.model_copy(update={
        "name": name,
        "exact_location": address,
        "project_type": payload.project_type or None,
        "client_name": payload.client_name or None,
        "notes": payload.notes or None,
    })


def validate_project_name(name: str) -> str:
    name = (name or "").strip()
    if len(name) < 2:
        raise InvalidInput("Project name must be at least 2 characters")
    return name


# -------------------------
# Notes & files
# -------------------------
def validate_note(payload: NoteCreate) -> NoteCreate:
    content = payload.content.strip()
    if not content:
        raise InvalidInput("Note content is required")
    return payload.model_copy(update={"content": content})


def search_notes(notes: Iterable[ProjectNote], search: Optional[str]) -> List[ProjectNote]:
    term = (search or "").lower()
    return [n for n in notes if not term or term in n.content.lower()]


def validate_file_link(payload: FileLinkCreate) -> FileLinkCreate:
    name = payload.name.strip()
    url = payload.url.strip()
    if not name or not url:
        raise InvalidInput("File name and URL are required")
    return payload.model_copy(update={"name": name, "url": url})


def files_by_category(files: Iterable[ProjectFile], search: Optional[str] = None) -> Dict[str, List[ProjectFile]]:
    term = (search or "").lower()
    grouped: Dict[str, List[ProjectFile]] = {c.value: [] for c in FileCategory}
    for f in files:
        if term and term not in f.name.lower():
            continue
        grouped[f.category.value].append(f)
    return grouped
