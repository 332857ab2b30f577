"""Project administration."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from workflow_notifier.errors import ProjectExistsError, ProjectNotFoundError
from workflow_notifier.models import Project
from workflow_notifier.routers.deps import get_db, require_admin
from workflow_notifier.schemas import ProjectRequest, ProjectUpdate
from workflow_notifier.services import projects as project_service

router = APIRouter(
    prefix="/api/projects", tags=["projects"], dependencies=[Depends(require_admin)]
)


def project_dict(p: Project) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "repository": p.repository,
        "description": p.description,
        "is_active": p.is_active,
        "created_at": p.created_at.isoformat() if p.created_at else None,
    }


@router.post("", status_code=201)
def create_project(body: ProjectRequest, db: Session = Depends(get_db)):
    try:
        project = project_service.create_project(
            db, body.name, body.repository, body.description
        )
    except ProjectExistsError as exc:
        raise HTTPException(409, str(exc)) from exc
    return {"message": "Project created successfully", "project": project_dict(project)}


@router.get("")
def list_projects(
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    projects = project_service.list_projects(db, active_only=active_only)
    return {"projects": [project_dict(p) for p in projects]}


@router.get("/{project_id}")
def get_project(project_id: int, db: Session = Depends(get_db)):
    try:
        project = project_service.get_project(db, project_id)
    except ProjectNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    data = project_dict(project)
    data["subscribers"] = len(project.subscribers)
    data["webhooks"] = len(project.webhooks)
    return {"project": data}


@router.put("/{project_id}")
def update_project(project_id: int, body: ProjectUpdate, db: Session = Depends(get_db)):
    try:
        project = project_service.update_project(
            db,
            project_id,
            name=body.name,
            description=body.description,
            is_active=body.is_active,
        )
    except ProjectNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    return {"message": "Project updated successfully", "project": project_dict(project)}


@router.patch("/{project_id}/toggle")
def toggle_project(project_id: int, db: Session = Depends(get_db)):
    try:
        project = project_service.toggle_project(db, project_id)
    except ProjectNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    state = "activated" if project.is_active else "deactivated"
    return {"message": f"Project {state} successfully", "project": project_dict(project)}


@router.delete("/{project_id}")
def delete_project(project_id: int, db: Session = Depends(get_db)):
    try:
        project_service.delete_project(db, project_id)
    except ProjectNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    return {"message": "Project deleted successfully"}
