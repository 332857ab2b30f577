"""Services for managing projects."""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from workflow_notifier.errors import ProjectExistsError, ProjectNotFoundError
from workflow_notifier.logger import get_logger
from workflow_notifier.models import Project

logger = get_logger(__name__)


def get_project(session: Session, project_id: int) -> Project:
    project = session.get(Project, project_id)
    if project is None:
        raise ProjectNotFoundError(f"Project {project_id} not found")
    return project


def find_project(session: Session, repository: str) -> Optional[Project]:
    return session.query(Project).filter_by(repository=repository).first()


def list_projects(session: Session, *, active_only: bool = False) -> list[Project]:
    q = session.query(Project)
    if active_only:
        q = q.filter(Project.is_active.is_(True))
    return q.order_by(Project.created_at.desc(), Project.id.desc()).all()


def create_project(
    session: Session,
    name: str,
    repository: str,
    description: Optional[str] = None,
) -> Project:
    if find_project(session, repository) is not None:
        raise ProjectExistsError(f"Project with repository {repository} already exists")
    project = Project(name=name, repository=repository, description=description, is_active=True)
    session.add(project)
    session.commit()
    session.refresh(project)
    logger.info("project_created", project_id=project.id, repository=repository)
    return project


def ensure_project(session: Session, repository: str) -> Project:
    """
    Get or create the project for ``repository``.

    Auto-created projects are named after the repository part of ``owner/repo``.
    """
    project = find_project(session, repository)
    if project is None:
        project = create_project(
            session,
            name=repository.split("/", 1)[-1],
            repository=repository,
            description=f"Auto-created project for {repository}",
        )
    return project


def update_project(
    session: Session,
    project_id: int,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    is_active: Optional[bool] = None,
) -> Project:
    project = get_project(session, project_id)
    if name is not None:
        project.name = name
    if description is not None:
        project.description = description
    if is_active is not None:
        project.is_active = is_active
    session.commit()
    session.refresh(project)
    return project


def toggle_project(session: Session, project_id: int) -> Project:
    project = get_project(session, project_id)
    project.is_active = not project.is_active
    session.commit()
    session.refresh(project)
    logger.info("project_toggled", project_id=project.id, is_active=project.is_active)
    return project


def delete_project(session: Session, project_id: int) -> None:
    project = get_project(session, project_id)
    session.delete(project)
    session.commit()
    logger.info("project_deleted", project_id=project_id, repository=project.repository)
