# app/crud/project.py
"""
Проекты: чтение под блокировкой, переназначение владельца, архивирование.
Commit делают сервисы.
"""
from sqlalchemy.orm import Session
from app.models.project import Project
from app.models.team import TeamMember
from app.core.exceptions import ProjectNotFound
from app.core.draft import ARCHIVED_TAG
import logging
from typing import List, Iterable

logger = logging.getLogger("Teamwork.Projects")

def get_project(db: Session, project_id: str, for_update: bool = False) -> Project:
    """
    Возвращает проект по ID. С for_update строка перечитывается под блокировкой.
    """
    query = db.query(Project).filter(Project.id == project_id)
    if for_update:
        query = query.with_for_update()
    project = query.first()
    if not project:
        raise ProjectNotFound(f"Project with id={project_id} not found.")
    return project

def is_archived(project: Project) -> bool:
    return ARCHIVED_TAG in (project.tags or [])

def get_projects_owned_by(db: Session, team_member_id: str, for_update: bool = False) -> List[Project]:
    query = db.query(Project).filter(Project.team_member_id == team_member_id).order_by(Project.id)
    if for_update:
        query = query.with_for_update()
    return query.all()

def reassign_active_projects(db: Session, from_member_id: str, to_member: TeamMember) -> List[Project]:
    """
    Переназначает все неархивные проекты участника новому владельцу.
    Архивные проекты остаются за прежним владельцем.
    """
    reassigned = []
    for project in get_projects_owned_by(db, from_member_id, for_update=True):
        if is_archived(project):
            continue
        project.team_member_id = to_member.id
        project.user_id = to_member.user_id
        reassigned.append(project)
    if reassigned:
        logger.info(f"Reassigning {len(reassigned)} projects from {from_member_id} to {to_member.id}")
    return reassigned

def archive_projects(db: Session, project_ids: Iterable[str]) -> List[str]:
    """
    Добавляет тег archived. Возвращает id проектов, которые реально изменились.
    """
    archived_ids = []
    ids = list(project_ids)
    if not ids:
        return archived_ids
    for project in db.query(Project).filter(Project.id.in_(ids)).with_for_update().all():
        if is_archived(project):
            continue
        project.tags = list(project.tags or []) + [ARCHIVED_TAG]
        archived_ids.append(project.id)
    return sorted(archived_ids)

def get_projects_for_repo(db: Session, team_id: str, name_with_owner: str) -> List[Project]:
    # integration хранится в JSON, фильтруем по нему на стороне Python
    projects = db.query(Project).filter(Project.team_id == team_id).all()
    return [
        p for p in projects
        if p.integration and p.integration.get("nameWithOwner") == name_with_owner
    ]
