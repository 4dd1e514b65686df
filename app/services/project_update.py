#app/services/project_update.py
"""
Обновление проекта: одна транзакция на проект (перечитывается под блокировкой),
debounce-история, diff уведомлений; после коммита fanout по правилу видимости.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.draft import PRIVATE_TAG, get_tags_from_entity_map, parse_content
from app.core.exceptions import BaseAppException, ProjectValidationError, StoreError
from app.core.identity import compose_team_member_id, team_id_from_project_id
from app.core.security import AuthToken, require_team_member
from app.crud.notification import apply_notification_diff
from app.crud.project import get_project
from app.crud.project_history import is_history_worthy, log_project_history
from app.crud.team import get_active_team_members, get_team
from app.models.project import Project
from app.models.team import TeamMember
from app.services.fanout import FanoutPublisher, SubOptions
from app.services.notification_diff import NotificationDiff, compute_notification_diff

logger = logging.getLogger("Teamwork.ProjectUpdate")

PROJECT = "project"
UPDATE_PROJECT_PAYLOAD = "UpdateProjectPayload"

MEETING_AREA = "meeting"
VALID_STATUSES = ("active", "stuck", "done", "future")
UPDATABLE_FIELDS = ("content", "status", "user_id", "sort_order", "agenda_id")

@dataclass(frozen=True)
class ProjectVisibility:
    is_private: bool
    was_private: bool

    @property
    def is_privatized(self) -> bool:
        return self.is_private and not self.was_private

    @property
    def is_public(self) -> bool:
        # только что закрытый проект ещё рассылается всем, чтобы клиенты убрали его у себя
        return not self.is_private or self.is_privatized

def compute_visibility(new_tags: Iterable[str], old_tags: Iterable[str]) -> ProjectVisibility:
    return ProjectVisibility(
        is_private=PRIVATE_TAG in (new_tags or []),
        was_private=PRIVATE_TAG in (old_tags or []),
    )

def project_recipients(
    team_members: Iterable[TeamMember],
    visibility: ProjectVisibility,
    owner_user_id: str,
    users_to_ignore: Iterable[str] = (),
) -> List[Tuple[str, bool]]:
    """
    (user_id, allow) для каждого участника: публичный (или только что закрытый)
    проект видят все, приватный только владелец; ignore-набор не получает ничего.
    """
    ignored = set(users_to_ignore)
    return [
        (
            member.user_id,
            member.user_id not in ignored
            and (visibility.is_public or member.user_id == owner_user_id),
        )
        for member in team_members
    ]

def get_users_to_ignore(area: Optional[str], team_members: Iterable[TeamMember]) -> List[str]:
    """
    Правка из встречи: отмеченные на встрече участники видят её вживую.
    """
    if area != MEETING_AREA:
        return []
    return sorted(m.user_id for m in team_members if m.is_checked_in)

def project_snapshot(project: Project) -> Dict[str, Any]:
    return {
        "id": project.id,
        "team_id": project.team_id,
        "team_member_id": project.team_member_id,
        "user_id": project.user_id,
        "content": project.content,
        "status": project.status,
        "tags": list(project.tags or []),
    }

def validate_project_changes(updated_fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Проверяет входные поля и выводит теги из контента.
    """
    changes = {k: v for k, v in updated_fields.items() if v is not None}
    if not changes:
        raise ProjectValidationError("Updated project must include at least one field besides the id.")
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ProjectValidationError(f"Unknown project fields: {sorted(unknown)}")
    if "status" in changes and changes["status"] not in VALID_STATUSES:
        raise ProjectValidationError(f"Invalid status '{changes['status']}'")
    if "content" in changes:
        changes["tags"] = get_tags_from_entity_map(parse_content(changes["content"]))
    return changes

@dataclass
class AppliedProjectUpdate:
    old_project: Dict[str, Any]
    new_project: Dict[str, Any]
    team_members: List[TeamMember]
    users_to_ignore: List[str]
    diff: NotificationDiff

def apply_project_update(
    db: Session,
    project_id: str,
    changes: Dict[str, Any],
    viewer_id: str,
    area: Optional[str] = None,
    now: Optional[datetime] = None,
    history_window: Optional[timedelta] = None,
) -> AppliedProjectUpdate:
    """
    Транзакционная часть обновления (блокирующая, вызывать из threadpool).
    """
    now = now or utcnow()
    team_id = team_id_from_project_id(project_id)
    try:
        team = get_team(db, team_id)
        if team.is_archived:
            raise ProjectValidationError(f"Team {team_id} is archived")
        project = get_project(db, project_id, for_update=True)
        old_project = project_snapshot(project)
        team_members = get_active_team_members(db, team_id)

        if "user_id" in changes:
            new_owner_id = compose_team_member_id(changes["user_id"], team_id)
            owner = next((m for m in team_members if m.id == new_owner_id), None)
            if owner is None:
                raise ProjectValidationError(f"{changes['user_id']} is not an active member of team {team_id}")
            project.team_member_id = owner.id
            project.user_id = owner.user_id
        for key in ("content", "tags", "status", "sort_order", "agenda_id"):
            if key in changes:
                setattr(project, key, changes[key])

        if is_history_worthy(k for k in changes if k != "tags"):
            project.updated_at = now
            log_project_history(db, project.id, project_snapshot(project), now, history_window)

        users_to_ignore = get_users_to_ignore(area, team_members)
        new_project = project_snapshot(project)
        diff = compute_notification_diff(
            new_project,
            old_project,
            viewer_id,
            users_to_ignore,
            team_user_ids=[m.user_id for m in team_members],
        )
        apply_notification_diff(db, diff, now)
        db.commit()
    except BaseAppException:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update project {project_id}: {e}")
        raise StoreError("Database error while updating project.")
    return AppliedProjectUpdate(old_project, new_project, team_members, users_to_ignore, diff)

async def update_project(
    db: Session,
    project_id: str,
    updated_fields: Dict[str, Any],
    auth_token: AuthToken,
    fanout: FanoutPublisher,
    sub_options: Optional[SubOptions] = None,
    area: Optional[str] = None,
    now: Optional[datetime] = None,
    history_window: Optional[timedelta] = None,
) -> Dict[str, Any]:
    viewer_id = auth_token.sub
    require_team_member(auth_token, team_id_from_project_id(project_id))
    changes = validate_project_changes(updated_fields)

    applied = await run_in_threadpool(
        apply_project_update, db, project_id, changes, viewer_id, area, now, history_window
    )

    # в event loop остаётся только fanout
    visibility = compute_visibility(applied.new_project["tags"], applied.old_project["tags"])
    data = {
        "projectId": project_id,
        "isPrivatized": visibility.is_privatized,
        **applied.diff.to_dict(),
    }
    recipients = project_recipients(
        applied.team_members, visibility, applied.new_project["user_id"], applied.users_to_ignore
    )
    delivered = fanout.fanout(PROJECT, UPDATE_PROJECT_PAYLOAD, data, recipients, sub_options)
    logger.info(
        f"Updated project {project_id} by {viewer_id}: fields={sorted(changes)}, "
        f"privatized={visibility.is_privatized}, deliveries={delivered}"
    )
    return data
