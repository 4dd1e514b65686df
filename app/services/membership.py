#app/services/membership.py
"""
Жизненный цикл членства в команде: удаление участника и передача лидерства.

Удаление (шаги 1-5) - одна транзакция: CAS на is_not_removed, смена лидера или
архивирование команды, переназначение проектов, tms пользователя, деактивация
provider-ов, удаление уведомлений, kickout-уведомление. Очистка GitHub (шаг 6)
идёт после коммита и членство не откатывает.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.exceptions import (
    AlreadyRemovedError,
    BaseAppException,
    PermissionDeniedError,
    StoreError,
    ValidationError,
)
from app.core.identity import split_team_member_id
from app.crud.notification import (
    create_kickout_notification,
    delete_notifications,
    get_user_notifications_for_team,
)
from app.crud.project import reassign_active_projects
from app.crud.provider import deactivate_user_providers
from app.crud.team import (
    archive_team,
    bump_lead_version,
    claim_removal,
    get_active_team_members,
    get_team,
    get_team_lead,
    get_team_member,
    select_successor,
    transfer_leadership,
)
from app.crud.user import remove_team_from_user
from app.models.provider import GITHUB
from app.models.team import TeamMember
from app.models.user import User
from app.services.repo_cleanup import RepoCleanup

logger = logging.getLogger("Teamwork.Membership")

@dataclass
class RemovalResult:
    team_id: str
    team_member_id: str
    user: User
    removed_notifications: List[Dict[str, Any]] = field(default_factory=list)
    notification_id: Optional[str] = None
    archived_project_ids: List[str] = field(default_factory=list)
    reassigned_project_ids: List[str] = field(default_factory=list)
    successor_id: Optional[str] = None
    team_archived: bool = False
    integration_error: Optional[str] = None

def require_team_lead(db: Session, team_id: str, user_id: str) -> TeamMember:
    lead = get_team_lead(get_active_team_members(db, team_id))
    if lead is None or lead.user_id != user_id:
        raise PermissionDeniedError("Only the team lead can do that")
    return lead

def remove_team_member(
    db: Session,
    team_member_id: str,
    is_kickout: bool = False,
    now: Optional[datetime] = None,
    repo_cleanup: Optional[RepoCleanup] = None,
) -> RemovalResult:
    """
    Удаляет участника из команды. Бросает AlreadyRemovedError, если участник
    уже удалён (в т.ч. параллельным запросом), TransactionConflictError, если
    параллельно сменилось лидерство, StoreError при сбое БД. Во всех этих
    случаях ничего не применяется.
    """
    now = now or utcnow()
    user_id, team_id = split_team_member_id(team_member_id)

    try:
        # Порядок блокировок везде один: команда, участник, состав команды
        team = get_team(db, team_id, for_update=True)
        target = get_team_member(db, team_member_id, for_update=True)
        if not target.is_not_removed:
            raise AlreadyRemovedError(f"Team member {team_member_id} already removed.")
        active_members = get_active_team_members(db, team_id, for_update=True)

        # Любое удаление поднимает lead_version: состав и преемник, прочитанные
        # выше, актуальны, только если версия не сменилась с чтения команды
        bump_lead_version(db, team)
        claim_removal(db, team_member_id, now)
        target.is_not_removed = False

        successor = select_successor(target, active_members)
        if successor is None:
            archive_team(db, team, versioned=False)
        elif target.is_lead:
            transfer_leadership(db, team, target, successor, versioned=False)

        reassigned = reassign_active_projects(db, target.id, successor) if successor else []
        user = remove_team_from_user(db, user_id, team_id)
        changed_providers = deactivate_user_providers(db, user_id, team_id)
        removed_notifications = delete_notifications(
            db, get_user_notifications_for_team(db, user_id, team_id)
        )
        notification_id = None
        if is_kickout:
            notification_id = create_kickout_notification(db, user_id, team_id, now).id

        db.commit()
    except BaseAppException:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to remove team member {team_member_id}: {e}")
        raise StoreError("Database error while removing team member.")

    result = RemovalResult(
        team_id=team_id,
        team_member_id=team_member_id,
        user=user,
        removed_notifications=removed_notifications,
        notification_id=notification_id,
        reassigned_project_ids=[p.id for p in reassigned],
        successor_id=successor.id if successor else None,
        team_archived=successor is None,
    )
    logger.info(
        f"Removed team member {team_member_id} (kickout={is_kickout}): "
        f"successor={result.successor_id}, reassigned={result.reassigned_project_ids}, "
        f"team_archived={result.team_archived}"
    )

    if any(provider["service"] == GITHUB for provider in changed_providers):
        cleanup = repo_cleanup or RepoCleanup(db)
        try:
            repo_changes = cleanup.remove_repos_for_user(user_id, [team_id])
            result.archived_project_ids = cleanup.archive_projects_for_repos(repo_changes)
        except Exception as e:
            db.rollback()
            logger.error(f"GitHub cleanup after removing {team_member_id} failed: {e}", exc_info=True)
            result.integration_error = str(e) or e.__class__.__name__
    return result

@dataclass
class PromotionResult:
    team_id: str
    team_member: TeamMember
    old_lead_id: Optional[str] = None

def promote_to_team_lead(
    db: Session,
    team_member_id: str,
    viewer_id: str,
) -> PromotionResult:
    """
    Текущий лидер передаёт лидерство другому активному участнику.
    """
    _, team_id = split_team_member_id(team_member_id)
    try:
        team = get_team(db, team_id, for_update=True)
        if team.is_archived:
            raise ValidationError(f"Team {team_id} is archived")
        target = get_team_member(db, team_member_id, for_update=True)
        if not target.is_not_removed:
            raise ValidationError(f"{team_member_id} is not an active team member")
        lead = get_team_lead(get_active_team_members(db, team_id, for_update=True))
        if lead is None or lead.user_id != viewer_id:
            raise PermissionDeniedError("Only the team lead can promote a new lead")
        if lead.id == target.id:
            db.rollback()
            return PromotionResult(team_id=team_id, team_member=target, old_lead_id=lead.id)
        transfer_leadership(db, team, lead, target)
        db.commit()
    except BaseAppException:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to promote {team_member_id}: {e}")
        raise StoreError("Database error while promoting team lead.")
    return PromotionResult(team_id=team_id, team_member=target, old_lead_id=lead.id)
