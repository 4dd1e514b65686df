#app/crud/team.py
"""
Чтение/запись команд и участников. Функции здесь НЕ делают commit:
их вызывают сервисы внутри одной транзакции.
"""
from sqlalchemy import update
from sqlalchemy.orm import Session
from app.models.team import Team, TeamMember
from app.core.exceptions import (
    TeamNotFound,
    TeamMemberNotFound,
    AlreadyRemovedError,
    TransactionConflictError,
)
from datetime import datetime
from typing import List, Optional
import logging

logger = logging.getLogger("Teamwork.Team")

def get_team(db: Session, team_id: str, for_update: bool = False) -> Team:
    """
    Получить команду по ID (опционально с блокировкой строки).
    """
    query = db.query(Team).filter(Team.id == team_id)
    if for_update:
        query = query.with_for_update().populate_existing()
    team = query.first()
    if not team:
        raise TeamNotFound(f"Team with id={team_id} not found.")
    return team

def get_team_member(db: Session, team_member_id: str, for_update: bool = False) -> TeamMember:
    """
    Получить участника по составному ID (в т.ч. удалённого).
    """
    query = db.query(TeamMember).filter(TeamMember.id == team_member_id)
    if for_update:
        query = query.with_for_update().populate_existing()
    member = query.first()
    if not member:
        raise TeamMemberNotFound(f"Team member {team_member_id} not found.")
    return member

def get_active_team_members(db: Session, team_id: str, for_update: bool = False) -> List[TeamMember]:
    """
    Активные участники команды в порядке вступления (старшие первыми).
    """
    query = (
        db.query(TeamMember)
        .filter(TeamMember.team_id == team_id, TeamMember.is_not_removed == True)
        .order_by(TeamMember.created_at.asc(), TeamMember.id.asc())
    )
    if for_update:
        query = query.with_for_update().populate_existing()
    return query.all()

def get_team_lead(members: List[TeamMember]) -> Optional[TeamMember]:
    return next((m for m in members if m.is_lead), None)

def select_successor(target: TeamMember, active_members: List[TeamMember]) -> Optional[TeamMember]:
    """
    Кому перейдут проекты (и лидерство) удаляемого участника.

    Лидер уходит: самый давний из остальных активных участников.
    Уходит не лидер: текущий лидер; если лидера нет, то самый давний из остальных.
    active_members должны быть отсортированы как в get_active_team_members.
    """
    others = [m for m in active_members if m.id != target.id]
    if not others:
        return None
    if not target.is_lead:
        lead = get_team_lead(others)
        if lead is not None:
            return lead
    return others[0]

def claim_removal(db: Session, team_member_id: str, now: datetime) -> None:
    """
    Compare-and-swap: is_not_removed True -> False. Ровно один из параллельных
    запросов на удаление одного участника увидит rowcount == 1.
    """
    result = db.execute(
        update(TeamMember)
        .where(TeamMember.id == team_member_id, TeamMember.is_not_removed == True)
        .values(is_not_removed=False, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise AlreadyRemovedError(f"Team member {team_member_id} already removed.")

def bump_lead_version(db: Session, team: Team) -> None:
    """
    Versioned update поля лидерства команды. Если версию уже кто-то поменял,
    TransactionConflictError (транзакцию откатывает вызывающий).
    """
    observed = team.lead_version or 0
    result = db.execute(
        update(Team)
        .where(Team.id == team.id, Team.lead_version == observed)
        .values(lead_version=observed + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise TransactionConflictError(f"Leadership of team {team.id} changed concurrently.")
    team.lead_version = observed + 1

def transfer_leadership(
    db: Session, team: Team, old_lead: TeamMember, new_lead: TeamMember, versioned: bool = True
) -> None:
    """
    versioned=False: версию уже поднял вызывающий в этой же транзакции.
    """
    if versioned:
        bump_lead_version(db, team)
    old_lead.is_lead = False
    new_lead.is_lead = True
    logger.info(f"Leadership of team {team.id}: {old_lead.id} -> {new_lead.id}")

def archive_team(db: Session, team: Team, versioned: bool = True) -> None:
    if versioned:
        bump_lead_version(db, team)
    team.is_archived = True
    logger.info(f"Archived team {team.id}: no active members left")
