#app/crud/provider.py
from sqlalchemy.orm import Session
from app.models.provider import Provider, GitHubRepo
from typing import List, Dict, Any, Optional
import logging

logger = logging.getLogger("Teamwork.Providers")

def _snapshot(provider: Provider) -> Dict[str, Any]:
    return {
        "id": provider.id,
        "userId": provider.user_id,
        "teamId": provider.team_id,
        "service": provider.service,
        "isActive": provider.is_active,
    }

def deactivate_user_providers(db: Session, user_id: str, team_id: str) -> List[Dict[str, Any]]:
    """
    Деактивирует все активные credentials пользователя в команде.
    Возвращает новые значения изменённых записей.
    """
    providers = (
        db.query(Provider)
        .filter(Provider.team_id == team_id, Provider.user_id == user_id, Provider.is_active == True)
        .with_for_update()
        .all()
    )
    changed = []
    for provider in providers:
        provider.is_active = False
        changed.append(_snapshot(provider))
    if changed:
        logger.info(f"Deactivated {len(changed)} providers of user {user_id} in team {team_id}")
    return changed

def get_active_providers(db: Session, team_id: str, service: str) -> List[Provider]:
    return (
        db.query(Provider)
        .filter(Provider.team_id == team_id, Provider.service == service, Provider.is_active == True)
        .all()
    )

def get_active_repo(db: Session, team_id: str, name_with_owner: str) -> Optional[GitHubRepo]:
    return (
        db.query(GitHubRepo)
        .filter(
            GitHubRepo.team_id == team_id,
            GitHubRepo.name_with_owner == name_with_owner,
            GitHubRepo.is_active == True,
        )
        .first()
    )

def get_team_repos(db: Session, team_ids: List[str]) -> List[GitHubRepo]:
    return (
        db.query(GitHubRepo)
        .filter(GitHubRepo.team_id.in_(team_ids), GitHubRepo.is_active == True)
        .order_by(GitHubRepo.id)
        .with_for_update()
        .all()
    )
