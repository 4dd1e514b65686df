#app/services/repo_cleanup.py
"""
Очистка GitHub-интеграций после ухода пользователя из команды.
Выполняется ПОСЛЕ коммита членства, отдельной транзакцией, best-effort.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import IntegrationCleanupError
from app.crud.project import archive_projects, get_projects_for_repo
from app.crud.provider import get_active_providers, get_team_repos
from app.models.provider import GITHUB

logger = logging.getLogger("Teamwork.RepoCleanup")

@dataclass(frozen=True)
class RepoChange:
    repo_id: str
    team_id: str
    name_with_owner: str
    removed_user_id: str
    admin_user_id: Optional[str]
    is_deactivated: bool

class RepoCleanup:
    def __init__(self, db: Session):
        self.db = db

    def _github_user_ids(self, team_id: str) -> Set[str]:
        return {p.user_id for p in get_active_providers(self.db, team_id, GITHUB)}

    def remove_repos_for_user(self, user_id: str, team_ids: List[str]) -> List[RepoChange]:
        """
        Убирает пользователя из репозиториев команд. Если он был админом,
        админство переходит к участнику репозитория с активным GitHub provider-ом,
        а если такого нет, репозиторий деактивируется.
        """
        changes = []
        try:
            for repo in get_team_repos(self.db, team_ids):
                repo_users = list(repo.user_ids or [])
                if user_id not in repo_users and repo.admin_user_id != user_id:
                    continue
                repo.user_ids = [u for u in repo_users if u != user_id]
                if repo.admin_user_id == user_id:
                    eligible = self._github_user_ids(repo.team_id)
                    repo.admin_user_id = next((u for u in sorted(repo.user_ids) if u in eligible), None)
                if not repo.admin_user_id:
                    repo.is_active = False
                changes.append(RepoChange(
                    repo_id=repo.id,
                    team_id=repo.team_id,
                    name_with_owner=repo.name_with_owner,
                    removed_user_id=user_id,
                    admin_user_id=repo.admin_user_id,
                    is_deactivated=not repo.is_active,
                ))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to remove GitHub repos for user {user_id}: {e}")
            raise IntegrationCleanupError(f"Could not remove GitHub repos for user {user_id}")
        logger.info(f"Removed user {user_id} from {len(changes)} GitHub repos")
        return changes

    def archive_projects_for_repos(self, repo_changes: List[RepoChange]) -> List[str]:
        """
        Архивирует проекты, у которых больше нет валидной пары админ/исполнитель:
        репозиторий выключен, либо у владельца проекта нет активного GitHub provider-а.
        """
        candidate_ids = []
        try:
            for change in repo_changes:
                eligible = self._github_user_ids(change.team_id)
                for project in get_projects_for_repo(self.db, change.team_id, change.name_with_owner):
                    if change.is_deactivated or project.user_id not in eligible:
                        candidate_ids.append(project.id)
            archived_ids = archive_projects(self.db, candidate_ids)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to archive projects for repos: {e}")
            raise IntegrationCleanupError("Could not archive projects for removed GitHub repos")
        if archived_ids:
            logger.info(f"Archived projects {archived_ids} after GitHub repo cleanup")
        return archived_ids
