#app/models/provider.py
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, JSON, ForeignKey, Index, func
from app.models.base import Base

GITHUB = "GitHubIntegration"

class Provider(Base):
    """
    Provider: credential внешнего сервиса для пары (user, team).
    При уходе из команды деактивируется, а не удаляется.
    """
    __tablename__ = "providers"

    id: str = Column(String(64), primary_key=True)
    user_id: str = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id: str = Column(String(64), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    service: str = Column(String(64), nullable=False, doc="Сервис интеграции")
    provider_user_name: str = Column(String(128), nullable=True, doc="Логин во внешнем сервисе")
    access_token: str = Column(String(512), nullable=True, doc="Токен доступа")
    is_active: bool = Column(Boolean, default=True, nullable=False, doc="Credential активен")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_providers_team_id_user_id", "team_id", "user_id"),
    )

    def __repr__(self):
        return f"<Provider(id='{self.id}', service='{self.service}', user_id='{self.user_id}', is_active={self.is_active})>"


class GitHubRepo(Base):
    """
    GitHubRepo: репозиторий, подключённый к команде. admin_user_id владеет webhook-ом,
    user_ids - участники команды, добавившие репозиторий.
    """
    __tablename__ = "github_repos"

    id: str = Column(String(64), primary_key=True)
    team_id: str = Column(String(64), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    name_with_owner: str = Column(String(256), nullable=False, index=True, doc="owner/repo")
    admin_user_id: str = Column(String(64), nullable=True)
    user_ids: list = Column(JSON, nullable=False, default=lambda: [])
    is_active: bool = Column(Boolean, default=True, nullable=False)
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<GitHubRepo(id='{self.id}', name_with_owner='{self.name_with_owner}', is_active={self.is_active})>"
