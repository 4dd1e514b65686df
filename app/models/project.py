#app/models/project.py
from datetime import datetime
from app.models.base import Base
from sqlalchemy import (
    Column, String, DateTime, Text, JSON, Float, ForeignKey, Index, func
)

class Project(Base):
    """
    Project: карточка проекта команды, id = "<teamId>::<localId>".
    Владелец (team_member_id) всегда один; теги выводятся из контента (private, archived, ...).
    """
    __tablename__ = "projects"

    id: str = Column(String(130), primary_key=True)
    team_id: str = Column(String(64), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True, doc="ID команды")
    team_member_id: str = Column(String(130), ForeignKey("team_members.id"), nullable=False, index=True, doc="Текущий владелец")
    user_id: str = Column(String(64), nullable=False, index=True, doc="ID пользователя-владельца")
    content: str = Column(Text, nullable=True, doc="Rich-text контент (raw draft JSON)")
    tags: list = Column(JSON, nullable=False, default=lambda: [], doc="Теги проекта")
    status: str = Column(String(32), nullable=False, default="active", doc="Статус: active, stuck, done, future")
    sort_order: float = Column(Float, nullable=False, default=0, doc="Порядок сортировки")
    agenda_id: str = Column(String(64), nullable=True, doc="ID пункта повестки встречи")
    integration: dict = Column(JSON, nullable=True, doc="Внешняя интеграция (GitHub issue)")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, doc="Дата создания")
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, doc="Дата изменения")

    def __repr__(self):
        return (
            f"<Project(id='{self.id}', team_member_id='{self.team_member_id}', "
            f"status='{self.status}', tags={self.tags})>"
        )


class ProjectHistory(Base):
    """
    ProjectHistory: снимок проекта (content, status, owner, tags) на момент времени.
    Правки внутри окна debounce схлопываются в одну запись.
    """
    __tablename__ = "project_history"

    id: str = Column(String(64), primary_key=True)
    project_id: str = Column(String(130), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    content: str = Column(Text, nullable=True)
    status: str = Column(String(32), nullable=True)
    team_member_id: str = Column(String(130), nullable=True)
    tags: list = Column(JSON, nullable=False, default=lambda: [])
    updated_at: datetime = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_project_history_project_id_updated_at", "project_id", "updated_at"),
    )

    def __repr__(self):
        return f"<ProjectHistory(id='{self.id}', project_id='{self.project_id}', updated_at={self.updated_at})>"
