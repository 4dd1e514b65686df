#app/models/team.py
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, func, Boolean
from app.models.base import Base

class Team(Base):
    """
    Team: команда. Архивируется (не удаляется), когда из неё уходит последний участник.
    lead_version увеличивается при каждой смене лидера (versioned update).
    """
    __tablename__ = "teams"

    id: str = Column(String(64), primary_key=True)
    name: str = Column(String(128), nullable=False, index=True, doc="Название команды")
    is_archived: bool = Column(Boolean, default=False, nullable=False, doc="Команда в архиве")
    lead_version: int = Column(Integer, default=0, nullable=False, doc="Версия поля лидерства")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, doc="Дата создания")
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, doc="Дата обновления")

    def __repr__(self):
        return f"<Team(id='{self.id}', name='{self.name}', is_archived={self.is_archived})>"


class TeamMember(Base):
    """
    TeamMember: членство пользователя в команде, id = "<userId>::<teamId>".
    Никогда не удаляется физически, только soft-delete через is_not_removed.
    """
    __tablename__ = "team_members"

    id: str = Column(String(130), primary_key=True)
    user_id: str = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id: str = Column(String(64), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    preferred_name: str = Column(String(128), nullable=True, doc="Имя в команде")
    is_lead: bool = Column(Boolean, default=False, nullable=False, doc="Лидер команды")
    is_not_removed: bool = Column(Boolean, default=True, nullable=False, doc="Soft-delete флаг (False = удалён)")
    is_checked_in: bool = Column(Boolean, default=False, nullable=False, doc="Отмечен на текущей встрече")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, doc="Дата вступления")
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, doc="Дата обновления")

    __table_args__ = (
        Index("ix_team_members_team_id_is_not_removed", "team_id", "is_not_removed"),
    )

    def __repr__(self):
        return (
            f"<TeamMember(id='{self.id}', is_lead={self.is_lead}, "
            f"is_not_removed={self.is_not_removed})>"
        )
