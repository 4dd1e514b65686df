#app/models/notification.py
from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON, ForeignKey
from app.models.base import Base

KICKED_OUT = "KICKED_OUT"
PROJECT_INVOLVES = "PROJECT_INVOLVES"

ASSIGNEE = "ASSIGNEE"
MENTIONEE = "MENTIONEE"

class Notification(Base):
    """
    Notification: уведомление для набора пользователей в рамках команды.
    """
    __tablename__ = "notifications"

    id: str = Column(String(64), primary_key=True)
    team_id: str = Column(String(64), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    user_ids: list = Column(JSON, nullable=False, default=lambda: [], doc="Получатели")
    type: str = Column(String(32), nullable=False, doc="KICKED_OUT, PROJECT_INVOLVES")
    start_at: datetime = Column(DateTime(timezone=True), nullable=False)
    project_id: str = Column(String(130), nullable=True, index=True)
    involvement: str = Column(String(16), nullable=True, doc="ASSIGNEE или MENTIONEE")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "teamId": self.team_id,
            "userIds": list(self.user_ids or []),
            "type": self.type,
            "startAt": self.start_at.isoformat() if self.start_at else None,
            "projectId": self.project_id,
            "involvement": self.involvement,
        }

    def __repr__(self):
        return f"<Notification(id='{self.id}', type='{self.type}', team_id='{self.team_id}')>"
