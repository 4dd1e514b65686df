#app/schemas/team.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional

from app.schemas.user import UserRead

class TeamMemberRead(BaseModel):
    """
    TeamMemberRead: участник команды (response).
    """
    id: str = Field(..., example="u1::t1", description="Составной ID <userId>::<teamId>")
    user_id: str
    team_id: str
    preferred_name: Optional[str] = None
    is_lead: bool = False
    is_not_removed: bool = True

    model_config = ConfigDict(from_attributes=True)

class RemoveTeamMemberPayload(BaseModel):
    """
    RemoveTeamMemberPayload: результат удаления участника, он же payload
    для подписчиков topic "teamMember".
    """
    team_id: str
    team_member_id: str
    user: UserRead
    is_kickout: bool = False
    removed_notifications: List[Dict[str, Any]] = Field(default_factory=list, description="Удалённые уведомления")
    notification_id: Optional[str] = Field(None, description="ID kickout-уведомления")
    archived_project_ids: List[str] = Field(default_factory=list)
    reassigned_project_ids: List[str] = Field(default_factory=list)
    successor_id: Optional[str] = Field(None, description="Кому перешли проекты")
    team_archived: bool = False
    integration_error: Optional[str] = Field(None, description="Ошибка best-effort очистки GitHub")

    model_config = ConfigDict(from_attributes=True)

class PromoteToTeamLeadPayload(BaseModel):
    """
    PromoteToTeamLeadPayload: новый лидер команды.
    """
    team_id: str
    old_lead_id: Optional[str] = None
    team_member: TeamMemberRead
