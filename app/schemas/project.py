#app/schemas/project.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional

class ProjectUpdate(BaseModel):
    """
    ProjectUpdate: изменяемые поля проекта (все опциональны, хотя бы одно обязательно).
    Принимает и camelCase, и snake_case.
    """
    content: Optional[str] = Field(None, description="Rich-text документ (JSON)")
    status: Optional[str] = Field(None, example="active", description="active, stuck, done, future")
    user_id: Optional[str] = Field(None, alias="userId", description="Новый владелец")
    sort_order: Optional[float] = Field(None, alias="sortOrder", description="Позиция в колонке")
    agenda_id: Optional[str] = Field(None, alias="agendaId")

    model_config = ConfigDict(populate_by_name=True)

class UpdateProjectPayload(BaseModel):
    """
    UpdateProjectPayload: результат правки проекта.
    """
    project_id: str = Field(..., alias="projectId")
    is_privatized: bool = Field(False, alias="isPrivatized")
    notifications_to_add: List[Dict[str, Any]] = Field(default_factory=list, alias="notificationsToAdd")
    notifications_to_remove: List[Dict[str, Any]] = Field(default_factory=list, alias="notificationsToRemove")

    model_config = ConfigDict(populate_by_name=True)

class CreateGitHubIssueInput(BaseModel):
    """
    CreateGitHubIssueInput: в какой репозиторий отправить проект.
    """
    name_with_owner: str = Field(..., alias="nameWithOwner", example="octo/repo")

    model_config = ConfigDict(populate_by_name=True)

class CreateGitHubIssuePayload(BaseModel):
    project_id: str = Field(..., alias="projectId")

    model_config = ConfigDict(populate_by_name=True)
