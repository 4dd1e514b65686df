#app/schemas/user.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

class UserRead(BaseModel):
    """
    UserRead: пользователь после изменения членства (response).
    """
    id: str
    email: str
    preferred_name: Optional[str] = Field(None, description="Отображаемое имя")
    tms: List[str] = Field(default_factory=list, description="Команды, в которых состоит пользователь")

    model_config = ConfigDict(from_attributes=True)
