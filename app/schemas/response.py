#app/schemas/response.py
from pydantic import BaseModel, Field
from typing import Any, Optional

class ErrorResponse(BaseModel):
    """
    ErrorResponse: стандартная структура для ошибки.
    """
    detail: str = Field(..., example="Team member u1::t1 already removed.", description="Сообщение об ошибке")
    code: str = Field(..., example="already_removed", description="Код ошибки (machine-readable)")
    details: Optional[Any] = Field(None, description="Дополнительные детали")

