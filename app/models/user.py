#app/models/user.py
from datetime import datetime
from sqlalchemy import (
    Column, String, Boolean, DateTime, JSON, func
)
from app.models.base import Base

class User(Base):
    """
    User: аккаунт пользователя. tms хранит id команд, в которых он сейчас состоит.
    """
    __tablename__ = "users"

    id: str = Column(String(64), primary_key=True, index=True)
    email: str = Column(String(255), unique=True, nullable=False, index=True, doc="Email")
    preferred_name: str = Column(String(128), nullable=True, doc="Отображаемое имя")
    tms: list = Column(JSON, default=lambda: [], nullable=False, doc="Список id команд пользователя")
    is_active: bool = Column(Boolean, default=True, nullable=False, doc="Аккаунт активен")
    created_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, doc="Дата создания")
    updated_at: datetime = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, doc="Дата обновления")

    def __repr__(self):
        return f"<User(id='{self.id}', email='{self.email}', tms={self.tms})>"
