# app/dependencies.py

import uuid
from typing import Optional

from fastapi import Depends, Header, Request

from app.core.security import AuthToken, decode_auth_token, oauth2_scheme
from app.database import get_db
from app.services.fanout import FanoutPublisher, SubOptions
from app.services.github_client import GitHubClient

__all__ = [
    "get_db",
    "get_auth_token",
    "get_fanout",
    "get_github_client",
    "get_sub_options",
]

def get_auth_token(token: str = Depends(oauth2_scheme)) -> AuthToken:
    """
    Декодирует JWT: sub = id пользователя, tms = его команды.
    """
    return decode_auth_token(token)

def get_fanout(request: Request) -> FanoutPublisher:
    """
    Общий на приложение FanoutPublisher (создаётся на startup).
    """
    return request.app.state.fanout

def get_github_client(request: Request) -> GitHubClient:
    return request.app.state.github_client

def get_sub_options(x_socket_id: Optional[str] = Header(None)) -> SubOptions:
    """
    mutator_id = socket id соединения-инициатора (ему эхо не шлём),
    operation_id генерируется на каждый запрос.
    """
    return SubOptions(mutator_id=x_socket_id, operation_id=uuid.uuid4().hex)
