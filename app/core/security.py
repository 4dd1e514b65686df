# app/core/security.py

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, Any, Dict, List
from jose import JWTError, jwt
from app.core.settings import settings
from app.core.exceptions import AuthError, PermissionDeniedError

from fastapi.security import OAuth2PasswordBearer

# Настройки
SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.JWT_ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES

@dataclass(frozen=True)
class AuthToken:
    """
    Разобранный access token: sub = id пользователя, tms = id его команд.
    """
    sub: str
    tms: List[str] = field(default_factory=list)

def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None
) -> tuple[str, datetime]:
    """
    Генерирует access token (JWT) и возвращает (token, expire_time)
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "type": "access"})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt, expire

def verify_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Декодирует и валидирует access token.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        if payload.get("type") != "access":
            return None
        return payload
    except JWTError:
        return None

def decode_auth_token(token: str) -> AuthToken:
    payload = verify_access_token(token)
    if payload is None or not payload.get("sub"):
        raise AuthError("Could not validate credentials")
    return AuthToken(sub=str(payload["sub"]), tms=list(payload.get("tms") or []))

def require_team_member(auth_token: AuthToken, team_id: str) -> None:
    """
    Проверяет по токену, что пользователь состоит в команде.
    """
    if team_id not in auth_token.tms:
        raise PermissionDeniedError(f"You are not a member of team {team_id}")

# FastAPI OAuth2 scheme (используется в Depends)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")
