import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Generator, Iterable, List, Optional

# Переменные окружения нужны ДО импорта settings / app
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SECRET_KEY"] = "testsecretkey"

# Сначала все модели (app/models/__init__.py), чтобы Base.metadata был полным
import app.models

from app.models.base import Base
from app.models.notification import Notification
from app.models.project import Project
from app.models.provider import GITHUB, GitHubRepo, Provider
from app.models.team import Team, TeamMember
from app.models.user import User

from app.core import security
from app.core.settings import settings as app_settings
from app.main import app
from app.dependencies import get_db
from app.services.fanout import FanoutPublisher
from app.tests.factories import build_content

engine = create_engine(
    app_settings.DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

JOINED_AT = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Чистая in-memory база на каждый тест. Сервисы сами делают commit,
    поэтому изоляция через пересоздание таблиц, а не через внешний rollback.
    """
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def fanout() -> FanoutPublisher:
    return FanoutPublisher()


@pytest.fixture(scope="function")
def client(db: Session, fanout: FanoutPublisher) -> Generator[TestClient, None, None]:
    """
    TestClient с подменённым get_db и свежим FanoutPublisher.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    previous_fanout = app.state.fanout
    app.state.fanout = fanout
    with TestClient(app) as c:
        yield c
    app.state.fanout = previous_fanout
    app.dependency_overrides.clear()


@pytest.fixture
def make_content() -> Callable[..., str]:
    return build_content


@pytest.fixture
def make_team(db: Session) -> Callable[..., Team]:
    """
    make_team("t1", ["a", "b", "c"], lead="a"): команда и участники,
    вступившие по порядку списка (с шагом в минуту).
    """
    def _make_team(team_id: str = "t1", user_ids: Iterable[str] = ("a", "b", "c"), lead: Optional[str] = "a") -> Team:
        team = Team(id=team_id, name=f"Team {team_id}", is_archived=False, lead_version=0)
        db.add(team)
        for i, user_id in enumerate(user_ids):
            user = db.get(User, user_id)
            if user is None:
                user = User(id=user_id, email=f"{user_id}@example.com", preferred_name=user_id.upper(), tms=[])
                db.add(user)
            user.tms = list(user.tms or []) + [team_id]
            db.add(TeamMember(
                id=f"{user_id}::{team_id}",
                user_id=user_id,
                team_id=team_id,
                preferred_name=user_id.upper(),
                is_lead=user_id == lead,
                is_not_removed=True,
                created_at=JOINED_AT + timedelta(minutes=i),
            ))
        db.commit()
        return team
    return _make_team


@pytest.fixture
def make_project(db: Session) -> Callable[..., Project]:
    def _make_project(
        project_id: str,
        user_id: str,
        tags: Optional[List[str]] = None,
        content: Optional[str] = None,
        status: str = "active",
        integration: Optional[Dict[str, Any]] = None,
    ) -> Project:
        team_id = project_id.split("::")[0]
        tags = list(tags or [])
        project = Project(
            id=project_id,
            team_id=team_id,
            team_member_id=f"{user_id}::{team_id}",
            user_id=user_id,
            content=content if content is not None else build_content("Ship it", tags=tags),
            tags=tags,
            status=status,
            sort_order=0,
            integration=integration,
        )
        db.add(project)
        db.commit()
        return project
    return _make_project


@pytest.fixture
def make_provider(db: Session) -> Callable[..., Provider]:
    def _make_provider(user_id: str, team_id: str = "t1", service: str = GITHUB, is_active: bool = True) -> Provider:
        provider = Provider(
            id=f"{service}:{user_id}:{team_id}",
            user_id=user_id,
            team_id=team_id,
            service=service,
            provider_user_name=f"{user_id}-gh",
            access_token=f"token-{user_id}",
            is_active=is_active,
        )
        db.add(provider)
        db.commit()
        return provider
    return _make_provider


@pytest.fixture
def make_repo(db: Session) -> Callable[..., GitHubRepo]:
    def _make_repo(
        name_with_owner: str = "octo/repo",
        admin_user_id: Optional[str] = "a",
        user_ids: Iterable[str] = ("a",),
        team_id: str = "t1",
    ) -> GitHubRepo:
        repo = GitHubRepo(
            id=f"{team_id}:{name_with_owner}",
            team_id=team_id,
            name_with_owner=name_with_owner,
            admin_user_id=admin_user_id,
            user_ids=list(user_ids),
            is_active=True,
        )
        db.add(repo)
        db.commit()
        return repo
    return _make_repo


@pytest.fixture
def make_notification(db: Session) -> Callable[..., Notification]:
    def _make_notification(notification_id: str, user_ids: Iterable[str], team_id: str = "t1", type: str = "KICKED_OUT") -> Notification:
        notification = Notification(
            id=notification_id,
            team_id=team_id,
            user_ids=list(user_ids),
            type=type,
            start_at=JOINED_AT,
        )
        db.add(notification)
        db.commit()
        return notification
    return _make_notification


@pytest.fixture
def auth_token() -> Callable[..., security.AuthToken]:
    def _auth_token(user_id: str, tms: Iterable[str] = ("t1",)) -> security.AuthToken:
        return security.AuthToken(sub=user_id, tms=list(tms))
    return _auth_token


@pytest.fixture
def token_headers() -> Callable[..., Dict[str, str]]:
    """
    Заголовки с JWT для пользователя (sub) и его команд (tms).
    """
    def _token_headers(user_id: str, tms: Iterable[str] = ("t1",)) -> Dict[str, str]:
        token, _ = security.create_access_token(
            data={"sub": user_id, "tms": list(tms)},
            expires_delta=timedelta(minutes=app_settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )
        return {"Authorization": f"Bearer {token}"}
    return _token_headers
