#app/services/github_issue.py
"""
Превращение проекта в GitHub issue в подключённом к команде репозитории.
Чтения идут до сетевого вызова, транзакция на время запроса к GitHub закрыта;
запись integration делается отдельной короткой транзакцией после ответа.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.draft import blocks_to_markdown, get_block_texts, parse_content
from app.core.exceptions import (
    BaseAppException,
    GitHubIntegrationError,
    NotFoundError,
    ProjectValidationError,
    StoreError,
    ValidationError,
)
from app.core.identity import split_name_with_owner, team_id_from_project_id
from app.core.security import AuthToken, require_team_member
from app.crud.project import get_project
from app.crud.provider import get_active_providers, get_active_repo
from app.crud.team import get_active_team_members, get_team_member
from app.crud.user import get_user
from app.models.provider import GITHUB
from app.models.team import TeamMember
from app.services.fanout import FanoutPublisher, SubOptions
from app.services.github_client import GitHubClient, GitHubError, GitHubErrorKind
from app.services.project_update import PROJECT

logger = logging.getLogger("Teamwork.GitHubIssue")

CREATE_GITHUB_ISSUE_PAYLOAD = "CreateGitHubIssuePayload"
TITLE_LIMIT = 256

def describe_github_error(error: GitHubError, assignee_name: str, name_with_owner: str) -> str:
    """
    Человекочитаемое сообщение для каждого известного вида ошибки GitHub.
    """
    if error.kind == GitHubErrorKind.INVALID_ASSIGNEE:
        return f"{assignee_name} cannot be assigned to {name_with_owner}. Make sure they have access"
    if error.kind == GitHubErrorKind.MISSING_TITLE:
        return "The first line is the title. It can't be empty"
    if error.kind in (GitHubErrorKind.INVALID_FIELD, GitHubErrorKind.MISSING_FIELD):
        return f"GitHub: {error.message}. {error.code}: {error.field}"
    if error.kind == GitHubErrorKind.MESSAGE:
        return f"GitHub: {error.message}."
    return f"GitHub returned an unrecognized error: {error.message or error.code or 'unknown'}"

def build_issue_payload(raw_content: str, assignee_login: str, creator_name: Optional[str] = None) -> Dict[str, Any]:
    """
    Первый блок - заголовок. Если он длиннее лимита, он обрезается и
    дублируется в теле (там могут быть сущности).
    """
    texts = get_block_texts(parse_content(raw_content))
    title = texts[0] if texts else ""
    if len(title) <= TITLE_LIMIT:
        body_texts = texts[1:]
    else:
        title = title[:TITLE_LIMIT]
        body_texts = texts
    body = blocks_to_markdown(body_texts)
    if creator_name:
        body = f"{body}\n\n_Added by {creator_name}_"
    return {"title": title, "body": body, "assignees": [assignee_login]}

@dataclass
class IssueRequest:
    payload: Dict[str, Any]
    access_token: str
    admin_token: str
    assignee_name: str

def prepare_github_issue(db: Session, project_id: str, name_with_owner: str, viewer_id: str) -> IssueRequest:
    """
    Проверки и сборка issue из проекта. Транзакция чтения закрывается
    до возврата: дальше идёт сетевой вызов.
    """
    team_id = team_id_from_project_id(project_id)
    try:
        project = get_project(db, project_id)
    except NotFoundError:
        raise NotFoundError("That project no longer exists")
    if project.integration and project.integration.get("service"):
        raise ProjectValidationError(f"That project is already linked to {project.integration['service']}")
    split_name_with_owner(name_with_owner)

    repo = get_active_repo(db, team_id, name_with_owner)
    if repo is None or not repo.admin_user_id:
        raise ValidationError(f"No integration for {name_with_owner} exists for {team_id}")

    assignee_member = get_team_member(db, project.team_member_id)
    assignee_name = assignee_member.preferred_name or assignee_member.user_id
    providers = {p.user_id: p for p in get_active_providers(db, team_id, GITHUB)}
    assignee_provider = providers.get(project.user_id)
    if assignee_provider is None:
        raise ValidationError(f"Assignment failed! Ask {assignee_name} to add GitHub in Team Settings")
    admin_provider = providers.get(repo.admin_user_id)
    if admin_provider is None:
        raise ValidationError("This repo does not have an admin! Please re-integrate the repo")
    creator_provider = providers.get(viewer_id)
    if not project.content:
        raise ProjectValidationError("You must add some text before submitting a project to github")

    creator_name = None
    if creator_provider is None:
        creator = get_user(db, viewer_id)
        creator_name = creator.preferred_name or creator.email
    request = IssueRequest(
        payload=build_issue_payload(project.content, assignee_provider.provider_user_name, creator_name),
        access_token=(creator_provider or assignee_provider).access_token,
        admin_token=admin_provider.access_token,
        assignee_name=assignee_name,
    )
    db.rollback()
    return request

def link_github_issue(
    db: Session, project_id: str, name_with_owner: str, issue: Dict[str, Any], now: datetime
) -> List[TeamMember]:
    """
    Записывает integration в проект (перечитанный под блокировкой).
    Возвращает активных участников команды для fanout.
    """
    try:
        project = get_project(db, project_id, for_update=True)
        if project.integration and project.integration.get("service"):
            raise ProjectValidationError(f"That project is already linked to {project.integration['service']}")
        project.integration = {
            "service": GITHUB,
            "integrationId": issue.get("id"),
            "issueNumber": issue.get("number"),
            "nameWithOwner": name_with_owner,
        }
        project.updated_at = now
        team_members = get_active_team_members(db, project.team_id)
        db.commit()
    except BaseAppException:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to link project {project_id} to {name_with_owner}: {e}")
        raise StoreError("Database error while linking project to GitHub.")
    return team_members

async def create_github_issue(
    db: Session,
    project_id: str,
    name_with_owner: str,
    auth_token: AuthToken,
    client: GitHubClient,
    fanout: FanoutPublisher,
    sub_options: Optional[SubOptions] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    now = now or utcnow()
    require_team_member(auth_token, team_id_from_project_id(project_id))

    # работа с БД в threadpool, в event loop только GitHub и fanout
    request = await run_in_threadpool(prepare_github_issue, db, project_id, name_with_owner, auth_token.sub)

    try:
        issue = await client.create_issue(request.access_token, name_with_owner, request.payload)
        if not issue.get("assignees"):
            await client.add_assignees(
                request.admin_token, name_with_owner, issue["number"], request.payload["assignees"]
            )
    except GitHubIntegrationError as e:
        error = e.error or GitHubError(GitHubErrorKind.UNRECOGNIZED, str(e))
        raise GitHubIntegrationError(describe_github_error(error, request.assignee_name, name_with_owner), error)

    team_members = await run_in_threadpool(link_github_issue, db, project_id, name_with_owner, issue, now)

    data = {"projectId": project_id}
    fanout.fanout(
        PROJECT,
        CREATE_GITHUB_ISSUE_PAYLOAD,
        data,
        [(member.user_id, True) for member in team_members],
        sub_options,
    )
    logger.info(f"Created GitHub issue #{issue.get('number')} in {name_with_owner} for project {project_id}")
    return data
