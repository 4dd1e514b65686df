#app/api/project.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from app.core.security import AuthToken
from app.dependencies import get_auth_token, get_db, get_fanout, get_github_client, get_sub_options
from app.schemas.project import (
    CreateGitHubIssueInput,
    CreateGitHubIssuePayload,
    ProjectUpdate,
    UpdateProjectPayload,
)
from app.services.fanout import FanoutPublisher, SubOptions
from app.services.github_client import GitHubClient
from app.services.github_issue import create_github_issue
from app.services.project_update import update_project

router = APIRouter(prefix="/projects", tags=["Projects"])

@router.patch("/{project_id}", response_model=UpdateProjectPayload)
async def update_project_api(
    project_id: str,
    data: ProjectUpdate,
    area: Optional[str] = Query(None, description="Откуда пришла правка (например, meeting)"),
    db: Session = Depends(get_db),
    auth_token: AuthToken = Depends(get_auth_token),
    fanout: FanoutPublisher = Depends(get_fanout),
    sub_options: SubOptions = Depends(get_sub_options),
):
    """
    Обновить проект.
    """
    return await update_project(
        db,
        project_id,
        data.model_dump(exclude_unset=True),
        auth_token,
        fanout,
        sub_options=sub_options,
        area=area,
    )

@router.post("/{project_id}/github-issue", response_model=CreateGitHubIssuePayload)
async def create_github_issue_api(
    project_id: str,
    data: CreateGitHubIssueInput,
    db: Session = Depends(get_db),
    auth_token: AuthToken = Depends(get_auth_token),
    fanout: FanoutPublisher = Depends(get_fanout),
    client: GitHubClient = Depends(get_github_client),
    sub_options: SubOptions = Depends(get_sub_options),
):
    """
    Создать GitHub issue из проекта.
    """
    return await create_github_issue(
        db,
        project_id,
        data.name_with_owner,
        auth_token,
        client,
        fanout,
        sub_options=sub_options,
    )
