#app/api/team_member.py
from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
import logging
from typing import List, Tuple

from app.core.identity import compose_team_member_id
from app.core.security import AuthToken, require_team_member
from app.crud.team import get_active_team_members
from app.dependencies import get_auth_token, get_db, get_fanout, get_sub_options
from app.schemas.team import PromoteToTeamLeadPayload, RemoveTeamMemberPayload, TeamMemberRead
from app.schemas.user import UserRead
from app.services.fanout import FanoutPublisher, SubOptions
from app.services.membership import promote_to_team_lead, remove_team_member, require_team_lead

router = APIRouter(prefix="/teams", tags=["Team members"])
logger = logging.getLogger("Teamwork.TeamMembersAPI")

TEAM_MEMBER = "teamMember"
REMOVE_TEAM_MEMBER_PAYLOAD = "RemoveTeamMemberPayload"
PROMOTE_TO_TEAM_LEAD_PAYLOAD = "PromoteToTeamLeadPayload"

Recipients = List[Tuple[str, bool]]

def _remove_member(db: Session, team_id: str, user_id: str, viewer_id: str) -> Tuple[RemoveTeamMemberPayload, Recipients]:
    """
    Транзакционная часть DELETE (блокирующая, выполняется в threadpool).
    """
    team_member_id = compose_team_member_id(user_id, team_id)
    is_kickout = user_id != viewer_id
    if is_kickout:
        require_team_lead(db, team_id, viewer_id)

    result = remove_team_member(db, team_member_id, is_kickout=is_kickout)
    payload = RemoveTeamMemberPayload(
        team_id=result.team_id,
        team_member_id=result.team_member_id,
        user=UserRead.model_validate(result.user),
        is_kickout=is_kickout,
        removed_notifications=result.removed_notifications,
        notification_id=result.notification_id,
        archived_project_ids=result.archived_project_ids,
        reassigned_project_ids=result.reassigned_project_ids,
        successor_id=result.successor_id,
        team_archived=result.team_archived,
        integration_error=result.integration_error,
    )
    recipients = [(m.user_id, True) for m in get_active_team_members(db, team_id)]
    recipients.append((user_id, True))
    return payload, recipients

def _promote_member(db: Session, team_id: str, user_id: str, viewer_id: str) -> Tuple[PromoteToTeamLeadPayload, Recipients]:
    result = promote_to_team_lead(db, compose_team_member_id(user_id, team_id), viewer_id)
    payload = PromoteToTeamLeadPayload(
        team_id=result.team_id,
        old_lead_id=result.old_lead_id,
        team_member=TeamMemberRead.model_validate(result.team_member),
    )
    recipients = [(m.user_id, True) for m in get_active_team_members(db, team_id)]
    return payload, recipients

@router.delete("/{team_id}/members/{user_id}", response_model=RemoveTeamMemberPayload)
async def remove_team_member_api(
    team_id: str,
    user_id: str,
    db: Session = Depends(get_db),
    auth_token: AuthToken = Depends(get_auth_token),
    fanout: FanoutPublisher = Depends(get_fanout),
    sub_options: SubOptions = Depends(get_sub_options),
):
    """
    Удалить участника из команды. Удалить себя может любой участник,
    удалить другого (kickout) - только лидер.
    """
    require_team_member(auth_token, team_id)
    payload, recipients = await run_in_threadpool(_remove_member, db, team_id, user_id, auth_token.sub)
    fanout.fanout(TEAM_MEMBER, REMOVE_TEAM_MEMBER_PAYLOAD, payload.model_dump(mode="json"), recipients, sub_options)
    return payload

@router.post("/{team_id}/members/{user_id}/promote", response_model=PromoteToTeamLeadPayload)
async def promote_to_team_lead_api(
    team_id: str,
    user_id: str,
    db: Session = Depends(get_db),
    auth_token: AuthToken = Depends(get_auth_token),
    fanout: FanoutPublisher = Depends(get_fanout),
    sub_options: SubOptions = Depends(get_sub_options),
):
    """
    Передать лидерство участнику (только текущий лидер).
    """
    require_team_member(auth_token, team_id)
    payload, recipients = await run_in_threadpool(_promote_member, db, team_id, user_id, auth_token.sub)
    fanout.fanout(TEAM_MEMBER, PROMOTE_TO_TEAM_LEAD_PAYLOAD, payload.model_dump(mode="json"), recipients, sub_options)
    return payload
