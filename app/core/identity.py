# app/core/identity.py
"""
Составные идентификаторы.

    team member id: "<userId>::<teamId>"
    project id:     "<teamId>::<localId>"
    repository:     "<owner>/<name>"
"""
from typing import Tuple, NamedTuple
from app.core.exceptions import ValidationError

SEPARATOR = "::"

class TeamMemberKey(NamedTuple):
    user_id: str
    team_id: str

def _split_pair(value: str, sep: str, what: str) -> Tuple[str, str]:
    if not isinstance(value, str):
        raise ValidationError(f"{what} must be a string, got {type(value).__name__}")
    parts = value.split(sep)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValidationError(f"'{value}' is not a valid {what}")
    return parts[0], parts[1]

def split_team_member_id(team_member_id: str) -> TeamMemberKey:
    user_id, team_id = _split_pair(team_member_id, SEPARATOR, "team member id")
    return TeamMemberKey(user_id=user_id, team_id=team_id)

def compose_team_member_id(user_id: str, team_id: str) -> str:
    if not user_id or not team_id or SEPARATOR in user_id or SEPARATOR in team_id:
        raise ValidationError(f"Cannot build team member id from '{user_id}' and '{team_id}'")
    return f"{user_id}{SEPARATOR}{team_id}"

def team_id_from_project_id(project_id: str) -> str:
    team_id, _ = _split_pair(project_id, SEPARATOR, "project id")
    return team_id

def split_name_with_owner(name_with_owner: str) -> Tuple[str, str]:
    """owner/repo -> (owner, repo). Пустые части дают ValidationError."""
    try:
        return _split_pair(name_with_owner, "/", "repository")
    except ValidationError:
        raise ValidationError(f"{name_with_owner} is not a valid repository")
