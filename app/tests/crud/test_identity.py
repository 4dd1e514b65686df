import pytest

from app.core.exceptions import ValidationError
from app.core.identity import (
    compose_team_member_id,
    split_name_with_owner,
    split_team_member_id,
    team_id_from_project_id,
)

def test_split_team_member_id():
    key = split_team_member_id("u1::t1")
    assert key.user_id == "u1"
    assert key.team_id == "t1"
    assert tuple(key) == ("u1", "t1")

def test_compose_is_inverse_of_split():
    assert compose_team_member_id(*split_team_member_id("user-42::team-7")) == "user-42::team-7"

@pytest.mark.parametrize("bad_id", ["u1", "u1::", "::t1", "a::b::c", ""])
def test_split_team_member_id_rejects_malformed(bad_id):
    with pytest.raises(ValidationError):
        split_team_member_id(bad_id)

def test_split_team_member_id_rejects_non_string():
    with pytest.raises(ValidationError):
        split_team_member_id(None)

def test_compose_rejects_separator_inside_part():
    with pytest.raises(ValidationError):
        compose_team_member_id("a::b", "t1")

def test_team_id_from_project_id():
    assert team_id_from_project_id("t1::p1") == "t1"

def test_split_name_with_owner():
    assert split_name_with_owner("octo/repo") == ("octo", "repo")

@pytest.mark.parametrize("bad_nwo", ["octo", "octo/", "/repo", "a/b/c"])
def test_split_name_with_owner_rejects_malformed(bad_nwo):
    with pytest.raises(ValidationError, match="is not a valid repository"):
        split_name_with_owner(bad_nwo)
