import asyncio
import json
import pytest
import httpx
from sqlalchemy.orm import Session

from app.core.exceptions import GitHubIntegrationError, ProjectValidationError, ValidationError
from app.models.project import Project
from app.models.provider import GITHUB
from app.services.fanout import FanoutPublisher
from app.services.github_client import GitHubClient, GitHubError, GitHubErrorKind, decode_github_error
from app.services.github_issue import build_issue_payload, create_github_issue, describe_github_error

class FakeGitHub:
    """Запоминает запросы и отвечает заготовленными ответами по очереди."""
    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status_code, body = self.responses.pop(0)
        return httpx.Response(status_code, json=body)

    def client(self) -> GitHubClient:
        return GitHubClient(base_url="https://api.github.test", timeout=5, transport=httpx.MockTransport(self))

def run_create(db, client, project_id="t1::p1", nwo="octo/repo", token=None, fanout=None):
    fanout = fanout or FanoutPublisher()

    async def scenario():
        result = await create_github_issue(db, project_id, nwo, token, client, fanout)
        await fanout.drain()
        return result
    return asyncio.run(scenario())

@pytest.fixture
def github_team(make_team, make_project, make_provider, make_repo, make_content):
    make_team("t1", ["a", "b"], lead="a")
    make_provider("a")
    make_provider("b")
    make_repo(admin_user_id="a", user_ids=["a"])
    make_project("t1::p1", "b", content=make_content("Fix login", "Steps to reproduce"))

def test_decode_github_error_variants():
    assert decode_github_error({"message": "Validation Failed", "errors": [{"code": "invalid", "field": "assignees"}]}).kind == GitHubErrorKind.INVALID_ASSIGNEE
    assert decode_github_error({"message": "x", "errors": [{"code": "missing_field", "field": "title"}]}).kind == GitHubErrorKind.MISSING_TITLE
    assert decode_github_error({"message": "x", "errors": [{"code": "invalid", "field": "labels"}]}).kind == GitHubErrorKind.INVALID_FIELD
    assert decode_github_error({"message": "x", "errors": [{"code": "missing_field", "field": "body"}]}).kind == GitHubErrorKind.MISSING_FIELD
    assert decode_github_error({"message": "x", "errors": [{"code": "custom"}]}).kind == GitHubErrorKind.UNRECOGNIZED
    assert decode_github_error({"message": "Not Found"}) == GitHubError(GitHubErrorKind.MESSAGE, "Not Found")
    assert decode_github_error(["not", "a", "dict"]).kind == GitHubErrorKind.UNRECOGNIZED
    assert decode_github_error({}) is None

@pytest.mark.parametrize("error,expected", [
    (GitHubError(GitHubErrorKind.INVALID_ASSIGNEE, "Validation Failed", "invalid", "assignees"),
     "B cannot be assigned to octo/repo. Make sure they have access"),
    (GitHubError(GitHubErrorKind.MISSING_TITLE, "Validation Failed", "missing_field", "title"),
     "The first line is the title. It can't be empty"),
    (GitHubError(GitHubErrorKind.INVALID_FIELD, "Validation Failed", "invalid", "labels"),
     "GitHub: Validation Failed. invalid: labels"),
    (GitHubError(GitHubErrorKind.MESSAGE, "Bad credentials"), "GitHub: Bad credentials."),
])
def test_describe_github_error(error, expected):
    assert describe_github_error(error, "B", "octo/repo") == expected

def test_build_issue_payload_splits_title_and_body(make_content):
    payload = build_issue_payload(make_content("Title", "First", "Second"), "b-gh")
    assert payload == {"title": "Title", "body": "First\n\nSecond", "assignees": ["b-gh"]}

def test_build_issue_payload_long_title_is_truncated_and_kept_in_body(make_content):
    long_title = "x" * 300
    payload = build_issue_payload(make_content(long_title), "b-gh", creator_name="Vera")
    assert payload["title"] == "x" * 256
    assert payload["body"] == f"{long_title}\n\n_Added by Vera_"

def test_create_issue_links_project(db: Session, github_team, auth_token):
    fake = FakeGitHub((201, {"id": 99, "number": 7, "assignees": [{"login": "b-gh"}]}))
    fanout = FanoutPublisher()
    inbox = []

    async def send(message):
        inbox.append(message)
    fanout.subscribe("project", "b", "s-b", send)

    result = run_create(db, fake.client(), token=auth_token("a"), fanout=fanout)

    assert result == {"projectId": "t1::p1"}
    project = db.get(Project, "t1::p1")
    assert project.integration == {
        "service": GITHUB,
        "integrationId": 99,
        "issueNumber": 7,
        "nameWithOwner": "octo/repo",
    }
    request = fake.requests[0]
    assert request.method == "POST"
    assert request.url.path == "/repos/octo/repo/issues"
    assert request.headers["Authorization"] == "token token-a"
    assert json.loads(request.content) == {"title": "Fix login", "body": "Steps to reproduce", "assignees": ["b-gh"]}
    assert inbox[0]["type"] == "CreateGitHubIssuePayload"

def test_missing_assignee_retried_with_admin_token(db: Session, github_team, auth_token):
    fake = FakeGitHub(
        (201, {"id": 99, "number": 7, "assignees": []}),
        (200, {"id": 99, "number": 7, "assignees": [{"login": "b-gh"}]}),
    )
    run_create(db, fake.client(), token=auth_token("b"))

    patch_request = fake.requests[1]
    assert patch_request.method == "PATCH"
    assert patch_request.url.path == "/repos/octo/repo/issues/7"
    assert patch_request.headers["Authorization"] == "token token-a"
    assert json.loads(patch_request.content) == {"assignees": ["b-gh"]}

def test_creator_without_github_is_credited(db: Session, github_team, make_team, auth_token):
    make_team("t2", ["c"], lead="c")
    fake = FakeGitHub((201, {"id": 1, "number": 1, "assignees": [{"login": "b-gh"}]}))
    # c состоит в t1 по токену, но GitHub у него нет
    run_create(db, fake.client(), token=auth_token("c", tms=["t1", "t2"]))

    body = json.loads(fake.requests[0].content)
    assert body["body"].endswith("_Added by C_")
    assert fake.requests[0].headers["Authorization"] == "token token-b"

def test_github_error_is_described(db: Session, github_team, auth_token):
    fake = FakeGitHub((422, {"message": "Validation Failed", "errors": [{"code": "invalid", "field": "assignees"}]}))

    with pytest.raises(GitHubIntegrationError) as exc_info:
        run_create(db, fake.client(), token=auth_token("a"))

    assert str(exc_info.value) == "B cannot be assigned to octo/repo. Make sure they have access"
    assert exc_info.value.error.kind == GitHubErrorKind.INVALID_ASSIGNEE
    assert db.get(Project, "t1::p1").integration is None

def test_network_failure(db: Session, github_team, auth_token):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)
    client = GitHubClient(base_url="https://api.github.test", transport=httpx.MockTransport(handler))

    with pytest.raises(GitHubIntegrationError):
        run_create(db, client, token=auth_token("a"))

def test_already_linked_project(db: Session, github_team, auth_token):
    project = db.get(Project, "t1::p1")
    project.integration = {"service": GITHUB, "nameWithOwner": "octo/repo", "issueNumber": 1}
    db.commit()
    with pytest.raises(ProjectValidationError, match="already linked"):
        run_create(db, FakeGitHub().client(), token=auth_token("a"))

def test_invalid_repository_name(db: Session, github_team, auth_token):
    with pytest.raises(ValidationError, match="is not a valid repository"):
        run_create(db, FakeGitHub().client(), nwo="octo", token=auth_token("a"))

def test_unknown_repository(db: Session, github_team, auth_token):
    with pytest.raises(ValidationError, match="No integration for octo/other exists for t1"):
        run_create(db, FakeGitHub().client(), nwo="octo/other", token=auth_token("a"))

def test_assignee_without_github(db: Session, make_team, make_project, make_provider, make_repo, auth_token):
    make_team("t1", ["a", "b"], lead="a")
    make_provider("a")
    make_repo(admin_user_id="a", user_ids=["a"])
    make_project("t1::p1", "b")
    with pytest.raises(ValidationError, match="Ask B to add GitHub"):
        run_create(db, FakeGitHub().client(), token=auth_token("a"))

def test_repo_without_admin_provider(db: Session, make_team, make_project, make_provider, make_repo, auth_token):
    make_team("t1", ["a", "b"], lead="a")
    make_provider("b")
    make_repo(admin_user_id="a", user_ids=["a"])
    make_project("t1::p1", "b")
    with pytest.raises(ValidationError, match="does not have an admin"):
        run_create(db, FakeGitHub().client(), token=auth_token("b"))

def test_empty_content(db: Session, make_team, make_project, make_provider, make_repo, auth_token):
    make_team("t1", ["a", "b"], lead="a")
    make_provider("a")
    make_provider("b")
    make_repo(admin_user_id="a", user_ids=["a"])
    make_project("t1::p1", "b", content="")
    with pytest.raises(ProjectValidationError, match="add some text"):
        run_create(db, FakeGitHub().client(), token=auth_token("a"))
