import httpx
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional
from app.core.settings import settings
from app.core.exceptions import GitHubIntegrationError

logger = logging.getLogger("Teamwork.GitHub")

class GitHubErrorKind(str, Enum):
    INVALID_ASSIGNEE = "invalid_assignee"
    MISSING_TITLE = "missing_title"
    INVALID_FIELD = "invalid_field"
    MISSING_FIELD = "missing_field"
    MESSAGE = "message"
    UNRECOGNIZED = "unrecognized"

@dataclass(frozen=True)
class GitHubError:
    kind: GitHubErrorKind
    message: str = ""
    code: Optional[str] = None
    field: Optional[str] = None

def decode_github_error(body: Any) -> Optional[GitHubError]:
    # Decodes a GitHub error body ({"message", "errors": [{"code", "field"}]}) into a tagged variant.
    if not isinstance(body, dict):
        return GitHubError(GitHubErrorKind.UNRECOGNIZED, "Unexpected response from GitHub")
    message = body.get("message") or ""
    errors = body.get("errors")
    if errors:
        first = errors[0] if isinstance(errors, list) and isinstance(errors[0], dict) else {}
        code, field = first.get("code"), first.get("field")
        if code == "invalid":
            kind = GitHubErrorKind.INVALID_ASSIGNEE if field == "assignees" else GitHubErrorKind.INVALID_FIELD
        elif code == "missing_field":
            kind = GitHubErrorKind.MISSING_TITLE if field == "title" else GitHubErrorKind.MISSING_FIELD
        else:
            kind = GitHubErrorKind.UNRECOGNIZED
        return GitHubError(kind, message, code, field)
    if message:
        return GitHubError(GitHubErrorKind.MESSAGE, message)
    return None

class GitHubClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.GITHUB_API_URL
        self.timeout = httpx.Timeout(timeout or settings.GITHUB_TIMEOUT_SECONDS)
        self.transport = transport

    async def create_issue(self, access_token: str, name_with_owner: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", f"/repos/{name_with_owner}/issues", access_token, payload)

    async def add_assignees(
        self, access_token: str, name_with_owner: str, issue_number: int, assignees: List[str]
    ) -> Dict[str, Any]:
        return await self._request(
            "PATCH", f"/repos/{name_with_owner}/issues/{issue_number}", access_token, {"assignees": assignees}
        )

    async def _request(self, method: str, path: str, access_token: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = {
            "Authorization": f"token {access_token}",
            "Accept": "application/vnd.github+json",
        }
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            try:
                logger.info(f"GitHub {method} {path}")
                response = await client.request(method, path, json=payload, headers=headers)
            except httpx.TimeoutException:
                logger.error(f"Timeout while calling GitHub {method} {path}")
                raise GitHubIntegrationError(
                    "GitHub timed out.", GitHubError(GitHubErrorKind.MESSAGE, "GitHub timed out")
                )
            except httpx.RequestError as e:
                logger.error(f"Request error while calling GitHub {method} {path}: {e}")
                raise GitHubIntegrationError(
                    "GitHub is unreachable.", GitHubError(GitHubErrorKind.MESSAGE, e.__class__.__name__)
                )
        try:
            body = response.json()
        except ValueError:
            body = None
        if response.is_error or not isinstance(body, dict):
            error = decode_github_error(body) or GitHubError(
                GitHubErrorKind.UNRECOGNIZED, f"HTTP {response.status_code}"
            )
            logger.warning(f"GitHub {method} {path} failed: {error}")
            raise GitHubIntegrationError(f"GitHub: {error.message}", error)
        return body
