"""GitHub API client for repository operations."""

from typing import Any, Dict, Iterator, List, Optional
import httpx
from pydantic import BaseModel, ValidationError

from ..core.errors import DecodeError, GitHubAPIError, PreconditionError
from ..core.logging import get_logger

logger = get_logger(__name__)

PER_PAGE = 100


class RefInfo(BaseModel):
    sha: str


class PullRequestInfo(BaseModel):
    number: int
    base: RefInfo


class TagInfo(BaseModel):
    name: str


class GitHubClient:
    """Client for GitHub REST API v3, scoped to one repository."""

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
    ):
        if not token:
            raise PreconditionError(
                "a GitHub token is required; pass one explicitly or set GITHUB_TOKEN"
            )
        self.owner = owner
        self.repo = repo
        self.base_url = f"{api_url.rstrip('/')}/repos/{owner}/{repo}"
        self.client = httpx.Client(
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=timeout,
        )

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.client.close()

    def _request(self, operation: str, method: str, url: str, **kwargs) -> httpx.Response:
        """Send a request and wrap every failure with the operation name."""
        if not url.startswith("http"):
            url = f"{self.base_url}{url}"
        logger.debug(f"GitHub API {method} {url}")
        try:
            response = self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise GitHubAPIError(operation, str(e)) from e

        if response.is_error:
            raise GitHubAPIError(
                operation,
                response.reason_phrase,
                status_code=response.status_code,
                body=response.text,
            )
        return response

    @staticmethod
    def _decode(operation: str, response: httpx.Response, model: type) -> Any:
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise DecodeError(f"{operation}: unexpected response: {e}", response.text) from e

    def _paginate(self, operation: str, path: str, params: Dict[str, Any]) -> Iterator[Any]:
        """Yield raw items page by page, following the Link rel="next" header."""
        url: Optional[str] = f"{self.base_url}{path}"
        page_params: Optional[Dict[str, Any]] = {**params, "per_page": PER_PAGE}
        while url:
            response = self._request(operation, "GET", url, params=page_params)
            try:
                items = response.json()
            except ValueError as e:
                raise DecodeError(f"{operation}: response is not JSON", response.text) from e
            if not isinstance(items, list):
                raise DecodeError(f"{operation}: expected a JSON array", response.text)

            yield from items

            # The next link already carries every query parameter
            url = response.links.get("next", {}).get("url")
            page_params = None

    def create_pull_request(self, head: str, base: str, title: str, body: str) -> PullRequestInfo:
        """Create a pull request.

        Args:
            head: Source branch
            base: Target branch
            title: PR title
            body: PR description

        Returns:
            Created PR
        """
        operation = "creating pull request"
        response = self._request(operation, "POST", "/pulls", json={
            "title": title,
            "body": body,
            "head": head,
            "base": base,
        })
        return self._decode(operation, response, PullRequestInfo)

    def add_labels(self, issue_number: int, labels: List[str]) -> None:
        self._request("adding labels to pull request", "POST",
                      f"/issues/{issue_number}/labels", json={"labels": labels})

    def add_pr_comment(self, pr_number: int, comment: str) -> None:
        """Add a comment to a pull request.

        Args:
            pr_number: PR number
            comment: Comment text
        """
        self._request("sending comment", "POST",
                      f"/issues/{pr_number}/comments", json={"body": comment})

    def merge_pull_request(self, pr_number: int, merge_method: str = "merge") -> None:
        self._request("merging pull request", "PUT",
                      f"/pulls/{pr_number}/merge", json={"merge_method": merge_method})

    def create_release(self, tag_name: str) -> None:
        self._request("creating release", "POST", "/releases", json={"tag_name": tag_name})

    def dispatch(self, event_type: str, client_payload: Any) -> None:
        """Send a repository_dispatch event.

        Args:
            event_type: Event type the workflows listen to
            client_payload: JSON-serializable payload
        """
        self._request("dispatching event", "POST", "/dispatches", json={
            "event_type": event_type,
            "client_payload": client_payload,
        })

    def list_tags(self) -> Iterator[TagInfo]:
        operation = "listing tags"
        for item in self._paginate(operation, "/tags", {}):
            yield _validate_item(operation, item, TagInfo)

    def list_pull_requests(self, state: str = "all") -> Iterator[PullRequestInfo]:
        operation = "listing pull requests"
        for item in self._paginate(operation, "/pulls", {"state": state}):
            yield _validate_item(operation, item, PullRequestInfo)


def _validate_item(operation: str, item: Any, model: type) -> Any:
    try:
        return model.model_validate(item)
    except ValidationError as e:
        raise DecodeError(f"{operation}: unexpected item: {e}", item) from e
