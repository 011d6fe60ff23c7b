"""GitOps against GitHub repositories.

:class:`GitHubRepositories` clones a base repository into an ephemeral
working copy, materializes a change-set, pushes it, and drives the GitHub
API for pull requests, comments, merges, releases and repository dispatch
events. It also introspects what ended up in a repository: commits, semver
tags and pull requests.
"""

import json
import os
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional
import semver

from ..core.config import DEFAULT_API_URL, GitHubConfig
from ..core.errors import PreconditionError, InvalidTagError, ResourceNotFoundError
from ..core.logging import get_logger
from ..models.change import (
    Base,
    ChangeSet,
    CommitFound,
    Head,
    PullRequestCreated,
    PullRequestFound,
    PullRequestSpec,
)
from ..tools import git_ops
from ..tools.github import GitHubClient
from ..tools.repo_io import read_file_bytes
from .workspace_storage import WorkingCopyStorage

logger = get_logger(__name__)


class GitHubRepositories:
    """Push change-sets to, and inspect, GitHub repositories."""

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: str = DEFAULT_API_URL,
        clone_base_url: Optional[str] = None,
        temp_dir: Optional[str] = None,
        retain_cloned_repository: bool = False,
    ):
        """Initialize the façade.

        Args:
            token: GitHub token (default: $GITHUB_TOKEN)
            api_url: REST API root
            clone_base_url: Clone from <clone_base_url>/<owner>/<repo>.git instead of github.com
            temp_dir: Root for working copies (default: <tmp>/testkit/ghreposvc)
            retain_cloned_repository: Keep working copies after use
        """
        self.token = token or os.getenv("GITHUB_TOKEN") or None
        self.api_url = api_url
        self.clone_base_url = clone_base_url
        self.storage = WorkingCopyStorage(temp_dir, retain=retain_cloned_repository)
        self._work_branch_index = 0

    @classmethod
    def from_config(cls, config: GitHubConfig, token: Optional[str] = None) -> "GitHubRepositories":
        return cls(
            token=token or config.token,
            api_url=config.api_url,
            clone_base_url=config.clone_base_url,
            temp_dir=config.temp_dir,
            retain_cloned_repository=config.retain_cloned_repository,
        )

    def _new_work_branch_name(self) -> str:
        self._work_branch_index += 1
        return f"testkit-work-{self._work_branch_index}"

    def _client(self, base: Base) -> GitHubClient:
        if not self.token:
            raise PreconditionError(
                f"a GitHub token is required to call the API for {base.full_name}; "
                "pass one explicitly or set GITHUB_TOKEN"
            )
        return GitHubClient(self.token, base.owner, base.repo, api_url=self.api_url)

    @contextmanager
    def checkout(self, base: Base) -> Iterator[str]:
        """Clone base into a fresh working copy on a new work branch.

        Yields:
            Path of the working copy, removed on exit unless retained
        """
        with self.storage.working_copy(base.owner, base.repo) as local:
            logger.info(f"Cloning {base.full_name}@{base.branch} into {local}")
            git_ops.clone_into_new_branch(
                base,
                str(local),
                self._new_work_branch_name(),
                token=self.token,
                clone_base_url=self.clone_base_url,
            )
            yield str(local)

    def push(self, base: Base, head: Head, change_set: ChangeSet) -> None:
        """Commit change_set on top of base and push it to head.branch.

        Raises:
            ChangeSetError: If a file has zero or several content sources
            PreconditionError: If head.branch is empty
            CommandError: If any git step fails
        """
        git_ops.check_change_set(change_set)

        with self.checkout(base) as local:
            git_ops.write_and_add_files(local, change_set.files)
            git_ops.commit_rename_branch_and_push(local, change_set, head)

    def send(self, base: Base, head: Head, change_set: ChangeSet, pr: PullRequestSpec) -> PullRequestCreated:
        """Push change_set to head.branch and open a pull request into base.branch."""
        self.push(base, head, change_set)

        with self._client(base) as gh:
            created = gh.create_pull_request(
                head=head.branch,
                base=base.branch,
                title=pr.title,
                body=pr.body,
            )
            if pr.labels:
                gh.add_labels(created.number, pr.labels)

        logger.info(f"Opened pull request #{created.number} on {base.full_name}")
        return PullRequestCreated(number=created.number)

    def comment(self, base: Base, pr_number: int, body: str) -> None:
        with self._client(base) as gh:
            gh.add_pr_comment(pr_number, body)

    def merge(self, base: Base, pr_number: int) -> None:
        with self._client(base) as gh:
            gh.merge_pull_request(pr_number, merge_method="merge")
        logger.info(f"Merged pull request #{pr_number} on {base.full_name}")

    def release(self, base: Base, tag_name: str) -> None:
        with self._client(base) as gh:
            gh.create_release(tag_name)

    def dispatch(self, base: Base, event_type: str, client_payload: Any) -> None:
        """Send a repository_dispatch event.

        Raises:
            PreconditionError: If client_payload is not JSON-serializable
        """
        try:
            payload = json.loads(json.dumps(client_payload))
        except (TypeError, ValueError) as e:
            raise PreconditionError(f"client payload is not JSON-serializable: {e}") from e

        with self._client(base) as gh:
            gh.dispatch(event_type, payload)

    def find_commits(self, base: Base, since_sha: str = "") -> List[CommitFound]:
        """Commits on base.branch made after since_sha, newest first.

        Calling this twice, once before and once after a change is expected
        to land, shows whether the change is reflected in the repository.
        """
        with self.checkout(base) as local:
            return git_ops.find_commits(local, since_sha)

    def current_sha(self, base: Base) -> str:
        with self.checkout(base) as local:
            return git_ops.rev_parse(local)

    def get_file_content(self, base: Base, path: str) -> bytes:
        """Content of path at the tip of base.branch.

        Raises:
            PreconditionError: If path escapes the repository
            ResourceNotFoundError: If the file does not exist
        """
        with self.checkout(base) as local:
            try:
                return read_file_bytes(local, path)
            except ValueError as e:
                raise PreconditionError(str(e)) from e
            except FileNotFoundError as e:
                raise ResourceNotFoundError(f"{path} not found in {base.full_name}@{base.branch}") from e

    def find_semver_tags(self, base: Base, since_version: str = "") -> List[str]:
        """Find semver tags.

        With since_version empty, returns only the greatest tag. Otherwise
        returns every tag greater than or equal to since_version, in the
        order the API lists them.

        Raises:
            InvalidTagError: If since_version or any tag is not a valid version
        """
        since = _parse_version(since_version) if since_version else None

        tags: List[str] = []
        greatest: Optional[semver.Version] = None
        with self._client(base) as gh:
            for tag in gh.list_tags():
                version = _parse_version(tag.name)
                if since is None:
                    if greatest is None or version > greatest:
                        greatest = version
                        tags = [tag.name]
                elif version >= since:
                    tags.append(tag.name)

        return tags

    def find_pull_requests(self, base: Base, since_number: int = 0) -> List[PullRequestFound]:
        """Find pull requests and the commits each one carries.

        With since_number 0, returns only the highest-numbered pull request.
        Otherwise returns every pull request numbered since_number or above.

        Raises:
            ResourceNotFoundError: If a pull request has no commits
        """
        found: List[PullRequestFound] = []
        with self._client(base) as gh:
            for pr in gh.list_pull_requests(state="all"):
                entry = PullRequestFound(number=pr.number, base_sha=pr.base.sha)
                if since_number == 0:
                    if not found or entry.number > found[0].number:
                        found = [entry]
                elif entry.number >= since_number:
                    found.append(entry)

        for entry in found:
            pr_head = Base(owner=base.owner, repo=base.repo, branch=f"refs/pull/{entry.number}/head")
            commits = self.find_commits(pr_head, entry.base_sha)
            if not commits:
                raise ResourceNotFoundError(
                    f"no commits found in pull request #{entry.number} of {base.full_name}"
                )
            entry.commits = commits

        return found


def _parse_version(name: str) -> semver.Version:
    """Parse a tag as a semantic version, accepting a leading "v" and a missing minor or patch."""
    try:
        return semver.Version.parse(name[1:] if name[:1] in ("v", "V") else name, optional_minor_and_patch=True)
    except (ValueError, TypeError) as e:
        raise InvalidTagError(f"{name!r} is not a valid semver tag", name) from e
