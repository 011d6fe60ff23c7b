"""Per-repository helpers attached to writable repositories."""

from typing import List

from ..models.change import Base, ChangeSet, CommitFound, File, Head
from .github_repositories import GitHubRepositories

COMMITTER_NAME = "testkit"


class RepoService:
    """Read and write one repository through a shared :class:`GitHubRepositories`."""

    def __init__(self, repos: GitHubRepositories, owner: str, repo: str):
        self.repos = repos
        self.owner = owner
        self.repo = repo

    def _base(self, branch: str) -> Base:
        return Base(owner=self.owner, repo=self.repo, branch=branch)

    def find_commits(self, branch: str, since_sha: str = "") -> List[CommitFound]:
        return self.repos.find_commits(self._base(branch), since_sha)

    def write_file(self, path: str, content: str, message: str) -> None:
        """Commit one file directly to main."""
        self.repos.push(
            self._base("main"),
            Head(branch="main"),
            ChangeSet(
                files=[File(path=path, content_string=content)],
                message=message,
                user_name=COMMITTER_NAME,
            ),
        )

    def current_sha(self, branch: str = "main") -> str:
        return self.repos.current_sha(self._base(branch))
