"""Provider of pre-existing GitHub repositories that tests may push to."""

import os
from typing import Optional

from ..core.config import GitHubConfig
from ..core.errors import CommandError, NotFoundError, PreconditionError, ResourceNotFoundError
from ..core.logging import get_logger
from ..core.types import GitHubWritableRepository
from ..models.change import Base
from ..services.github_repositories import GitHubRepositories
from ..services.repo_service import RepoService
from .base import GitHubWritableRepositoryProvider, Provider
from .env import has_testkit_env

logger = get_logger(__name__)

CONFIG_BRANCH = "testkit-config"
WRITABLE_MARKER = ".testkit.writable"


class GitHubWritableRepositoriesEnvProvider(Provider, GitHubWritableRepositoryProvider):
    """Hands out repositories listed in TESTKIT_GITHUB_WRITEABLE_REPOS.

    A repository qualifies only when its ``testkit-config`` branch carries a
    ``.testkit.writable`` file containing ``true``. Repositories are never
    created.
    """

    def __init__(self, github_config: Optional[GitHubConfig] = None):
        self.github_config = github_config or GitHubConfig()

    def setup(self) -> None:
        if not has_testkit_env():
            raise PreconditionError("no TESTKIT_* environment variables found")

    def cleanup(self) -> None:
        pass

    def get_github_writable_repository(self, options) -> GitHubWritableRepository:
        repos = os.getenv("TESTKIT_GITHUB_WRITEABLE_REPOS")
        if not repos:
            raise PreconditionError("TESTKIT_GITHUB_WRITEABLE_REPOS environment variable is not set")

        token = os.getenv("TESTKIT_GITHUB_TOKEN")
        if not token:
            raise PreconditionError("TESTKIT_GITHUB_TOKEN environment variable is not set")

        svc = GitHubRepositories.from_config(self.github_config, token=token)

        for full_name in (r.strip() for r in repos.split(",")):
            if not full_name:
                continue
            owner, sep, repo = full_name.partition("/")
            if not sep or not owner or not repo:
                raise PreconditionError(f"invalid repository {full_name!r}: expected owner/name")

            marker = Base(owner=owner, repo=repo, branch=CONFIG_BRANCH)
            try:
                content = svc.get_file_content(marker, WRITABLE_MARKER)
            except (CommandError, NotFoundError) as e:
                logger.warning(f"Failed to get {WRITABLE_MARKER} from {full_name}: {e}")
                continue

            value = content.decode("utf-8", "replace").strip()
            if value != "true":
                raise PreconditionError(
                    f"repository {full_name} has a {WRITABLE_MARKER} file, "
                    f"but its content is {value!r} instead of 'true'"
                )

            logger.info(f"Using writable repository {full_name}")
            return GitHubWritableRepository(
                id=options.id,
                name=full_name,
                token=token,
                service=RepoService(svc, owner, repo),
            )

        raise ResourceNotFoundError("no writable repository found")
