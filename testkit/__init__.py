"""testkit: end-to-end test fixtures backed by pluggable providers."""

from .core.config import HarnessConfig, load_config
from .core.errors import (
    ChangeSetError,
    CleanupError,
    CommandError,
    CommandOutputError,
    DecodeError,
    GitHubAPIError,
    HarnessSetupError,
    HarnessStateError,
    InvalidTagError,
    NotFoundError,
    PreconditionError,
    ProviderNotFoundError,
    ResolutionError,
    ResourceNotFoundError,
    TestkitError,
)
from .core.poll import PollTimeoutError, poll_until
from .core.resolution import ResolutionStrategy
from .harness import Harness, HarnessState, ResourceKind, default_providers
from .services.github_repositories import GitHubRepositories
from .services.repo_service import RepoService

__version__ = "0.1.0"

__all__ = [
    "ChangeSetError",
    "CleanupError",
    "CommandError",
    "CommandOutputError",
    "DecodeError",
    "GitHubAPIError",
    "GitHubRepositories",
    "Harness",
    "HarnessConfig",
    "HarnessSetupError",
    "HarnessState",
    "HarnessStateError",
    "InvalidTagError",
    "NotFoundError",
    "PollTimeoutError",
    "PreconditionError",
    "ProviderNotFoundError",
    "RepoService",
    "ResolutionError",
    "ResolutionStrategy",
    "ResourceKind",
    "ResourceNotFoundError",
    "TestkitError",
    "default_providers",
    "load_config",
    "poll_until",
]
