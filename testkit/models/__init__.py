"""Models package for testkit."""

from .change import (
    Base,
    ChangeSet,
    CommitFound,
    File,
    Head,
    PullRequestCreated,
    PullRequestFound,
    PullRequestSpec,
)

__all__ = [
    "Base",
    "ChangeSet",
    "CommitFound",
    "File",
    "Head",
    "PullRequestCreated",
    "PullRequestFound",
    "PullRequestSpec",
]
