"""Resource providers."""

from .base import (
    ChatworkRoomProvider,
    ECRImageRepositoryProvider,
    EKSClusterProvider,
    GitHubRepositoryProvider,
    GitHubWritableRepositoryProvider,
    KubernetesClusterProvider,
    KubernetesConfigMapProvider,
    KubernetesNamespaceProvider,
    Provider,
    S3BucketProvider,
    SlackChannelProvider,
)
from .env import EnvProvider
from .github_repositories import GitHubWritableRepositoriesEnvProvider
from .kind import KindProvider
from .kubectl import KubectlProvider
from .terraform import TerraformProvider

__all__ = [
    "ChatworkRoomProvider",
    "ECRImageRepositoryProvider",
    "EKSClusterProvider",
    "EnvProvider",
    "GitHubRepositoryProvider",
    "GitHubWritableRepositoriesEnvProvider",
    "GitHubWritableRepositoryProvider",
    "KindProvider",
    "KubectlProvider",
    "KubernetesClusterProvider",
    "KubernetesConfigMapProvider",
    "KubernetesNamespaceProvider",
    "Provider",
    "S3BucketProvider",
    "SlackChannelProvider",
    "TerraformProvider",
]
