"""Provider lifecycle and the capability interfaces providers implement.

A provider declares what it can supply by subclassing one or more capability
classes below. The harness discovers capabilities with ``isinstance``, so a
provider never has to implement kinds it does not support.
"""

from abc import ABC, abstractmethod

from ..core.types import (
    ChatworkRoom,
    ChatworkRoomOptions,
    ECRImageRepository,
    ECRImageRepositoryOptions,
    EKSCluster,
    EKSClusterOptions,
    GitHubRepository,
    GitHubRepositoryOptions,
    GitHubWritableRepository,
    GitHubWritableRepositoryOptions,
    KubernetesCluster,
    KubernetesClusterOptions,
    KubernetesConfigMap,
    KubernetesConfigMapOptions,
    KubernetesNamespace,
    KubernetesNamespaceOptions,
    S3Bucket,
    S3BucketOptions,
    SlackChannel,
    SlackChannelOptions,
)


class Provider(ABC):
    """A source of test resources with a setup/cleanup lifecycle."""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def setup(self) -> None:
        """Prepare the provider. Raise to signal it is unavailable."""

    @abstractmethod
    def cleanup(self) -> None:
        """Release every resource this provider created."""

    def __repr__(self) -> str:
        return f"<{self.name}>"


class KubernetesClusterProvider(ABC):
    @abstractmethod
    def get_kubernetes_cluster(self, options: KubernetesClusterOptions) -> KubernetesCluster:
        ...


class EKSClusterProvider(ABC):
    @abstractmethod
    def get_eks_cluster(self, options: EKSClusterOptions) -> EKSCluster:
        ...


class KubernetesNamespaceProvider(ABC):
    @abstractmethod
    def get_kubernetes_namespace(self, options: KubernetesNamespaceOptions) -> KubernetesNamespace:
        ...


class KubernetesConfigMapProvider(ABC):
    @abstractmethod
    def get_kubernetes_configmap(self, options: KubernetesConfigMapOptions) -> KubernetesConfigMap:
        ...


class S3BucketProvider(ABC):
    @abstractmethod
    def get_s3_bucket(self, options: S3BucketOptions) -> S3Bucket:
        ...


class ECRImageRepositoryProvider(ABC):
    @abstractmethod
    def get_ecr_image_repository(self, options: ECRImageRepositoryOptions) -> ECRImageRepository:
        ...


class GitHubRepositoryProvider(ABC):
    @abstractmethod
    def get_github_repository(self, options: GitHubRepositoryOptions) -> GitHubRepository:
        ...


class GitHubWritableRepositoryProvider(ABC):
    @abstractmethod
    def get_github_writable_repository(
        self, options: GitHubWritableRepositoryOptions
    ) -> GitHubWritableRepository:
        ...


class SlackChannelProvider(ABC):
    @abstractmethod
    def get_slack_channel(self, options: SlackChannelOptions) -> SlackChannel:
        ...


class ChatworkRoomProvider(ABC):
    @abstractmethod
    def get_chatwork_room(self, options: ChatworkRoomOptions) -> ChatworkRoom:
        ...
