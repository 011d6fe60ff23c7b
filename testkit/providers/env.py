"""Provider that reads pre-provisioned resources from TESTKIT_* variables."""

import os
from typing import Mapping, Optional

from ..core.errors import PreconditionError
from ..core.logging import get_logger
from ..core.types import (
    ChatworkRoom,
    EKSCluster,
    GitHubRepository,
    KubernetesCluster,
    S3Bucket,
    SlackChannel,
)
from .base import (
    ChatworkRoomProvider,
    EKSClusterProvider,
    GitHubRepositoryProvider,
    KubernetesClusterProvider,
    Provider,
    S3BucketProvider,
    SlackChannelProvider,
)

logger = get_logger(__name__)

ENV_PREFIX = "TESTKIT_"


def has_testkit_env(environ: Optional[Mapping[str, str]] = None) -> bool:
    environ = os.environ if environ is None else environ
    return any(key.startswith(ENV_PREFIX) for key in environ)


class EnvProvider(
    Provider,
    KubernetesClusterProvider,
    EKSClusterProvider,
    S3BucketProvider,
    GitHubRepositoryProvider,
    SlackChannelProvider,
    ChatworkRoomProvider,
):
    """Supplies resources that already exist, described by the environment.

    Nothing is created, so cleanup does nothing.
    """

    def setup(self) -> None:
        if not has_testkit_env():
            raise PreconditionError("no TESTKIT_* environment variables found")

    def cleanup(self) -> None:
        pass

    @staticmethod
    def _require(name: str) -> str:
        value = os.getenv(name)
        if not value:
            raise PreconditionError(f"{name} environment variable is not set")
        return value

    def get_kubernetes_cluster(self, options) -> KubernetesCluster:
        return KubernetesCluster(kubeconfig_path=self._require("TESTKIT_KUBECONFIG"))

    def get_eks_cluster(self, options) -> EKSCluster:
        return EKSCluster(kubeconfig_path=self._require("TESTKIT_KUBECONFIG"))

    def get_s3_bucket(self, options) -> S3Bucket:
        return S3Bucket(
            name=self._require("TESTKIT_S3_BUCKET_NAME"),
            region=self._require("TESTKIT_S3_BUCKET_REGION"),
            profile=os.getenv("TESTKIT_S3_BUCKET_PROFILE") or None,
        )

    def get_github_repository(self, options) -> GitHubRepository:
        return GitHubRepository(
            id=options.id,
            name=self._require("TESTKIT_GITHUB_REPOSITORY"),
            token=self._require("TESTKIT_GITHUB_TOKEN"),
        )

    def get_slack_channel(self, options) -> SlackChannel:
        return SlackChannel(
            id=self._require("TESTKIT_SLACK_CHANNEL_ID"),
            bot_token=os.getenv("TESTKIT_SLACK_BOT_TOKEN", ""),
            app_token=os.getenv("TESTKIT_SLACK_APP_TOKEN", ""),
            incoming_webhook_url=os.getenv("TESTKIT_SLACK_INCOMING_WEBHOOK_URL", ""),
        )

    def get_chatwork_room(self, options) -> ChatworkRoom:
        return ChatworkRoom(
            id=self._require("TESTKIT_CHATWORK_ROOM_ID"),
            token=self._require("TESTKIT_CHATWORK_TOKEN"),
        )
