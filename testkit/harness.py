"""The harness: a capability broker over an ordered list of providers.

A test asks the harness for a resource. The harness walks its providers in
order, picks those implementing the capability for that kind, and returns
the first resource supplied. At teardown every provider is cleaned up unless
the retention policy says otherwise.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence

from .core.config import HarnessConfig, load_config, retention_overrides
from .core.errors import HarnessSetupError, HarnessStateError
from .core.logging import get_logger
from .core.resolution import ResolutionStrategy, resolve
from .core import types as t
from .providers import base as caps
from .providers.base import Provider
from .providers.env import EnvProvider
from .providers.github_repositories import GitHubWritableRepositoriesEnvProvider
from .providers.terraform import TerraformProvider

logger = get_logger(__name__)


class HarnessState(str, Enum):
    UNCONFIGURED = "unconfigured"
    PROVIDERS_SETUP = "providers_setup"
    ACTIVE = "active"
    TORN_DOWN = "torn_down"


class ResourceKind(str, Enum):
    KUBERNETES_CLUSTER = "kubernetes_cluster"
    EKS_CLUSTER = "eks_cluster"
    KUBERNETES_NAMESPACE = "kubernetes_namespace"
    KUBERNETES_CONFIGMAP = "kubernetes_configmap"
    S3_BUCKET = "s3_bucket"
    ECR_IMAGE_REPOSITORY = "ecr_image_repository"
    GITHUB_REPOSITORY = "github_repository"
    GITHUB_WRITABLE_REPOSITORY = "github_writable_repository"
    SLACK_CHANNEL = "slack_channel"
    CHATWORK_ROOM = "chatwork_room"


class KindSpec(NamedTuple):
    capability: type
    method: str
    options: type
    default_strategy: ResolutionStrategy


_FAIL_FAST = ResolutionStrategy.FIRST_IMPLEMENTER
_CONTINUE = ResolutionStrategy.FIRST_SUCCESS

KINDS: Dict[ResourceKind, KindSpec] = {
    ResourceKind.KUBERNETES_CLUSTER: KindSpec(
        caps.KubernetesClusterProvider, "get_kubernetes_cluster", t.KubernetesClusterOptions, _FAIL_FAST),
    ResourceKind.EKS_CLUSTER: KindSpec(
        caps.EKSClusterProvider, "get_eks_cluster", t.EKSClusterOptions, _FAIL_FAST),
    ResourceKind.KUBERNETES_NAMESPACE: KindSpec(
        caps.KubernetesNamespaceProvider, "get_kubernetes_namespace", t.KubernetesNamespaceOptions, _CONTINUE),
    ResourceKind.KUBERNETES_CONFIGMAP: KindSpec(
        caps.KubernetesConfigMapProvider, "get_kubernetes_configmap", t.KubernetesConfigMapOptions, _CONTINUE),
    ResourceKind.S3_BUCKET: KindSpec(
        caps.S3BucketProvider, "get_s3_bucket", t.S3BucketOptions, _FAIL_FAST),
    ResourceKind.ECR_IMAGE_REPOSITORY: KindSpec(
        caps.ECRImageRepositoryProvider, "get_ecr_image_repository", t.ECRImageRepositoryOptions, _FAIL_FAST),
    ResourceKind.GITHUB_REPOSITORY: KindSpec(
        caps.GitHubRepositoryProvider, "get_github_repository", t.GitHubRepositoryOptions, _CONTINUE),
    ResourceKind.GITHUB_WRITABLE_REPOSITORY: KindSpec(
        caps.GitHubWritableRepositoryProvider, "get_github_writable_repository",
        t.GitHubWritableRepositoryOptions, _CONTINUE),
    ResourceKind.SLACK_CHANNEL: KindSpec(
        caps.SlackChannelProvider, "get_slack_channel", t.SlackChannelOptions, _FAIL_FAST),
    ResourceKind.CHATWORK_ROOM: KindSpec(
        caps.ChatworkRoomProvider, "get_chatwork_room", t.ChatworkRoomOptions, _FAIL_FAST),
}


def default_providers(config: HarnessConfig) -> List[Provider]:
    """Fresh default provider list, highest precedence first."""
    return [
        TerraformProvider(
            workspace_path=config.terraform.workspace_path,
            vars=config.terraform.vars,
            kubeconfig_dir=config.terraform.kubeconfig_dir,
        ),
        GitHubWritableRepositoriesEnvProvider(config.github),
        EnvProvider(),
    ]


class Harness:
    """Hands out test resources and cleans them up at teardown.

    Build one with :meth:`build`. Not safe for concurrent use.
    """

    def __init__(self, config: Optional[HarnessConfig] = None):
        self.config = config or HarnessConfig()
        self.providers: List[Provider] = []
        self.state = HarnessState.UNCONFIGURED

    @classmethod
    def build(
        cls,
        config: Optional[HarnessConfig] = None,
        providers: Optional[Sequence[Provider]] = None,
    ) -> "Harness":
        """Build a harness and set up its providers.

        Args:
            config: Harness configuration (default: load_config())
            providers: Explicit providers, all of which must set up
                successfully. When one fails, those already set up are
                cleaned up unless resources are retained on failure. An
                empty list is an error. When omitted the default providers
                are tried and those failing setup are skipped.

        Returns:
            An active harness

        Raises:
            HarnessSetupError: If an explicit provider fails setup, if the
                explicit list is empty, or if no default provider is available
        """
        if config is None:
            config = load_config()
        else:
            config = config.model_copy(update=retention_overrides())

        harness = cls(config)
        harness._setup_providers(None if providers is None else list(providers))
        harness.state = HarnessState.ACTIVE
        return harness

    def _setup_providers(self, providers: Optional[List[Provider]]) -> None:
        if providers is not None:
            if not providers:
                raise HarnessSetupError("no providers given")
            for i, p in enumerate(providers):
                try:
                    p.setup()
                except Exception as e:
                    if self.cleanup_needed(test_failed=True):
                        self._cleanup_providers(reversed(providers[:i]))
                    raise HarnessSetupError(f"failed to setup provider {p.name}: {e}") from e
            self.providers = providers
        else:
            available = []
            for p in default_providers(self.config):
                try:
                    p.setup()
                except Exception as e:
                    logger.info(f"Skipped setting up failed provider {p.name}: {e}", extra={"provider": p.name})
                    continue
                available.append(p)

            if not available:
                raise HarnessSetupError("no provider out of the default providers is available")
            self.providers = available

        self.state = HarnessState.PROVIDERS_SETUP
        logger.debug(f"Active providers: {[p.name for p in self.providers]}")

    def resolve(
        self,
        kind: ResourceKind,
        strategy: Optional[ResolutionStrategy] = None,
        **options: Any,
    ) -> Any:
        """Resolve a resource of the given kind.

        Args:
            kind: Resource kind
            strategy: Override the kind's default resolution strategy
            options: Kind-specific options, such as id or namespace

        Raises:
            HarnessStateError: If the harness is not active
            ProviderNotFoundError: If no provider implements the kind
            ResolutionError: If capable providers failed
        """
        kind = ResourceKind(kind)
        if self.state is not HarnessState.ACTIVE:
            raise HarnessStateError(f"cannot resolve {kind.value}: harness is {self.state.value}")

        spec = KINDS[kind]
        opts = spec.options(**options)
        return resolve(
            kind.value,
            self.providers,
            spec.capability,
            lambda p: getattr(p, spec.method)(opts),
            strategy or spec.default_strategy,
        )

    def kubernetes_cluster(self, strategy: Optional[ResolutionStrategy] = None, **options) -> t.KubernetesCluster:
        return self.resolve(ResourceKind.KUBERNETES_CLUSTER, strategy, **options)

    def eks_cluster(self, strategy: Optional[ResolutionStrategy] = None, **options) -> t.EKSCluster:
        return self.resolve(ResourceKind.EKS_CLUSTER, strategy, **options)

    def kubernetes_namespace(self, strategy: Optional[ResolutionStrategy] = None, **options) -> t.KubernetesNamespace:
        return self.resolve(ResourceKind.KUBERNETES_NAMESPACE, strategy, **options)

    def kubernetes_configmap(self, strategy: Optional[ResolutionStrategy] = None, **options) -> t.KubernetesConfigMap:
        return self.resolve(ResourceKind.KUBERNETES_CONFIGMAP, strategy, **options)

    def s3_bucket(self, strategy: Optional[ResolutionStrategy] = None, **options) -> t.S3Bucket:
        return self.resolve(ResourceKind.S3_BUCKET, strategy, **options)

    def ecr_image_repository(self, strategy: Optional[ResolutionStrategy] = None, **options) -> t.ECRImageRepository:
        return self.resolve(ResourceKind.ECR_IMAGE_REPOSITORY, strategy, **options)

    def github_repository(self, strategy: Optional[ResolutionStrategy] = None, **options) -> t.GitHubRepository:
        return self.resolve(ResourceKind.GITHUB_REPOSITORY, strategy, **options)

    def github_writable_repository(
        self, strategy: Optional[ResolutionStrategy] = None, **options
    ) -> t.GitHubWritableRepository:
        return self.resolve(ResourceKind.GITHUB_WRITABLE_REPOSITORY, strategy, **options)

    def slack_channel(self, strategy: Optional[ResolutionStrategy] = None, **options) -> t.SlackChannel:
        return self.resolve(ResourceKind.SLACK_CHANNEL, strategy, **options)

    def chatwork_room(self, strategy: Optional[ResolutionStrategy] = None, **options) -> t.ChatworkRoom:
        return self.resolve(ResourceKind.CHATWORK_ROOM, strategy, **options)

    def cleanup_needed(self, test_failed: bool = False) -> bool:
        retain = self.config.retain_resources or (test_failed and self.config.retain_resources_on_failure)
        return not retain

    def cleanup(self, test_failed: bool = False) -> None:
        """Clean up every provider unless resources are retained.

        Provider errors are logged and never raised; the remaining providers
        are still cleaned up. Repeated calls do nothing.
        """
        if self.state is HarnessState.TORN_DOWN:
            return

        if self.cleanup_needed(test_failed):
            self._cleanup_providers(self.providers)
        else:
            logger.info("Retaining resources; skipping provider cleanup")

        self.state = HarnessState.TORN_DOWN

    def _cleanup_providers(self, providers: Iterable[Provider]) -> None:
        for p in providers:
            try:
                p.cleanup()
            except Exception as e:
                logger.warning(f"Failed to cleanup provider {p.name}: {e}", extra={"provider": p.name})

    def __enter__(self) -> "Harness":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup(test_failed=exc_type is not None)
