"""Provider of local Kubernetes clusters backed by kind."""

import os
import tempfile
from pathlib import Path
from typing import Optional

from ..core.errors import CleanupError, CommandError
from ..core.logging import get_logger
from ..core.naming import NameRegistry, find_by_prefix, generate_name, name_prefix
from ..core.types import KubernetesCluster
from ..tools.kind import Kind
from ..tools.process import find_binary
from .base import KubernetesClusterProvider, Provider

logger = get_logger(__name__)

KUBECONFIG_DIR_NAME = "testkit_kind_kubeconfigs"
CLUSTER_SUFFIX_LENGTH = 4


class KindProvider(Provider, KubernetesClusterProvider):
    """Creates kind clusters on demand and deletes the ones it created."""

    def __init__(
        self,
        wait: Optional[float] = None,
        image: Optional[str] = None,
        config_path: Optional[str] = None,
        retain: bool = False,
        kubeconfig_dir: Optional[str] = None,
    ):
        """Initialize the provider.

        Args:
            wait: Seconds to wait for the control plane on creation
            image: Node image
            config_path: kind cluster config file
            retain: Pass --retain to kind create cluster
            kubeconfig_dir: Directory for per-cluster kubeconfigs
        """
        self.wait = wait
        self.image = image
        self.config_path = config_path
        self.retain = retain
        self.kubeconfig_dir = Path(kubeconfig_dir or os.path.join(tempfile.gettempdir(), KUBECONFIG_DIR_NAME))
        self.kind: Optional[Kind] = None
        self.clusters = NameRegistry()

    def setup(self) -> None:
        self.kind = Kind(find_binary("kind"))
        self.kubeconfig_dir.mkdir(parents=True, exist_ok=True)
        self.clusters = NameRegistry()

    def kubeconfig_path(self, cluster_name: str) -> str:
        return str(self.kubeconfig_dir / f"{cluster_name}.kubeconfig")

    def _use_existing(self, cluster_name: str) -> KubernetesCluster:
        path = self.kubeconfig_path(cluster_name)
        self.kind.export_kubeconfig(cluster_name, path)
        return KubernetesCluster(kubeconfig_path=path)

    def get_kubernetes_cluster(self, options) -> KubernetesCluster:
        prefix = name_prefix(options.id)

        if name := self.clusters.find(prefix):
            return self._use_existing(name)

        if name := find_by_prefix(self.kind.get_clusters(), prefix):
            logger.info(f"Reusing unmanaged kind cluster {name}", extra={"provider": self.name})
            return self._use_existing(name)

        name = generate_name(options.id, suffix_length=CLUSTER_SUFFIX_LENGTH)
        path = self.kubeconfig_path(name)
        logger.info(f"Creating kind cluster {name}", extra={"provider": self.name})
        self.kind.create_cluster(
            name,
            path,
            wait=self.wait,
            image=self.image,
            config_path=self.config_path,
            retain=self.retain,
        )
        self.clusters.add(name)
        logger.debug(f"Exported kubeconfig for cluster {name} to {path}")
        return KubernetesCluster(kubeconfig_path=path)

    def cleanup(self) -> None:
        if self.kind is None:
            return

        failures = []
        for name in self.clusters:
            try:
                self.kind.delete_cluster(name, self.kubeconfig_path(name))
                self.clusters.discard(name)
            except CommandError as e:
                failures.append(f"cluster {name}: {e}")

        if failures:
            raise CleanupError(self.name, failures)
