"""Provider of namespaces and config maps created with kubectl."""

import os
from typing import Dict, Optional

from ..core.config import HarnessConfig
from ..core.errors import CleanupError, CommandError, PreconditionError
from ..core.logging import get_logger
from ..core.naming import NameRegistry, find_by_prefix, generate_name, name_prefix
from ..core.types import KubernetesConfigMap, KubernetesNamespace
from ..tools.kubectl import Kubectl
from .base import KubernetesConfigMapProvider, KubernetesNamespaceProvider, Provider

logger = get_logger(__name__)

DEFAULT_NAMESPACE = "default"


class _ClusterResources:
    """Names created in one cluster, identified by its kubeconfig path."""

    def __init__(self) -> None:
        self.namespaces = NameRegistry()
        self.configmaps: Dict[str, NameRegistry] = {}

    def configmaps_in(self, namespace: str) -> NameRegistry:
        return self.configmaps.setdefault(namespace, NameRegistry())


class KubectlProvider(Provider, KubernetesNamespaceProvider, KubernetesConfigMapProvider):
    """Creates namespaces and config maps on demand and deletes them on cleanup.

    Names follow ``testkit-[<id>-]<suffix>``. A request reuses, in order, a
    name this provider already created, then an existing object with the
    same prefix (left unmanaged), and only then creates a new one.
    """

    def __init__(self, default_kubeconfig_path: Optional[str] = None):
        self.default_kubeconfig_path = default_kubeconfig_path
        self._clusters: Dict[str, _ClusterResources] = {}

    @classmethod
    def from_config(cls, config: HarnessConfig) -> "KubectlProvider":
        return cls(default_kubeconfig_path=config.kubectl.default_kubeconfig_path)

    def setup(self) -> None:
        if self.default_kubeconfig_path and not os.path.exists(self.default_kubeconfig_path):
            raise PreconditionError(f"kubeconfig file {self.default_kubeconfig_path} does not exist")
        self._clusters = {}

    def _resources(self, kubeconfig_path: str) -> _ClusterResources:
        return self._clusters.setdefault(kubeconfig_path, _ClusterResources())

    def _kubeconfig(self, options) -> str:
        return options.kubeconfig_path or self.default_kubeconfig_path or ""

    def get_kubernetes_namespace(self, options) -> KubernetesNamespace:
        kubeconfig_path = self._kubeconfig(options)
        registry = self._resources(kubeconfig_path).namespaces
        prefix = name_prefix(options.id)

        if name := registry.find(prefix):
            return KubernetesNamespace(name=name)

        kubectl = Kubectl(kubeconfig_path)
        if name := find_by_prefix(kubectl.list_names("namespaces"), prefix):
            logger.info(f"Reusing unmanaged namespace {name}", extra={"provider": self.name})
            return KubernetesNamespace(name=name)

        name = generate_name(options.id)
        kubectl.capture("create", "namespace", name)
        registry.add(name)
        logger.info(f"Created namespace {name}", extra={"provider": self.name})
        return KubernetesNamespace(name=name)

    def get_kubernetes_configmap(self, options) -> KubernetesConfigMap:
        kubeconfig_path = self._kubeconfig(options)
        namespace = options.namespace or DEFAULT_NAMESPACE
        registry = self._resources(kubeconfig_path).configmaps_in(namespace)
        prefix = name_prefix(options.id)

        if name := registry.find(prefix):
            return KubernetesConfigMap(namespace=namespace, name=name)

        kubectl = Kubectl(kubeconfig_path)
        if name := find_by_prefix(kubectl.list_names("configmaps", namespace=namespace), prefix):
            logger.info(f"Reusing unmanaged config map {namespace}/{name}", extra={"provider": self.name})
            return KubernetesConfigMap(namespace=namespace, name=name)

        name = generate_name(options.id)
        kubectl.capture("create", "configmap", name, "--namespace", namespace)
        registry.add(name)
        logger.info(f"Created config map {namespace}/{name}", extra={"provider": self.name})
        return KubernetesConfigMap(namespace=namespace, name=name)

    def cleanup(self) -> None:
        """Delete config maps, then namespaces, across every cluster.

        Raises:
            CleanupError: Listing every deletion that failed
        """
        failures = []
        for kubeconfig_path, resources in self._clusters.items():
            kubectl = Kubectl(kubeconfig_path)

            for namespace, registry in resources.configmaps.items():
                for name in registry:
                    try:
                        kubectl.capture("delete", "configmap", name, "--namespace", namespace)
                        registry.discard(name)
                    except CommandError as e:
                        failures.append(f"configmap {namespace}/{name} ({kubeconfig_path}): {e}")

            for name in resources.namespaces:
                try:
                    kubectl.capture("delete", "namespace", name)
                    resources.namespaces.discard(name)
                except CommandError as e:
                    failures.append(f"namespace {name} ({kubeconfig_path}): {e}")

        if failures:
            raise CleanupError(self.name, failures)
