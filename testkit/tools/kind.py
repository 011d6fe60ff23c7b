"""kind (Kubernetes in Docker) command wrapper."""

from typing import List, Optional

from .process import capture


class Kind:
    """Run the kind binary, pointing KUBECONFIG at a per-cluster file."""

    def __init__(self, binary: str = "kind"):
        self.binary = binary

    def capture(self, kubeconfig_path: Optional[str], *args: str) -> str:
        env = {"KUBECONFIG": kubeconfig_path} if kubeconfig_path else None
        return capture([self.binary, *args], env=env)

    def get_clusters(self) -> List[str]:
        out = self.capture(None, "get", "clusters")
        return [line.strip() for line in out.splitlines() if line.strip()]

    def export_kubeconfig(self, name: str, kubeconfig_path: str) -> None:
        self.capture(kubeconfig_path, "export", "kubeconfig", "--name", name)

    def create_cluster(
        self,
        name: str,
        kubeconfig_path: str,
        wait: Optional[float] = None,
        image: Optional[str] = None,
        config_path: Optional[str] = None,
        retain: bool = False,
    ) -> None:
        """Create a cluster and write its kubeconfig to kubeconfig_path.

        Args:
            name: Cluster name
            kubeconfig_path: Where kind writes the kubeconfig
            wait: Seconds to wait for the control plane to be ready
            image: Node image
            config_path: kind cluster config file
            retain: Keep node containers on creation failure
        """
        args = ["create", "cluster", "--name", name]
        if wait:
            args += ["--wait", f"{int(wait)}s"]
        if image:
            args += ["--image", image]
        if config_path:
            args += ["--config", config_path]
        if retain:
            args.append("--retain")
        self.capture(kubeconfig_path, *args)

    def delete_cluster(self, name: str, kubeconfig_path: Optional[str] = None) -> None:
        self.capture(kubeconfig_path, "delete", "cluster", "--name", name)
