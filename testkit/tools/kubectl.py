"""kubectl command wrapper bound to one kubeconfig."""

import json
from typing import Any, Dict, List, Optional

from ..core.errors import CommandError, CommandOutputError
from ..core.logging import get_logger
from .process import capture

logger = get_logger(__name__)


class Kubectl:
    """Run kubectl against the cluster described by kubeconfig_path."""

    def __init__(self, kubeconfig_path: Optional[str] = None, log_error: bool = False):
        self.kubeconfig_path = kubeconfig_path
        self.log_error = log_error

    def _env(self) -> Optional[Dict[str, str]]:
        if self.kubeconfig_path:
            return {"KUBECONFIG": self.kubeconfig_path}
        return None

    def capture(self, *args: str) -> str:
        """Run kubectl and return its combined output.

        Raises:
            CommandError: If kubectl exits non-zero
        """
        return capture(["kubectl", *args], env=self._env())

    def failed(self, *args: str) -> bool:
        """Run kubectl and report whether it failed, for negative assertions."""
        try:
            self.capture(*args)
        except CommandError as e:
            if self.log_error:
                logger.info(str(e))
            return True
        return False

    def get_json(self, *args: str) -> Dict[str, Any]:
        """Run ``kubectl get <args> -o json`` and decode the output."""
        out = self.capture("get", *args, "-o", "json")
        try:
            return json.loads(out)
        except ValueError as e:
            raise CommandOutputError(f"kubectl get {' '.join(args)}: output is not JSON", out) from e

    def list_names(self, resource: str, namespace: Optional[str] = None) -> List[str]:
        """Names of every object of a resource type."""
        args = [resource]
        if namespace:
            args += ["--namespace", namespace]
        doc = self.get_json(*args)
        try:
            return [item["metadata"]["name"] for item in doc.get("items", [])]
        except (KeyError, TypeError, AttributeError) as e:
            raise CommandOutputError(f"kubectl get {resource}: unexpected list shape", doc) from e
