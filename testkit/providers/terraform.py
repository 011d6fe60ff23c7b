"""Provider of AWS resources declared in a Terraform workspace."""

import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from ..core.errors import PreconditionError, ResourceNotFoundError
from ..core.logging import get_logger
from ..core.types import ECRImageRepository, EKSCluster, KubernetesCluster, S3Bucket
from ..tools.terraform import (
    ECRRepositoryValues,
    EKSClusterValues,
    S3BucketValues,
    Terraform,
    TerraformResource,
    parse_resources,
    values_of_type,
)
from .base import (
    ECRImageRepositoryProvider,
    EKSClusterProvider,
    KubernetesClusterProvider,
    Provider,
    S3BucketProvider,
)

logger = get_logger(__name__)

KUBECONFIG_DIR_NAME = "testkit_terraform_kubeconfigs"
EXEC_API_VERSION = "client.authentication.k8s.io/v1beta1"


def build_eks_kubeconfig(values: EKSClusterValues) -> Dict:
    """Kubeconfig document authenticating through ``aws eks get-token``."""
    name = f"testkit_{values.name}"
    ca_data = values.certificate_authority[0].data if values.certificate_authority else ""
    return {
        "apiVersion": "v1",
        "kind": "Config",
        "clusters": [{
            "name": name,
            "cluster": {
                "server": values.endpoint,
                "certificate-authority-data": ca_data,
            },
        }],
        "contexts": [{
            "name": name,
            "context": {"cluster": name, "user": name},
        }],
        "current-context": name,
        "preferences": {},
        "users": [{
            "name": name,
            "user": {
                "exec": {
                    "apiVersion": EXEC_API_VERSION,
                    "command": "aws",
                    "args": [
                        "--region", values.region,
                        "eks", "get-token",
                        "--cluster-name", values.name,
                        "--output", "json",
                    ],
                },
            },
        }],
    }


class TerraformProvider(
    Provider,
    S3BucketProvider,
    EKSClusterProvider,
    KubernetesClusterProvider,
    ECRImageRepositoryProvider,
):
    """Applies a Terraform workspace on setup and destroys it on cleanup.

    Resources are read from the state captured by ``terraform show -json``
    right after apply.
    """

    def __init__(
        self,
        workspace_path: Optional[str] = None,
        vars: Optional[Dict[str, str]] = None,
        kubeconfig_dir: Optional[str] = None,
    ):
        self.workspace_path = workspace_path
        self.vars = dict(vars or {})
        self.kubeconfig_dir = Path(kubeconfig_dir or os.path.join(tempfile.gettempdir(), KUBECONFIG_DIR_NAME))
        self.terraform: Optional[Terraform] = None
        self.resources: List[TerraformResource] = []

    def setup(self) -> None:
        if not self.workspace_path:
            raise PreconditionError("terraform workspace path is not set")
        if not os.path.isdir(self.workspace_path):
            raise PreconditionError(f"terraform workspace {self.workspace_path} does not exist")

        self.terraform = Terraform(self.workspace_path, self.vars)
        logger.info(f"Applying terraform workspace {self.workspace_path}", extra={"provider": self.name})
        self.terraform.init()
        self.terraform.apply()
        self.resources = parse_resources(self.terraform.show_json())
        logger.info(f"Terraform state has {len(self.resources)} root module resource(s)")

    def cleanup(self) -> None:
        if self.terraform is None:
            return
        logger.info(f"Destroying terraform workspace {self.workspace_path}", extra={"provider": self.name})
        self.terraform.destroy()

    def _eks_values(self) -> EKSClusterValues:
        clusters = values_of_type(self.resources, "aws_eks_cluster", EKSClusterValues)
        if not clusters:
            raise ResourceNotFoundError("unable to find EKS cluster resource")
        return clusters[0]

    def write_kubeconfig(self, values: EKSClusterValues) -> str:
        """Write a kubeconfig for the cluster, readable by the owner only."""
        try:
            document = build_eks_kubeconfig(values)
        except ValueError as e:
            raise PreconditionError(str(e)) from e

        self.kubeconfig_dir.mkdir(parents=True, exist_ok=True)
        path = self.kubeconfig_dir / f"tfeks_{values.name}.kubeconfig"
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            yaml.safe_dump(document, f, default_flow_style=False, sort_keys=False)
        os.chmod(path, 0o600)
        return str(path)

    def get_eks_cluster(self, options) -> EKSCluster:
        values = self._eks_values()
        return EKSCluster(endpoint=values.endpoint, kubeconfig_path=self.write_kubeconfig(values))

    def get_kubernetes_cluster(self, options) -> KubernetesCluster:
        return KubernetesCluster(kubeconfig_path=self.write_kubeconfig(self._eks_values()))

    def get_s3_bucket(self, options) -> S3Bucket:
        buckets = values_of_type(self.resources, "aws_s3_bucket", S3BucketValues)
        if not buckets:
            raise ResourceNotFoundError("unable to find S3 bucket")
        return S3Bucket(name=buckets[0].bucket, region=buckets[0].region)

    def get_ecr_image_repository(self, options) -> ECRImageRepository:
        repos = values_of_type(self.resources, "aws_ecr_repository", ECRRepositoryValues)
        if not repos:
            raise ResourceNotFoundError("unable to find ECR image repository")
        r = repos[0]
        return ECRImageRepository(id=r.id, arn=r.arn, repository_url=r.repository_url, registry_id=r.registry_id)
