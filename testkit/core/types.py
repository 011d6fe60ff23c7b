"""Resource records handed out by providers, and the options used to ask for them."""

from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field


# --- Resource records ---

class KubernetesCluster(BaseModel):
    """Any Kubernetes cluster reachable through a kubeconfig."""
    kubeconfig_path: str = Field(..., description="Path to the kubeconfig file")


class EKSCluster(BaseModel):
    """An EKS cluster, not necessarily created by testkit."""
    endpoint: str = Field(default="", description="API server endpoint")
    kubeconfig_path: str = Field(..., description="Path to the kubeconfig file")


class KubernetesNamespace(BaseModel):
    name: str


class KubernetesConfigMap(BaseModel):
    namespace: str
    name: str


class S3Bucket(BaseModel):
    name: str
    region: str
    profile: Optional[str] = Field(default=None, description="AWS profile used to reach the bucket")


class ECRImageRepository(BaseModel):
    """An ECR image repository.

    For ``arn:aws:ecr:<region>:<account>:repository/testkit-imagerep`` the id is
    ``testkit-imagerep`` and the repository URL is
    ``<account>.dkr.ecr.<region>.amazonaws.com/testkit-imagerep``.
    """
    id: str
    arn: str
    repository_url: str
    registry_id: str = Field(..., description="Same as the AWS account ID")


class GitHubRepository(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., description="owner/repo as it appears in the URL")
    token: str = Field(..., repr=False)


class GitHubWritableRepository(BaseModel):
    """A repository tests may push to, with the GitOps helpers attached."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: Optional[str] = None
    name: str = Field(..., description="owner/repo as it appears in the URL")
    token: str = Field(..., repr=False)
    service: Any = Field(default=None, exclude=True, repr=False)

    @property
    def owner(self) -> str:
        return self.name.split("/", 1)[0]

    @property
    def repo(self) -> str:
        return self.name.split("/", 1)[1]

    def find_commits(self, branch: str, since_sha: str = "") -> List[Any]:
        return self.service.find_commits(branch, since_sha)

    def write_file(self, path: str, content: str, message: str) -> None:
        self.service.write_file(path, content, message)

    def current_sha(self, branch: str = "main") -> str:
        return self.service.current_sha(branch)


class SlackChannel(BaseModel):
    id: str = Field(..., description="Channel ID")
    bot_token: str = Field(default="", repr=False)
    app_token: str = Field(default="", repr=False)
    incoming_webhook_url: str = Field(default="", repr=False)


class ChatworkRoom(BaseModel):
    id: str
    token: str = Field(..., repr=False)


# --- Request options ---

class ResourceOptions(BaseModel):
    """Options every resource kind accepts.

    ``id`` is a logical name local to the test. Providers that create resources
    use it to partition and reuse what they created; it is usually not the
    external name.
    """
    model_config = ConfigDict(extra="forbid")

    id: Optional[str] = None


class KubernetesClusterOptions(ResourceOptions):
    pass


class EKSClusterOptions(ResourceOptions):
    pass


class KubernetesNamespaceOptions(ResourceOptions):
    kubeconfig_path: Optional[str] = None


class KubernetesConfigMapOptions(ResourceOptions):
    kubeconfig_path: Optional[str] = None
    namespace: Optional[str] = None


class S3BucketOptions(ResourceOptions):
    pass


class ECRImageRepositoryOptions(ResourceOptions):
    pass


class GitHubRepositoryOptions(ResourceOptions):
    pass


class GitHubWritableRepositoryOptions(ResourceOptions):
    pass


class SlackChannelOptions(ResourceOptions):
    pass


class ChatworkRoomOptions(ResourceOptions):
    pass
