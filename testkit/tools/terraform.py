"""terraform command wrapper and ``terraform show -json`` decoding."""

import json
from typing import Any, Dict, List, Optional, Type, TypeVar
from pydantic import BaseModel, Field, ValidationError

from ..core.errors import CommandOutputError
from .process import capture

T = TypeVar("T", bound=BaseModel)


class TerraformResource(BaseModel):
    address: str = ""
    mode: str = ""
    type: str
    name: str = ""
    provider_name: str = ""
    values: Dict[str, Any] = Field(default_factory=dict)


class S3BucketValues(BaseModel):
    bucket: str
    id: str = ""
    region: str = ""


class CertificateAuthority(BaseModel):
    data: str


class EKSClusterValues(BaseModel):
    name: str
    endpoint: str = ""
    arn: str
    certificate_authority: List[CertificateAuthority] = Field(default_factory=list)

    @property
    def region(self) -> str:
        """Region parsed from arn:aws:eks:<region>:<account>:cluster/<name>."""
        parts = self.arn.split(":")
        if len(parts) < 4 or not parts[3]:
            raise ValueError(f"unable to parse region from ARN {self.arn!r}")
        return parts[3]


class ECRRepositoryValues(BaseModel):
    id: str
    arn: str
    repository_url: str
    registry_id: str


def parse_resources(show_json: str) -> List[TerraformResource]:
    """Decode values.root_module.resources from ``terraform show -json`` output.

    An empty state (no ``values``) yields no resources.

    Raises:
        CommandOutputError: If the output is not the expected JSON document
    """
    try:
        doc = json.loads(show_json)
    except ValueError as e:
        raise CommandOutputError("terraform show -json: output is not JSON", show_json) from e

    if not isinstance(doc, dict):
        raise CommandOutputError("terraform show -json: expected a JSON object", show_json)

    resources = (doc.get("values") or {}).get("root_module", {}).get("resources", [])
    try:
        return [TerraformResource.model_validate(r) for r in resources]
    except ValidationError as e:
        raise CommandOutputError(f"terraform show -json: unexpected resource: {e}", resources) from e


def values_of_type(resources: List[TerraformResource], resource_type: str, model: Type[T]) -> List[T]:
    """Decode the values of every resource of one type."""
    decoded = []
    for r in resources:
        if r.type != resource_type:
            continue
        try:
            decoded.append(model.model_validate(r.values))
        except ValidationError as e:
            raise CommandOutputError(f"{r.address or resource_type}: unexpected values: {e}", r.values) from e
    return decoded


class Terraform:
    """Run terraform in one workspace with a fixed set of variables."""

    def __init__(self, workspace_path: str, vars: Optional[Dict[str, str]] = None, binary: str = "terraform"):
        self.workspace_path = workspace_path
        self.vars = dict(vars or {})
        self.binary = binary

    def _var_args(self) -> List[str]:
        args = []
        for k, v in self.vars.items():
            args += ["-var", f"{k}={v}"]
        return args

    def run(self, *args: str, with_vars: bool = True, combined: bool = True) -> str:
        cmd = [self.binary, *args]
        if with_vars:
            cmd += self._var_args()
        return capture(cmd, cwd=self.workspace_path, combined=combined)

    def init(self) -> None:
        self.run("init", "-input=false", with_vars=False)

    def apply(self) -> None:
        self.run("apply", "-auto-approve", "-input=false")

    def show_json(self) -> str:
        return self.run("show", "-json", with_vars=False, combined=False)

    def destroy(self) -> None:
        self.run("destroy", "-auto-approve", "-input=false")
