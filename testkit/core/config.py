"""Configuration management with environment overrides."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Literal, Optional
from pydantic import BaseModel, Field

from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = "testkit.yaml"
DEFAULT_API_URL = "https://api.github.com"


class GitHubConfig(BaseModel):
    """GitHub configuration."""
    token: Optional[str] = Field(default=None, repr=False)
    api_url: str = Field(default=DEFAULT_API_URL, description="REST API root")
    clone_base_url: Optional[str] = Field(
        default=None,
        description="Clone from <clone_base_url>/<owner>/<repo>.git instead of github.com"
    )
    temp_dir: Optional[str] = Field(default=None, description="Root for ephemeral working copies")
    retain_cloned_repository: bool = Field(default=False)


class TerraformConfig(BaseModel):
    """Terraform configuration."""
    workspace_path: Optional[str] = None
    vars: Dict[str, str] = Field(default_factory=dict)
    kubeconfig_dir: Optional[str] = None


class KubectlConfig(BaseModel):
    """kubectl configuration."""
    default_kubeconfig_path: Optional[str] = Field(
        default=None,
        description="Cluster used when a namespace or config map request names no kubeconfig"
    )


class HarnessConfig(BaseModel):
    """Harness configuration, constructed once per harness and passed down."""
    retain_resources: bool = Field(default=False, description="Never clean up")
    retain_resources_on_failure: bool = Field(default=False, description="Skip cleanup when the test failed")
    log_level: str = Field(default="INFO")
    log_format: Literal["text", "json"] = Field(default="text", description="json emits one structured object per line")
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    terraform: TerraformConfig = Field(default_factory=TerraformConfig)
    kubectl: KubectlConfig = Field(default_factory=KubectlConfig)


def _env_flag(name: str) -> bool:
    return os.getenv(name) == "true"


def retention_overrides() -> Dict[str, bool]:
    """Return retention flags promoted by the environment.

    Only the exact value ``"true"`` turns a flag on; the environment never
    turns a flag off.
    """
    overrides = {}
    if _env_flag("TESTKIT_RETAIN_RESOURCES"):
        overrides["retain_resources"] = True
    if _env_flag("TESTKIT_RETAIN_RESOURCES_ON_FAILURE"):
        overrides["retain_resources_on_failure"] = True
    return overrides


def apply_env_overrides(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Apply TESTKIT_* environment overrides to a raw config dict."""
    config_dict.update(retention_overrides())

    if level := os.getenv("TESTKIT_LOG"):
        config_dict["log_level"] = level.upper()
    if log_format := os.getenv("TESTKIT_LOG_FORMAT"):
        config_dict["log_format"] = log_format.lower()

    github = config_dict.setdefault("github", {})
    if token := os.getenv("TESTKIT_GITHUB_TOKEN") or os.getenv("GITHUB_TOKEN"):
        github.setdefault("token", token)
    if api_url := os.getenv("TESTKIT_GITHUB_API_URL"):
        github["api_url"] = api_url
    if clone_base_url := os.getenv("TESTKIT_GITHUB_CLONE_BASE_URL"):
        github["clone_base_url"] = clone_base_url

    terraform = config_dict.setdefault("terraform", {})
    if workspace := os.getenv("TESTKIT_TERRAFORM_WORKSPACE"):
        terraform["workspace_path"] = workspace
    if kubeconfig_dir := os.getenv("TESTKIT_KUBECONFIG_DIR"):
        terraform["kubeconfig_dir"] = kubeconfig_dir

    kubectl = config_dict.setdefault("kubectl", {})
    if kubeconfig := os.getenv("TESTKIT_KUBECONFIG"):
        kubectl.setdefault("default_kubeconfig_path", kubeconfig)

    return config_dict


def load_config(config_path: Optional[str] = None) -> HarnessConfig:
    """Load configuration from file with environment overrides.

    Args:
        config_path: Path to config file (default: $TESTKIT_CONFIG or testkit.yaml)

    Returns:
        Loaded configuration
    """
    if config_path is None:
        config_path = os.getenv("TESTKIT_CONFIG", DEFAULT_CONFIG_PATH)

    config_dict = {}

    # Load from file if exists
    if Path(config_path).exists():
        logger.debug(f"Loading testkit config from {config_path}")
        with open(config_path, "r") as f:
            config_dict = yaml.safe_load(f) or {}

    return HarnessConfig(**apply_env_overrides(config_dict))
