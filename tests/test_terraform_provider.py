"""Tests for the Terraform provider."""

import json
import os
import stat
from unittest.mock import patch

import pytest
import yaml

from testkit.core.errors import CommandOutputError, PreconditionError, ResourceNotFoundError
from testkit.core.types import (
    ECRImageRepositoryOptions,
    EKSClusterOptions,
    KubernetesClusterOptions,
    S3BucketOptions,
)
from testkit.providers.terraform import TerraformProvider

SHOW_JSON = {
    "format_version": "1.0",
    "values": {
        "root_module": {
            "resources": [
                {
                    "address": "aws_s3_bucket.artifacts",
                    "type": "aws_s3_bucket",
                    "name": "artifacts",
                    "values": {"bucket": "testkit-artifacts", "id": "testkit-artifacts", "region": "ap-northeast-1"},
                },
                {
                    "address": "aws_eks_cluster.main",
                    "type": "aws_eks_cluster",
                    "name": "main",
                    "values": {
                        "name": "testkit-eks",
                        "endpoint": "https://ABC.gr7.us-west-2.eks.amazonaws.com",
                        "arn": "arn:aws:eks:us-west-2:123456789012:cluster/testkit-eks",
                        "certificate_authority": [{"data": "Q0EtREFUQQ=="}],
                    },
                },
                {
                    "address": "aws_ecr_repository.images",
                    "type": "aws_ecr_repository",
                    "name": "images",
                    "values": {
                        "id": "testkit-imagerep",
                        "arn": "arn:aws:ecr:us-west-2:123456789012:repository/testkit-imagerep",
                        "repository_url": "123456789012.dkr.ecr.us-west-2.amazonaws.com/testkit-imagerep",
                        "registry_id": "123456789012",
                    },
                },
            ]
        }
    },
}


class FakeTerraform:
    def __init__(self, show_output):
        self.show_output = show_output
        self.commands = []

    def __call__(self, args, cwd=None, env=None, combined=True):
        args = list(args)
        self.commands.append(args[1:])
        if args[1] == "show":
            return self.show_output
        return ""


@pytest.fixture
def workspace(tmp_path):
    path = tmp_path / "tf"
    path.mkdir()
    return path


def build(workspace, tmp_path, show_output=json.dumps(SHOW_JSON)):
    fake = FakeTerraform(show_output)
    with patch("testkit.tools.terraform.capture", fake):
        provider = TerraformProvider(str(workspace), {"env": "ci"}, kubeconfig_dir=str(tmp_path / "kc"))
        provider.setup()
    return provider, fake


class TestSetup:
    """Tests for init/apply/show on setup."""

    def test_requires_workspace(self):
        with pytest.raises(PreconditionError):
            TerraformProvider().setup()
        with pytest.raises(PreconditionError):
            TerraformProvider("/definitely/not/here").setup()

    def test_runs_init_apply_show(self, workspace, tmp_path):
        _, fake = build(workspace, tmp_path)
        assert [c[0] for c in fake.commands] == ["init", "apply", "show"]
        assert fake.commands[1][-2:] == ["-var", "env=ci"]
        assert "-var" not in fake.commands[2]

    def test_garbage_show_output(self, workspace, tmp_path):
        with pytest.raises(CommandOutputError):
            build(workspace, tmp_path, show_output="Error: no state")

    def test_cleanup_destroys(self, workspace, tmp_path):
        provider, fake = build(workspace, tmp_path)
        with patch("testkit.tools.terraform.capture", fake):
            provider.cleanup()
        assert fake.commands[-1][:2] == ["destroy", "-auto-approve"]


class TestResources:
    """Tests for decoding resources out of the state."""

    def test_s3_bucket(self, workspace, tmp_path):
        provider, _ = build(workspace, tmp_path)
        bucket = provider.get_s3_bucket(S3BucketOptions())
        assert bucket.name == "testkit-artifacts"
        assert bucket.region == "ap-northeast-1"

    def test_ecr_repository(self, workspace, tmp_path):
        provider, _ = build(workspace, tmp_path)
        repo = provider.get_ecr_image_repository(ECRImageRepositoryOptions())
        assert repo.id == "testkit-imagerep"
        assert repo.registry_id == "123456789012"
        assert repo.repository_url.endswith("/testkit-imagerep")

    def test_eks_kubeconfig(self, workspace, tmp_path):
        provider, _ = build(workspace, tmp_path)

        cluster = provider.get_eks_cluster(EKSClusterOptions())

        assert cluster.endpoint == "https://ABC.gr7.us-west-2.eks.amazonaws.com"
        assert os.path.basename(cluster.kubeconfig_path) == "tfeks_testkit-eks.kubeconfig"
        assert stat.S_IMODE(os.stat(cluster.kubeconfig_path).st_mode) == 0o600

        with open(cluster.kubeconfig_path) as f:
            kubeconfig = yaml.safe_load(f)
        assert kubeconfig["current-context"] == "testkit_testkit-eks"
        assert kubeconfig["clusters"][0]["cluster"]["certificate-authority-data"] == "Q0EtREFUQQ=="
        exec_ = kubeconfig["users"][0]["user"]["exec"]
        assert exec_["command"] == "aws"
        assert exec_["args"] == [
            "--region", "us-west-2", "eks", "get-token",
            "--cluster-name", "testkit-eks", "--output", "json",
        ]

    def test_kubernetes_cluster_uses_eks(self, workspace, tmp_path):
        provider, _ = build(workspace, tmp_path)
        cluster = provider.get_kubernetes_cluster(KubernetesClusterOptions())
        assert cluster.kubeconfig_path.endswith("tfeks_testkit-eks.kubeconfig")

    def test_missing_resources(self, workspace, tmp_path):
        provider, _ = build(workspace, tmp_path, show_output=json.dumps({"format_version": "1.0"}))
        with pytest.raises(ResourceNotFoundError, match="S3"):
            provider.get_s3_bucket(S3BucketOptions())
        with pytest.raises(ResourceNotFoundError, match="EKS"):
            provider.get_eks_cluster(EKSClusterOptions())
