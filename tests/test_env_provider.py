"""Tests for the environment-backed providers."""

import os
from unittest.mock import patch

import pytest

from testkit.core.config import GitHubConfig
from testkit.core.errors import PreconditionError, ResourceNotFoundError
from testkit.core.types import (
    ChatworkRoomOptions,
    EKSClusterOptions,
    GitHubRepositoryOptions,
    GitHubWritableRepositoryOptions,
    KubernetesClusterOptions,
    S3BucketOptions,
    SlackChannelOptions,
)
from testkit.models import Base, ChangeSet, File, Head
from testkit.providers.env import EnvProvider
from testkit.providers.github_repositories import GitHubWritableRepositoriesEnvProvider
from testkit.services.github_repositories import GitHubRepositories

from conftest import make_remote


def only_env(**values):
    keep = {k: v for k, v in os.environ.items() if not k.startswith("TESTKIT_")}
    return patch.dict(os.environ, {**keep, **values}, clear=True)


class TestEnvProvider:
    """Tests for EnvProvider."""

    def test_setup_requires_testkit_variables(self):
        with only_env():
            with pytest.raises(PreconditionError, match="TESTKIT_"):
                EnvProvider().setup()
        with only_env(TESTKIT_ANYTHING="1"):
            EnvProvider().setup()

    def test_clusters_from_kubeconfig(self):
        with only_env(TESTKIT_KUBECONFIG="/tmp/kc"):
            p = EnvProvider()
            assert p.get_kubernetes_cluster(KubernetesClusterOptions()).kubeconfig_path == "/tmp/kc"
            assert p.get_eks_cluster(EKSClusterOptions()).kubeconfig_path == "/tmp/kc"

    def test_s3_bucket(self):
        with only_env(TESTKIT_S3_BUCKET_NAME="b", TESTKIT_S3_BUCKET_REGION="eu-west-1",
                      TESTKIT_S3_BUCKET_PROFILE="ci"):
            bucket = EnvProvider().get_s3_bucket(S3BucketOptions())
        assert (bucket.name, bucket.region, bucket.profile) == ("b", "eu-west-1", "ci")

    def test_missing_variable_is_named(self):
        with only_env(TESTKIT_S3_BUCKET_NAME="b"):
            with pytest.raises(PreconditionError, match="TESTKIT_S3_BUCKET_REGION"):
                EnvProvider().get_s3_bucket(S3BucketOptions())

    def test_github_slack_chatwork(self):
        with only_env(
            TESTKIT_GITHUB_REPOSITORY="acme/widgets",
            TESTKIT_GITHUB_TOKEN="tok",
            TESTKIT_SLACK_CHANNEL_ID="C123",
            TESTKIT_SLACK_BOT_TOKEN="xoxb",
            TESTKIT_CHATWORK_ROOM_ID="42",
            TESTKIT_CHATWORK_TOKEN="cw",
        ):
            p = EnvProvider()
            repo = p.get_github_repository(GitHubRepositoryOptions(id="r"))
            channel = p.get_slack_channel(SlackChannelOptions())
            room = p.get_chatwork_room(ChatworkRoomOptions())

        assert (repo.id, repo.name, repo.token) == ("r", "acme/widgets", "tok")
        assert "tok" not in repr(repo)
        assert channel.id == "C123" and channel.bot_token == "xoxb" and channel.app_token == ""
        assert (room.id, room.token) == ("42", "cw")


class TestGitHubWritableRepositoriesEnvProvider:
    """Tests for writable repository discovery."""

    def mark(self, remote, tmp_path, content):
        repos = GitHubRepositories(token="t", clone_base_url=remote.base_url, temp_dir=str(tmp_path / "mark"))
        repos.push(
            Base(owner=remote.owner, repo=remote.repo),
            Head(branch="testkit-config"),
            ChangeSet(files=[File(path=".testkit.writable", content_string=content)]),
        )

    def provider(self, remote, tmp_path):
        return GitHubWritableRepositoriesEnvProvider(
            GitHubConfig(clone_base_url=remote.base_url, temp_dir=str(tmp_path / "work"))
        )

    def test_skips_unmarked_and_returns_marked(self, tmp_path):
        unmarked = make_remote(tmp_path / "a", repo="plain")
        marked = make_remote(tmp_path / "b", repo="sandbox")
        self.mark(marked, tmp_path, "true\n")
        # Both remotes must be reachable from one clone base URL
        (tmp_path / "a" / "remotes" / "acme" / "sandbox.git").symlink_to(marked.bare)

        with only_env(TESTKIT_GITHUB_WRITEABLE_REPOS="acme/plain,acme/sandbox", TESTKIT_GITHUB_TOKEN="tok"):
            repo = self.provider(unmarked, tmp_path).get_github_writable_repository(
                GitHubWritableRepositoryOptions(id="w")
            )

        assert repo.name == "acme/sandbox"
        assert (repo.owner, repo.repo) == ("acme", "sandbox")
        assert repo.token == "tok"
        assert repo.current_sha() == marked.sha()

    def test_wrong_marker_content_is_an_error(self, tmp_path, remote):
        self.mark(remote, tmp_path, "false")
        with only_env(TESTKIT_GITHUB_WRITEABLE_REPOS="acme/widgets", TESTKIT_GITHUB_TOKEN="tok"):
            with pytest.raises(PreconditionError, match="'false'"):
                self.provider(remote, tmp_path).get_github_writable_repository(
                    GitHubWritableRepositoryOptions()
                )

    def test_nothing_writable(self, tmp_path, remote):
        with only_env(TESTKIT_GITHUB_WRITEABLE_REPOS="acme/widgets", TESTKIT_GITHUB_TOKEN="tok"):
            with pytest.raises(ResourceNotFoundError):
                self.provider(remote, tmp_path).get_github_writable_repository(
                    GitHubWritableRepositoryOptions()
                )

    def test_requires_token(self, tmp_path, remote):
        with only_env(TESTKIT_GITHUB_WRITEABLE_REPOS="acme/widgets"):
            with pytest.raises(PreconditionError, match="TESTKIT_GITHUB_TOKEN"):
                self.provider(remote, tmp_path).get_github_writable_repository(
                    GitHubWritableRepositoryOptions()
                )
