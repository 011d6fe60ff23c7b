"""Tests for the harness: provider setup, resolution strategies and teardown."""

import os
from unittest.mock import patch

import pytest

from testkit.core.config import HarnessConfig
from testkit.core.errors import (
    HarnessSetupError,
    HarnessStateError,
    ProviderNotFoundError,
    ResolutionError,
)
from testkit.core.resolution import ResolutionStrategy
from testkit.core.types import KubernetesNamespace, S3Bucket
from testkit.harness import KINDS, Harness, HarnessState, ResourceKind, default_providers
from testkit.providers import (
    EnvProvider,
    GitHubWritableRepositoriesEnvProvider,
    KubernetesNamespaceProvider,
    Provider,
    S3BucketProvider,
    TerraformProvider,
)


class FakeProvider(Provider, KubernetesNamespaceProvider, S3BucketProvider):
    """Records calls; optionally fails setup, lookups or cleanup."""

    def __init__(self, label, fail_get=False, fail_setup=False, fail_cleanup=False):
        self.label = label
        self.fail_get = fail_get
        self.fail_setup = fail_setup
        self.fail_cleanup = fail_cleanup
        self.calls = []

    @property
    def name(self):
        return self.label

    def setup(self):
        self.calls.append("setup")
        if self.fail_setup:
            raise RuntimeError(f"{self.label} setup broke")

    def cleanup(self):
        self.calls.append("cleanup")
        if self.fail_cleanup:
            raise RuntimeError(f"{self.label} cleanup broke")

    def get_kubernetes_namespace(self, options):
        self.calls.append(("namespace", options.id))
        if self.fail_get:
            raise RuntimeError(f"{self.label} has no namespace")
        return KubernetesNamespace(name=f"{self.label}-{options.id}")

    def get_s3_bucket(self, options):
        self.calls.append("bucket")
        if self.fail_get:
            raise RuntimeError(f"{self.label} has no bucket")
        return S3Bucket(name=self.label, region="us-east-1")


class SetupOnly(Provider):
    def setup(self):
        pass

    def cleanup(self):
        pass


@pytest.fixture(autouse=True)
def clean_env():
    with patch.dict(os.environ, {}, clear=True):
        yield


class TestBuild:
    """Tests for harness construction."""

    def test_explicit_providers_all_set_up(self):
        a, b = FakeProvider("a"), FakeProvider("b")
        harness = Harness.build(HarnessConfig(), [a, b])

        assert harness.state is HarnessState.ACTIVE
        assert harness.providers == [a, b]
        assert a.calls == ["setup"] and b.calls == ["setup"]

    def test_explicit_provider_setup_failure_is_fatal(self):
        with pytest.raises(HarnessSetupError, match="broken"):
            Harness.build(HarnessConfig(), [FakeProvider("ok"), FakeProvider("broken", fail_setup=True)])

    def test_setup_failure_cleans_up_providers_already_set_up(self):
        first, second = FakeProvider("first"), FakeProvider("second")
        broken, after = FakeProvider("broken", fail_setup=True), FakeProvider("after")

        with pytest.raises(HarnessSetupError, match="broken"):
            Harness.build(HarnessConfig(), [first, second, broken, after])

        assert first.calls == ["setup", "cleanup"]
        assert second.calls == ["setup", "cleanup"]
        assert broken.calls == ["setup"]
        assert after.calls == []

    def test_setup_failure_rollback_survives_cleanup_errors(self):
        leaky = FakeProvider("leaky", fail_cleanup=True)
        with pytest.raises(HarnessSetupError, match="broken"):
            Harness.build(HarnessConfig(), [leaky, FakeProvider("broken", fail_setup=True)])
        assert leaky.calls == ["setup", "cleanup"]

    def test_setup_failure_retains_when_retaining_on_failure(self):
        kept = FakeProvider("kept")
        with pytest.raises(HarnessSetupError):
            Harness.build(HarnessConfig(retain_resources_on_failure=True),
                          [kept, FakeProvider("broken", fail_setup=True)])
        assert kept.calls == ["setup"]

    def test_empty_provider_list_is_an_error(self):
        with patch("testkit.harness.default_providers") as defaults:
            with pytest.raises(HarnessSetupError, match="no providers"):
                Harness.build(HarnessConfig(), [])
        defaults.assert_not_called()

    def test_default_providers_skip_failures(self):
        ok = FakeProvider("ok")
        with patch("testkit.harness.default_providers", return_value=[FakeProvider("x", fail_setup=True), ok]):
            harness = Harness.build(HarnessConfig())
        assert harness.providers == [ok]

    def test_no_default_provider_available(self):
        failing = [FakeProvider("x", fail_setup=True), FakeProvider("y", fail_setup=True)]
        with patch("testkit.harness.default_providers", return_value=failing):
            with pytest.raises(HarnessSetupError, match="no provider"):
                Harness.build(HarnessConfig())

    def test_default_provider_order(self):
        providers = default_providers(HarnessConfig())
        assert [type(p) for p in providers] == [
            TerraformProvider, GitHubWritableRepositoriesEnvProvider, EnvProvider,
        ]

    def test_env_promotes_retention_flags(self):
        with patch.dict(os.environ, {"TESTKIT_RETAIN_RESOURCES": "true",
                                     "TESTKIT_RETAIN_RESOURCES_ON_FAILURE": "yes"}):
            harness = Harness.build(HarnessConfig(), [FakeProvider("a")])
        assert harness.config.retain_resources is True
        assert harness.config.retain_resources_on_failure is False

    def test_every_kind_is_registered(self):
        assert set(KINDS) == set(ResourceKind)


class TestResolve:
    """Tests for capability resolution."""

    def test_first_success_moves_past_failures(self):
        a, b = FakeProvider("a", fail_get=True), FakeProvider("b")
        harness = Harness.build(HarnessConfig(), [a, b])

        ns = harness.kubernetes_namespace(id="app")

        assert ns.name == "b-app"
        assert ("namespace", "app") in a.calls

    def test_first_implementer_fails_fast(self):
        a, b = FakeProvider("a", fail_get=True), FakeProvider("b")
        harness = Harness.build(HarnessConfig(), [a, b])

        with pytest.raises(ResolutionError, match="a has no namespace"):
            harness.kubernetes_namespace(ResolutionStrategy.FIRST_IMPLEMENTER, id="app")
        assert ("namespace", "app") not in b.calls

    def test_default_strategy_for_buckets_fails_fast(self):
        a, b = FakeProvider("a", fail_get=True), FakeProvider("b")
        harness = Harness.build(HarnessConfig(), [a, b])

        with pytest.raises(ResolutionError):
            harness.s3_bucket()
        assert harness.s3_bucket(ResolutionStrategy.FIRST_SUCCESS).name == "b"

    def test_all_implementers_failing(self):
        harness = Harness.build(HarnessConfig(), [FakeProvider("a", fail_get=True),
                                                  FakeProvider("b", fail_get=True)])
        with pytest.raises(ResolutionError) as exc_info:
            harness.kubernetes_namespace()
        assert [name for name, _ in exc_info.value.failures] == ["a", "b"]

    def test_non_implementers_are_skipped(self):
        harness = Harness.build(HarnessConfig(), [SetupOnly(), FakeProvider("b")])
        assert harness.kubernetes_namespace(id="x").name == "b-x"

    def test_no_implementer(self):
        harness = Harness.build(HarnessConfig(), [SetupOnly()])
        with pytest.raises(ProviderNotFoundError, match="KubernetesNamespaceProvider"):
            harness.kubernetes_namespace()

    def test_unknown_option_rejected(self):
        harness = Harness.build(HarnessConfig(), [FakeProvider("a")])
        with pytest.raises(ValueError):
            harness.s3_bucket(namespace="nope")

    def test_resolve_by_kind_name(self):
        harness = Harness.build(HarnessConfig(), [FakeProvider("a")])
        assert harness.resolve("kubernetes_namespace", id="q").name == "a-q"


class TestCleanup:
    """Tests for teardown and retention."""

    def test_cleanup_calls_every_provider_despite_errors(self):
        a, b = FakeProvider("a", fail_cleanup=True), FakeProvider("b")
        harness = Harness.build(HarnessConfig(), [a, b])

        harness.cleanup()

        assert a.calls[-1] == "cleanup" and b.calls[-1] == "cleanup"
        assert harness.state is HarnessState.TORN_DOWN

    def test_retain_on_failure_skips_cleanup_only_for_failed_tests(self):
        config = HarnessConfig(retain_resources_on_failure=True)
        failed = Harness.build(config, [FakeProvider("a")])
        passed = Harness.build(config, [FakeProvider("b")])

        failed.cleanup(test_failed=True)
        passed.cleanup(test_failed=False)

        assert "cleanup" not in failed.providers[0].calls
        assert "cleanup" in passed.providers[0].calls

    def test_retain_resources_always_skips_cleanup(self):
        harness = Harness.build(HarnessConfig(retain_resources=True), [FakeProvider("a")])
        assert harness.cleanup_needed(test_failed=False) is False
        harness.cleanup()
        assert "cleanup" not in harness.providers[0].calls

    def test_cleanup_is_idempotent_and_blocks_resolution(self):
        a = FakeProvider("a")
        harness = Harness.build(HarnessConfig(), [a])
        harness.cleanup()
        harness.cleanup()

        assert a.calls.count("cleanup") == 1
        with pytest.raises(HarnessStateError):
            harness.kubernetes_namespace()

    def test_context_manager_treats_exception_as_failure(self):
        a = FakeProvider("a")
        config = HarnessConfig(retain_resources_on_failure=True)
        with pytest.raises(AssertionError):
            with Harness.build(config, [a]):
                raise AssertionError("test failed")
        assert "cleanup" not in a.calls

        b = FakeProvider("b")
        with Harness.build(config, [b]) as harness:
            harness.kubernetes_namespace()
        assert b.calls[-1] == "cleanup"
