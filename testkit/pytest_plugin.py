"""pytest integration: harness fixtures torn down according to the test outcome.

Registered through the ``pytest11`` entry point, so installing the package
makes the ``testkit``, ``testkit_factory`` and ``testkit_config`` fixtures
available to every test suite.
"""

from typing import Callable, Dict, Iterator, List, Optional, Sequence

import pytest

from .core.config import HarnessConfig, load_config
from .core.logging import get_logger, setup_logging
from .harness import Harness
from .providers.base import Provider

logger = get_logger(__name__)

_reports_key = pytest.StashKey[Dict[str, pytest.TestReport]]()


@pytest.hookimpl(hookwrapper=True, tryfirst=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    report = outcome.get_result()
    item.stash.setdefault(_reports_key, {})[report.when] = report


def _test_failed(request: pytest.FixtureRequest) -> bool:
    reports = request.node.stash.get(_reports_key, {})
    return any(r.failed for r in reports.values())


@pytest.fixture
def testkit_config() -> HarnessConfig:
    """Configuration loaded from testkit.yaml and TESTKIT_* variables."""
    config = load_config()
    setup_logging(config.log_level, structured=config.log_format == "json")
    return config


@pytest.fixture
def testkit(request: pytest.FixtureRequest, testkit_config: HarnessConfig) -> Iterator[Harness]:
    """A harness over the default providers, cleaned up after the test."""
    harness = Harness.build(testkit_config)
    yield harness
    harness.cleanup(test_failed=_test_failed(request))


@pytest.fixture
def testkit_factory(
    request: pytest.FixtureRequest, testkit_config: HarnessConfig
) -> Iterator[Callable[..., Harness]]:
    """Build harnesses with explicit providers; all are cleaned up after the test.

    Example::

        def test_namespace(testkit_factory, testkit_config):
            h = testkit_factory(providers=[KubectlProvider.from_config(testkit_config)])
            ns = h.kubernetes_namespace(id="app")
    """
    built: List[Harness] = []

    def factory(
        providers: Optional[Sequence[Provider]] = None,
        config: Optional[HarnessConfig] = None,
    ) -> Harness:
        harness = Harness.build(config or testkit_config, providers)
        built.append(harness)
        return harness

    yield factory

    failed = _test_failed(request)
    for harness in reversed(built):
        harness.cleanup(test_failed=failed)
