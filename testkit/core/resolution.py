"""Resolve a resource by asking providers in order."""

from enum import Enum
from typing import Any, Callable, List, Sequence, Tuple

from .errors import ProviderNotFoundError, ResolutionError
from .logging import get_logger

logger = get_logger(__name__)


class ResolutionStrategy(str, Enum):
    """How the harness reacts when a capable provider fails."""

    FIRST_IMPLEMENTER = "first_implementer"
    """Fail fast on the first provider implementing the capability."""

    FIRST_SUCCESS = "first_success"
    """Log the failure and try the next capable provider."""


def resolve(
    kind: str,
    providers: Sequence[Any],
    capability: type,
    fetch: Callable[[Any], Any],
    strategy: ResolutionStrategy,
) -> Any:
    """Return the first resource supplied by a provider implementing capability.

    Args:
        kind: Resource kind, for messages
        providers: Active providers, in precedence order
        capability: Capability class a provider must be an instance of
        fetch: Called with the provider to obtain the resource
        strategy: Reaction to a failing provider

    Raises:
        ProviderNotFoundError: If no provider implements capability
        ResolutionError: If the implementer(s) failed
    """
    failures: List[Tuple[str, Exception]] = []
    for provider in providers:
        if not isinstance(provider, capability):
            continue

        try:
            resource = fetch(provider)
        except Exception as e:
            if strategy is ResolutionStrategy.FIRST_IMPLEMENTER:
                raise ResolutionError(kind, [(_provider_name(provider), e)]) from e
            logger.warning(
                f"Provider {_provider_name(provider)} failed to supply {kind}, trying the next one: {e}",
                extra={"provider": _provider_name(provider), "resource_kind": kind},
            )
            failures.append((_provider_name(provider), e))
            continue

        logger.debug(
            f"{kind} supplied by {_provider_name(provider)}",
            extra={"provider": _provider_name(provider), "resource_kind": kind},
        )
        return resource

    if failures:
        raise ResolutionError(kind, failures) from failures[-1][1]
    raise ProviderNotFoundError(capability.__name__)


def _provider_name(provider: Any) -> str:
    return getattr(provider, "name", type(provider).__name__)
