"""Generated resource names and the registries providers keep of them.

A caller-supplied logical ID maps to an external name of the form
``testkit-[<id>-]<suffix>``. Registries are plain sets mutated by the thread
driving the test; they are not safe for concurrent use.
"""

import secrets
from typing import Iterable, Iterator, Optional

NAME_PREFIX = "testkit"
SUFFIX_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"


def rand_string(n: int) -> str:
    """Random lowercase-alphanumeric string of length n."""
    return "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(n))


def name_prefix(logical_id: Optional[str] = None) -> str:
    """Prefix shared by every name generated for logical_id."""
    if logical_id:
        return f"{NAME_PREFIX}-{logical_id}-"
    return f"{NAME_PREFIX}-"


def generate_name(logical_id: Optional[str] = None, suffix_length: int = 5) -> str:
    return name_prefix(logical_id) + rand_string(suffix_length)


def find_by_prefix(names: Iterable[str], prefix: str) -> Optional[str]:
    """First name starting with prefix, if any."""
    for name in names:
        if name.startswith(prefix):
            return name
    return None


class NameRegistry:
    """Names a provider created and is therefore responsible for deleting."""

    def __init__(self) -> None:
        self._names: dict[str, None] = {}

    def add(self, name: str) -> None:
        self._names[name] = None

    def discard(self, name: str) -> None:
        self._names.pop(name, None)

    def find(self, prefix: str) -> Optional[str]:
        return find_by_prefix(self._names, prefix)

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._names))

    def __len__(self) -> int:
        return len(self._names)
