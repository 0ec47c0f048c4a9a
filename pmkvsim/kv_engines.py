"""Key-value engine abstraction and a registry that builds engines by name."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Iterator


class NotFoundError(LookupError):
    """Raised when a key is not present in an engine."""


class AbortError(Exception):
    """Raised when an operation cannot be completed."""


class KVEngine(ABC):
    """A byte-keyed store that the graph simulator runs on."""

    @abstractmethod
    def get(self, key: bytes) -> bytes:
        """Return the value for ``key`` or raise :class:`NotFoundError`."""

    @abstractmethod
    def put(self, key: bytes, value: bytes) -> None:
        """Store ``value`` under ``key``."""

    @abstractmethod
    def delete(self, key: bytes) -> None:
        """Remove ``key``; missing keys are ignored."""

    @abstractmethod
    def items(self) -> Iterator[tuple[bytes, bytes]]:
        """Yield every key-value pair in key order."""


class MemoryEngine(KVEngine):
    """An in-memory engine for tests and in-memory workloads."""

    def __init__(self, path: str = "") -> None:
        self.path = path
        self._data: dict[bytes, bytes] = {}

    def get(self, key: bytes) -> bytes:
        try:
            return self._data[key]
        except KeyError:
            raise NotFoundError(key) from None

    def put(self, key: bytes, value: bytes) -> None:
        self._data[key] = value

    def delete(self, key: bytes) -> None:
        self._data.pop(key, None)

    def items(self) -> Iterator[tuple[bytes, bytes]]:
        yield from sorted(self._data.items())


class EngineFactory:
    """Registry mapping engine names to engine constructors."""

    def __init__(self) -> None:
        self._registry: dict[str, Callable[[str], KVEngine]] = {}

    def register(self, name: str, engine_class: Callable[[str], KVEngine]) -> None:
        """Register ``engine_class`` under ``name``, replacing any earlier one."""
        self._registry[name] = engine_class

    def create(self, name: str) -> KVEngine:
        """Build a new engine registered under ``name``."""
        try:
            engine_class = self._registry[name]
        except KeyError:
            raise KeyError(f"no engine registered as {name!r}") from None
        return engine_class(name)


_default_factory = EngineFactory()
_default_factory.register("memory", MemoryEngine)


def create_engine(name: str) -> KVEngine:
    """Build an engine by name from the default registry."""
    return _default_factory.create(name)