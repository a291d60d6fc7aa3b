from collections.abc import Callable
from typing import Any, Generic, Protocol, TypeVar

from liftlog.config.settings import Settings
from liftlog.v1.workouts.schemas import WorkoutEntry

# Base registry implementation
T = TypeVar("T")


class Registry(Generic[T]):
    """Generic registry for pluggable implementations."""

    def __init__(self, name: str):
        self.name = name
        self._implementations: dict[str, T] = {}
        self._frozen = False

    def register(self, name: str, implementation: T) -> None:
        """Register an implementation with a given name."""
        if self._frozen:
            raise RuntimeError(
                f"Cannot register '{name}' in {self.name.lower()} registry: "
                "registry is frozen in production mode"
            )
        self._implementations[name] = implementation

    def get(self, name: str) -> T:
        """Get an implementation by name."""
        if name not in self._implementations:
            raise KeyError(
                f"No {self.name.lower()} implementation registered with name: {name}"
            )
        return self._implementations[name]

    def list(self) -> list[str]:
        """List all registered implementation names."""
        return list(self._implementations.keys())

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications."""
        self._frozen = True

    def is_frozen(self) -> bool:
        """Check if the registry is frozen."""
        return self._frozen


# Extractor - free text to structured workout entries
class Extractor(Protocol):
    """Protocol for workout text extractors."""

    async def extract(self, text: str) -> list[WorkoutEntry]:
        """
        Turn a workout log message into an ordered list of entries.

        May return an empty list. Any failure is raised and becomes a
        job failure.
        """
        ...


class ExtractorRegistry(Registry[Callable[[Settings], Extractor]]):
    """Registry of extractor factories (rules, wit, llm)."""

    def __init__(self):
        super().__init__("Extractor")


# Upload sink - persists one workout entry at a time
class UploadSink(Protocol):
    """Protocol for sinks that store extracted workout entries."""

    async def persist(
        self, entry: WorkoutEntry, owner: str, source_text: str
    ) -> dict[str, Any]:
        """Store one entry and return its stored representation."""
        ...


# Global registry instances
extractor_registry = ExtractorRegistry()
