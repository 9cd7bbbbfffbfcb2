"""Base discovery service class."""
from abc import ABC, abstractmethod
from typing import List

from feedscout.context import DiscoveryContext
from feedscout.models import DiscoveredFeed


class DiscoveryService(ABC):
    """Abstract base for all discovery strategies.

    Lower ``priority`` runs first. Domain-specific services sit around 10;
    the generic fallback sits at 100.
    """

    name: str = "unknown"
    priority: int = 50

    @abstractmethod
    def can_handle(self, url: str) -> bool:
        """Whether this service can meaningfully work on ``url``."""
        ...

    @abstractmethod
    def discover(self, url: str, context: DiscoveryContext) -> List[DiscoveredFeed]:
        """Return confirmed feeds for ``url`` (empty when nothing was found)."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(priority={self.priority})"
