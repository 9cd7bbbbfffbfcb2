"""Discovery service plugins for feedscout."""
from .base import DiscoveryService
from .apple import AppleDiscoveryService
from .reddit import RedditDiscoveryService
from .standard import StandardDiscoveryService

__all__ = ["DiscoveryService", "AppleDiscoveryService", "RedditDiscoveryService", "StandardDiscoveryService"]
