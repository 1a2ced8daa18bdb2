"""Remote job service clients."""

from .base import RemoteJobService
from .http import HttpRemoteJobService
from .in_memory import InMemoryRemoteJobService

__all__ = ["HttpRemoteJobService", "InMemoryRemoteJobService", "RemoteJobService"]
