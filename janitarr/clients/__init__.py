"""API Clients for Radarr and Sonarr."""

from .base import BaseClient, APIError, RateLimitError, CancelledError, normalize_url
from .media import MediaItem, MediaType, SystemStatus
from .sonarr import SonarrClient
from .radarr import RadarrClient


def create_client(server, stop_event=None) -> BaseClient:
    """Build the client matching a server's family."""
    client_cls = SonarrClient if server.type == 'sonarr' else RadarrClient
    return client_cls(server.url, server.api_key, server.name, stop_event=stop_event)


__all__ = ['BaseClient', 'APIError', 'RateLimitError', 'CancelledError', 'normalize_url',
           'MediaItem', 'MediaType', 'SystemStatus', 'SonarrClient', 'RadarrClient',
           'create_client']
