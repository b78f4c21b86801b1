"""
Radarr API client for Janitarr.
Handles wanted movies and search commands.
"""

from typing import Dict, List

from .base import BaseClient
from .media import MediaItem


class RadarrClient(BaseClient):
    """Client for Radarr API v3."""

    app_name = "Radarr"

    # ==================== Wanted ====================

    def fetch_all_missing(self) -> List[MediaItem]:
        """Get all monitored missing movies (paginated internally)."""
        return [self._to_item(m) for m in self._fetch_all_pages('wanted/missing')]

    def fetch_all_cutoff_unmet(self) -> List[MediaItem]:
        """Get all movies that don't meet the quality cutoff."""
        return [self._to_item(m) for m in self._fetch_all_pages('wanted/cutoff')]

    # ==================== Commands ====================

    def trigger_search(self, ids: List[int]) -> None:
        """Trigger a search for the given movies."""
        self.post('command', data={
            'name': 'MoviesSearch',
            'movieIds': list(ids),
        })

    # ==================== Helper Methods ====================

    @staticmethod
    def _to_item(movie: Dict) -> MediaItem:
        profile = movie.get('qualityProfile') or {}
        return MediaItem.movie(
            id=movie.get('id', 0),
            title=movie.get('title', ''),
            year=movie.get('year') or None,
            quality_profile=profile.get('name', '') if isinstance(profile, dict) else '',
        )
