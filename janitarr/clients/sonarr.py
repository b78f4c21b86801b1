"""
Sonarr API client for Janitarr.
Handles wanted episodes and search commands.
"""

from typing import Dict, List

from .base import BaseClient
from .media import MediaItem


class SonarrClient(BaseClient):
    """Client for Sonarr API v3."""

    app_name = "Sonarr"

    # ==================== Wanted ====================

    def fetch_all_missing(self) -> List[MediaItem]:
        """Get all monitored missing episodes (paginated internally)."""
        records = self._fetch_all_pages('wanted/missing', {'includeSeries': 'true'})
        return [self._to_item(ep) for ep in records]

    def fetch_all_cutoff_unmet(self) -> List[MediaItem]:
        """Get episodes that don't meet the quality cutoff."""
        records = self._fetch_all_pages('wanted/cutoff', {'includeSeries': 'true'})
        return [self._to_item(ep) for ep in records]

    # ==================== Commands ====================

    def trigger_search(self, ids: List[int]) -> None:
        """Trigger a search for the given episodes."""
        self.post('command', data={
            'name': 'EpisodeSearch',
            'episodeIds': list(ids),
        })

    # ==================== Helper Methods ====================

    @staticmethod
    def _to_item(episode: Dict) -> MediaItem:
        series = episode.get('series') or {}
        series_title = series.get('title') or episode.get('seriesTitle', '')
        profile = series.get('qualityProfile') or {}
        return MediaItem.episode(
            id=episode.get('id', 0),
            series_title=series_title,
            season_number=episode.get('seasonNumber', 0),
            episode_number=episode.get('episodeNumber', 0),
            episode_title=episode.get('title', ''),
            quality_profile=profile.get('name', '') if isinstance(profile, dict) else '',
        )
