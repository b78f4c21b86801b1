"""
Media item shapes returned by the Radarr and Sonarr clients.
"""

from enum import Enum
from typing import Dict, Any, Optional
from dataclasses import dataclass


class MediaType(Enum):
    """Item shape tag: Radarr returns movies, Sonarr returns episodes."""
    MOVIE = "movie"
    EPISODE = "episode"


@dataclass
class SystemStatus:
    """Response of system/status."""
    app_name: str = ""
    version: str = ""
    instance_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'app_name': self.app_name,
            'version': self.version,
            'instance_name': self.instance_name,
        }


@dataclass
class MediaItem:
    """
    A detected unit of content.

    The movie fields (year) are only set for MediaType.MOVIE and the episode
    fields (series_title, season_number, episode_number, episode_title) only
    for MediaType.EPISODE.
    """
    id: int
    title: str
    type: MediaType
    quality_profile: str = ""
    year: Optional[int] = None
    series_title: Optional[str] = None
    season_number: Optional[int] = None
    episode_number: Optional[int] = None
    episode_title: Optional[str] = None

    @classmethod
    def movie(cls, id: int, title: str, year: Optional[int] = None,
              quality_profile: str = "") -> 'MediaItem':
        return cls(id=id, title=title, type=MediaType.MOVIE,
                   quality_profile=quality_profile, year=year)

    @classmethod
    def episode(cls, id: int, series_title: str, season_number: int,
                episode_number: int, episode_title: str = "",
                quality_profile: str = "") -> 'MediaItem':
        title = format_episode_title(series_title, season_number, episode_number, episode_title)
        return cls(id=id, title=title, type=MediaType.EPISODE,
                   quality_profile=quality_profile, series_title=series_title,
                   season_number=season_number, episode_number=episode_number,
                   episode_title=episode_title)

    @property
    def episode_code(self) -> Optional[str]:
        if self.type is not MediaType.EPISODE:
            return None
        return f"S{self.season_number or 0:02d}E{self.episode_number or 0:02d}"

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'title': self.title,
            'type': self.type.value,
            'quality_profile': self.quality_profile,
        }
        if self.type is MediaType.MOVIE:
            data['year'] = self.year
        elif self.type is MediaType.EPISODE:
            data.update({
                'series_title': self.series_title,
                'season_number': self.season_number,
                'episode_number': self.episode_number,
                'episode_title': self.episode_title,
            })
        return data


def format_episode_title(series_title: str, season: int, episode: int,
                         episode_title: str = "") -> str:
    """Format as 'Series Name - S01E01 - Episode Title'."""
    series_title = series_title or "Unknown Series"
    code = f"S{season or 0:02d}E{episode or 0:02d}"
    if episode_title:
        return f"{series_title} - {code} - {episode_title}"
    return f"{series_title} - {code}"
