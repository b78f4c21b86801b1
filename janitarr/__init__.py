"""
Janitarr - Automated library maintenance for Radarr and Sonarr.
Periodically finds missing and below-cutoff content and triggers a bounded,
fairly shared number of searches across all configured servers.
"""

__version__ = "1.0.0"
__app_name__ = "Janitarr"

from .config import Config
from .logger import Logger
