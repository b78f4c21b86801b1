"""
Base HTTP client for Radarr/Sonarr API communication.
Uses urllib to avoid external dependencies.
"""

import json
import logging
import re
import threading
import time
import urllib.request
import urllib.error
import urllib.parse
from typing import Dict, Any, List, Optional, Iterable
from abc import ABC, abstractmethod

from .media import MediaItem, SystemStatus


DEFAULT_TIMEOUT = 15
DEFAULT_RETRY_AFTER = 30
PAGE_SIZE = 100
MAX_PAGES = 500


class APIError(Exception):
    """Exception raised for API errors."""
    def __init__(self, message: str, status_code: int = 0, response: str = ""):
        self.message = message
        self.status_code = status_code
        self.response = response
        super().__init__(self.message)


class RateLimitError(APIError):
    """The server answered 429 Too Many Requests."""
    def __init__(self, retry_after: int = DEFAULT_RETRY_AFTER, response: str = ""):
        self.retry_after = retry_after
        super().__init__(f"rate limited: retry after {retry_after}s",
                         status_code=429, response=response)


class CancelledError(APIError):
    """The caller asked for the request to be abandoned."""
    def __init__(self):
        super().__init__("request cancelled")


def normalize_url(url: str) -> str:
    """Add a scheme when missing and strip trailing slashes."""
    normalized = (url or "").strip()
    if not re.match(r'^https?://', normalized):
        normalized = f"http://{normalized}"
    return normalized.rstrip('/')


def parse_retry_after(value: Optional[str]) -> int:
    """Seconds from a Retry-After header; only the delta-seconds form is honoured."""
    if value:
        try:
            seconds = int(value.strip())
            if seconds > 0:
                return seconds
        except ValueError:
            pass
    return DEFAULT_RETRY_AFTER


class BaseClient(ABC):
    """
    Base class for *arr API clients.

    Every client implements the same four operations used by the automation
    engine: test_connection, fetch_all_missing, fetch_all_cutoff_unmet and
    trigger_search. Pagination happens here so callers only see flat lists.
    """

    app_name = ""

    def __init__(self, url: str, api_key: str, name: str = "",
                 timeout: int = DEFAULT_TIMEOUT,
                 stop_event: Optional[threading.Event] = None):
        self.base_url = normalize_url(url)
        self.api_key = api_key
        self.name = name or self.__class__.__name__
        self.timeout = timeout
        self.stop_event = stop_event
        self.log = logging.getLogger(f"janitarr.client.{self.app_name.lower() or 'base'}")

    @property
    def api_version(self) -> str:
        """API version path."""
        return "/api/v3"

    def _build_url(self, endpoint: str, params: Optional[Dict] = None) -> str:
        """Build full URL with optional query parameters."""
        url = f"{self.base_url}{self.api_version}/{endpoint.lstrip('/')}"
        if params:
            query = urllib.parse.urlencode(params)
            url = f"{url}?{query}"
        return url

    def _get_headers(self) -> Dict[str, str]:
        """Get request headers with API key."""
        return {
            'X-Api-Key': self.api_key,
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }

    def _check_cancelled(self):
        if self.stop_event is not None and self.stop_event.is_set():
            raise CancelledError()

    def _request(self, method: str, endpoint: str,
                 params: Optional[Dict] = None,
                 data: Optional[Dict] = None) -> Any:
        """Make HTTP request and decode the JSON body."""
        self._check_cancelled()

        url = self._build_url(endpoint, params)
        body = None
        if data is not None:
            body = json.dumps(data).encode('utf-8')

        req = urllib.request.Request(url, data=body, headers=self._get_headers(), method=method)

        start_time = time.monotonic()
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                content = response.read().decode('utf-8')
                self._log_request(endpoint, response.status, start_time)
                if content:
                    return json.loads(content)
                return {}
        except urllib.error.HTTPError as e:
            self._log_request(endpoint, e.code, start_time)
            response_body = ""
            try:
                response_body = e.read().decode('utf-8')
            except (OSError, UnicodeDecodeError):
                pass
            raise self._error_for_status(e.code, e.headers, response_body) from e
        except urllib.error.URLError as e:
            if isinstance(e.reason, TimeoutError):
                raise APIError(f"request timeout: {e.reason}") from e
            raise APIError(f"request failed: {e.reason}") from e
        except TimeoutError as e:
            raise APIError(f"request timeout: {e}") from e
        except json.JSONDecodeError as e:
            raise APIError(f"decoding response: {e}") from e

    def _error_for_status(self, code: int, headers, response_body: str) -> APIError:
        if code == 429:
            retry_after = parse_retry_after(headers.get('Retry-After') if headers else None)
            return RateLimitError(retry_after, response=response_body)
        if code == 401:
            return APIError("unauthorized: invalid API key", code, response_body)
        if code == 404:
            return APIError("not found: check server URL", code, response_body)
        return APIError(f"server error: status {code}", code, response_body)

    def _log_request(self, endpoint: str, status: int, start_time: float):
        # Never include the API key here
        elapsed_ms = (time.monotonic() - start_time) * 1000
        self.log.debug(f"API request server={self.name} endpoint={endpoint} "
                       f"status={status} duration={elapsed_ms:.0f}ms")

    def get(self, endpoint: str, params: Optional[Dict] = None) -> Any:
        """HTTP GET request."""
        return self._request('GET', endpoint, params=params)

    def post(self, endpoint: str, data: Optional[Dict] = None,
             params: Optional[Dict] = None) -> Any:
        """HTTP POST request."""
        return self._request('POST', endpoint, params=params, data=data or {})

    def _fetch_all_pages(self, endpoint: str, params: Optional[Dict] = None) -> Iterable[Dict]:
        """Yield every record of a paged wanted/* endpoint, in server order."""
        page = 1
        fetched = 0
        while page <= MAX_PAGES:
            query = {
                'page': page,
                'pageSize': PAGE_SIZE,
                'sortKey': 'id',
                'sortDirection': 'ascending',
                'monitored': 'true',
            }
            query.update(params or {})
            result = self.get(endpoint, params=query) or {}
            records = result.get('records') or []
            for record in records:
                yield record
            fetched += len(records)
            if not records or fetched >= result.get('totalRecords', 0):
                break
            page += 1

    # ==================== Contract ====================

    def test_connection(self) -> SystemStatus:
        """Check connectivity; raises APIError on failure."""
        data = self.get('system/status')
        return SystemStatus(
            app_name=data.get('appName', ''),
            version=data.get('version', ''),
            instance_name=data.get('instanceName', ''),
        )

    @abstractmethod
    def fetch_all_missing(self) -> List[MediaItem]:
        """All monitored items without a file."""

    @abstractmethod
    def fetch_all_cutoff_unmet(self) -> List[MediaItem]:
        """All items whose file is below the quality cutoff."""

    @abstractmethod
    def trigger_search(self, ids: List[int]) -> None:
        """Queue a search command for the given item IDs."""
