"""TMDB service for fetching raw movie/series detail payloads."""

import asyncio
import logging
import operator
import threading
from typing import Any, Dict

import requests
import tmdbsimple as tmdb
from cachetools import TTLCache, cachedmethod
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from kinodeck.core.config import Settings, get_settings
from kinodeck.core.errors import FetchError, FetchNetworkError, MediaNotFoundError
from kinodeck.models.media import MediaType
from kinodeck.services.source import MetadataSource

logger = logging.getLogger(__name__)

# Everything the detail page needs in a single request
APPEND_TO_RESPONSE = "credits,videos,similar,recommendations"


class TMDBError(FetchError):
    """Domain exception for TMDB failures."""

    def __init__(
        self,
        message: str,
        original_exception: Exception | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, original_exception)
        self.status_code = status_code


def build_session(settings: Settings) -> requests.Session:
    """Create the HTTP session tmdbsimple sends its requests through."""
    retry_config = Retry(
        total=settings.tmdb_retries,
        backoff_factor=1,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
    )
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=retry_config)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    if settings.proxy:
        session.proxies = {"http": settings.proxy, "https": settings.proxy}
    return session


class TMDBSource(MetadataSource):
    """Fetch detail payloads from TMDB, caching them for a while."""

    def __init__(
        self,
        settings: Settings | None = None,
        session: requests.Session | None = None,
    ) -> None:
        settings = settings or get_settings()
        if not settings.tmdb_api_key:
            raise ValueError("TMDB API key is required when initialising TMDBSource")
        self._settings = settings
        self.language = settings.tmdb_language
        self._cache: TTLCache = TTLCache(maxsize=100, ttl=settings.tmdb_cache_ttl)
        self._lock = threading.Lock()

        tmdb.API_KEY = settings.tmdb_api_key
        tmdb.REQUESTS_TIMEOUT = settings.tmdb_timeout
        tmdb.REQUESTS_SESSION = session or build_session(settings)

    def _video_languages(self) -> str:
        # Trailers are often only published in English
        primary = self.language.split("-")[0]
        return ",".join(dict.fromkeys([primary, "en", "null"]))

    @cachedmethod(operator.attrgetter("_cache"), lock=operator.attrgetter("_lock"))
    def _fetch_sync(self, media_type: MediaType, media_id: int) -> Dict[str, Any]:
        """Fetch a detail payload (synchronous, cached)."""
        if media_type == MediaType.MOVIE:
            api = tmdb.Movies(media_id)
        else:
            api = tmdb.TV(media_id)
        label = f"{media_type.value} {media_id}"
        try:
            return api.info(
                append_to_response=APPEND_TO_RESPONSE,
                language=self.language,
                include_video_language=self._video_languages(),
            )
        except requests.exceptions.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            if status == 404:
                logger.info("TMDB has no %s", label)
                raise MediaNotFoundError(f"TMDB has no {label}", exc)
            logger.error("TMDB returned %s for %s: %s", status, label, exc)
            raise TMDBError(f"Failed to fetch details for {label}", exc, status)
        except (
            requests.exceptions.ConnectionError,
            requests.exceptions.Timeout,
            requests.exceptions.RetryError,
        ) as exc:
            logger.error("Network error fetching %s: %s", label, exc)
            raise FetchNetworkError(f"Could not reach TMDB for {label}", exc)
        except Exception as exc:
            logger.exception("Unexpected error fetching %s: %s", label, exc)
            raise TMDBError(f"Failed to fetch details for {label}", exc)

    async def fetch_movie(self, media_id: int) -> Dict[str, Any]:
        """Fetch full movie details from TMDB (async)."""
        return await asyncio.to_thread(self._fetch_sync, MediaType.MOVIE, media_id)

    async def fetch_series(self, media_id: int) -> Dict[str, Any]:
        """Fetch full TV series details from TMDB (async)."""
        return await asyncio.to_thread(self._fetch_sync, MediaType.SERIES, media_id)
