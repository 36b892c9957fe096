"""Metadata source interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict

from kinodeck.models.media import MediaType


class MetadataSource(ABC):
    """Abstract base class for title metadata sources.

    Implementations return the provider's raw detail payload and signal
    failures with ``kinodeck.core.errors.FetchError`` subclasses. Timeouts
    and retries are the implementation's business.
    """

    @abstractmethod
    async def fetch_movie(self, media_id: int) -> Dict[str, Any]:
        """Fetch the raw payload for a movie."""
        pass

    @abstractmethod
    async def fetch_series(self, media_id: int) -> Dict[str, Any]:
        """Fetch the raw payload for a TV series."""
        pass

    async def fetch(self, media_type: MediaType, media_id: int) -> Dict[str, Any]:
        """Dispatch on media type."""
        if media_type == MediaType.MOVIE:
            return await self.fetch_movie(media_id)
        return await self.fetch_series(media_id)
