"""Load a title for the detail page and publish its state."""

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional

import requests
from pydantic import BaseModel, ConfigDict

from kinodeck.core.errors import (
    FetchNetworkError,
    MediaNotFoundError,
    SchemaError,
)
from kinodeck.models.media import MediaDetail, MediaType
from kinodeck.services.normalizer import normalize
from kinodeck.services.source import MetadataSource

logger = logging.getLogger(__name__)


class DetailState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class DetailErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    NETWORK_ERROR = "network_error"
    UNKNOWN = "unknown"


ERROR_MESSAGES = {
    DetailErrorKind.NOT_FOUND: "Content not found",
    DetailErrorKind.NETWORK_ERROR: "Failed to load details",
    DetailErrorKind.UNKNOWN: "Something went wrong",
}


class DetailError(BaseModel):
    """A load failure as shown to the user."""

    model_config = ConfigDict(frozen=True)

    kind: DetailErrorKind
    message: str

    @classmethod
    def of(cls, kind: DetailErrorKind) -> "DetailError":
        return cls(kind=kind, message=ERROR_MESSAGES[kind])


class DetailSnapshot(BaseModel):
    """What the detail page renders: a state plus detail or error."""

    model_config = ConfigDict(frozen=True)

    state: DetailState = DetailState.IDLE
    detail: Optional[MediaDetail] = None
    error: Optional[DetailError] = None
    media_type: Optional[str] = None
    media_id: Optional[int] = None
    token: int = 0
    stale: bool = False


Observer = Callable[[DetailSnapshot], None]

_NETWORK_ERRORS = (
    FetchNetworkError,
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
)


def classify_failure(exc: Exception) -> DetailErrorKind:
    """Map a fetch/normalize failure onto the user-facing taxonomy."""
    if isinstance(exc, MediaNotFoundError):
        return DetailErrorKind.NOT_FOUND
    if getattr(exc, "status_code", None) == 404:
        return DetailErrorKind.NOT_FOUND
    if isinstance(exc, _NETWORK_ERRORS):
        return DetailErrorKind.NETWORK_ERROR
    if isinstance(getattr(exc, "original_exception", None), _NETWORK_ERRORS):
        return DetailErrorKind.NETWORK_ERROR
    return DetailErrorKind.UNKNOWN


class DetailViewModelBuilder:
    """Per-page loader with stale-response suppression.

    Every ``load`` takes a new token. When a response arrives after a newer
    ``load`` was issued, its result goes back to its own caller but is never
    published, so the page always shows the title navigated to last.
    """

    def __init__(self, source: MetadataSource) -> None:
        self.source = source
        self._token = 0
        self._snapshot = DetailSnapshot()
        self._observers: List[Observer] = []

    @property
    def snapshot(self) -> DetailSnapshot:
        return self._snapshot

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer; returns a function that unregisters it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _publish(self, snapshot: DetailSnapshot) -> None:
        self._snapshot = snapshot
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception as exc:
                logger.error("Detail observer failed: %s", exc, exc_info=exc)

    async def load(self, media_type: MediaType | str, media_id: int) -> DetailSnapshot:
        """Fetch and normalize a title, publishing LOADING then the outcome."""
        self._token += 1
        token = self._token
        if isinstance(media_type, MediaType):
            requested = media_type.value
        else:
            requested = str(media_type)
        base = {"media_type": requested, "media_id": media_id, "token": token}

        self._publish(DetailSnapshot(state=DetailState.LOADING, **base))
        result = await self._resolve(media_type, media_id, base)

        if token != self._token:
            logger.debug(
                "Discarding stale response for %s %s (token %d, latest %d)",
                requested,
                media_id,
                token,
                self._token,
            )
            return result.model_copy(update={"stale": True})

        self._publish(result)
        return result

    async def _resolve(self, media_type, media_id: int, base: dict) -> DetailSnapshot:
        try:
            kind = MediaType(media_type)
        except ValueError:
            logger.warning("Unsupported media type %r", media_type)
            return self._failed(DetailErrorKind.NOT_FOUND, base)

        try:
            raw = await self.source.fetch(kind, media_id)
            detail = normalize(raw, kind)
        except SchemaError as exc:
            logger.error("Malformed payload for %s %s: %s", kind.value, media_id, exc)
            return self._failed(DetailErrorKind.UNKNOWN, base)
        except Exception as exc:
            error_kind = classify_failure(exc)
            if error_kind == DetailErrorKind.UNKNOWN:
                logger.exception("Failed to load %s %s", kind.value, media_id)
            else:
                logger.warning(
                    "Failed to load %s %s (%s): %s",
                    kind.value,
                    media_id,
                    error_kind.value,
                    exc,
                )
            return self._failed(error_kind, base)

        return DetailSnapshot(state=DetailState.READY, detail=detail, **base)

    @staticmethod
    def _failed(kind: DetailErrorKind, base: dict) -> DetailSnapshot:
        return DetailSnapshot(
            state=DetailState.FAILED, error=DetailError.of(kind), **base
        )
