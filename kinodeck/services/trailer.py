"""Pick the trailer to play out of a title's video list."""

from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional

from kinodeck.models.media import VideoRef
from kinodeck.models.provider import VideoDescriptor

YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v="

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _published(video: VideoDescriptor) -> datetime:
    """Parse ``published_at``; missing or garbled stamps sort as oldest."""
    if not video.published_at:
        return _OLDEST
    try:
        stamp = datetime.fromisoformat(video.published_at.replace("Z", "+00:00"))
    except ValueError:
        return _OLDEST
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp


def _is_youtube_trailer(video: VideoDescriptor) -> bool:
    return video.site == "YouTube" and video.type == "Trailer" and bool(video.key)


def resolve_trailer(
    videos: Iterable[VideoDescriptor | dict],
) -> Optional[VideoRef]:
    """Return the trailer to show, or None.

    Only YouTube entries typed "Trailer" qualify. Official trailers win over
    unofficial ones, then the most recently published wins; anything still
    tied keeps provider order.
    """
    candidates = [
        v if isinstance(v, VideoDescriptor) else VideoDescriptor.model_validate(v)
        for v in videos
        if isinstance(v, (VideoDescriptor, Mapping))
    ]
    trailers = [v for v in candidates if _is_youtube_trailer(v)]
    if not trailers:
        return None

    # sorted() is stable, so equal keys keep their original order
    best = sorted(
        trailers,
        key=lambda v: (v.official is True, _published(v)),
        reverse=True,
    )[0]
    return VideoRef(
        url=f"{YOUTUBE_WATCH_URL}{best.key}", key=best.key, name=best.name or ""
    )
