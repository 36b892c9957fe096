"""Normalize TMDB movie and series payloads into a single MediaDetail."""

import logging
from datetime import date
from typing import Any, List, Mapping, Optional

from pydantic import ValidationError

from kinodeck.core.errors import SchemaError
from kinodeck.models.media import (
    CastMember,
    Genre,
    MediaDetail,
    MediaType,
    RelatedItem,
    Runtime,
    SeasonCount,
    UnknownLength,
)
from kinodeck.models.provider import (
    ProviderPayload,
    RawCastMember,
    RawListItem,
)
from kinodeck.services.trailer import resolve_trailer

logger = logging.getLogger(__name__)

CAST_LIMIT = 10
RELATED_LIMIT = 12


def _text(value: Optional[str]) -> Optional[str]:
    """Strip a string, treating blank as absent."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_year(value: Optional[str]) -> Optional[int]:
    """Year of an ISO date such as ``2010-07-16``; None when unusable."""
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip()[:10]).year
    except ValueError:
        return None


def _parse_rating(value: Optional[float]) -> Optional[float]:
    if value is None or not 0 <= value <= 10:
        return None
    return float(value)


def _title(payload: ProviderPayload, media_type: MediaType) -> Optional[str]:
    # Movies carry "title", series carry "name"
    if media_type == MediaType.MOVIE:
        return _text(payload.title) or _text(payload.name)
    return _text(payload.name) or _text(payload.title)


def _length_info(payload: ProviderPayload, media_type: MediaType):
    if media_type == MediaType.MOVIE:
        if payload.runtime and payload.runtime > 0:
            return Runtime(minutes=payload.runtime)
    elif payload.number_of_seasons and payload.number_of_seasons > 0:
        return SeasonCount(count=payload.number_of_seasons)
    return UnknownLength()


def _cast(members: List[RawCastMember]) -> List[CastMember]:
    cast = []
    for member in members:
        name = _text(member.name)
        if member.id is None or name is None:
            continue
        cast.append(
            CastMember(
                id=member.id,
                name=name,
                character=member.character or "",
                profile_image_path=member.profile_path,
            )
        )
        if len(cast) == CAST_LIMIT:
            break
    return cast


def _guess_media_type(item: RawListItem, fallback: MediaType) -> MediaType:
    try:
        return MediaType(item.media_type)
    except ValueError:
        return fallback


def build_related(
    similar: List[RawListItem],
    recommendations: List[RawListItem],
    media_type: MediaType,
) -> List[RelatedItem]:
    """Merge similar and recommended titles.

    Similar titles come first and win on duplicate ids; the result holds at
    most RELATED_LIMIT items in first-seen order.
    """
    seen: set[int] = set()
    related = []
    for item in [*similar, *recommendations]:
        if item.id is None or item.id in seen:
            continue
        title = _text(item.title) or _text(item.name)
        if title is None:
            continue
        seen.add(item.id)
        related.append(
            RelatedItem(
                id=item.id,
                title=title,
                poster_path=item.poster_path,
                media_type_guess=_guess_media_type(item, media_type),
            )
        )
        if len(related) == RELATED_LIMIT:
            break
    return related


def normalize(
    raw: Mapping[str, Any] | ProviderPayload, media_type: MediaType | str
) -> MediaDetail:
    """Build a MediaDetail from a raw TMDB detail payload.

    Raises:
        SchemaError: if the payload has no id or no title.
    """
    media_type = MediaType(media_type)
    if isinstance(raw, ProviderPayload):
        payload = raw
    else:
        try:
            payload = ProviderPayload.model_validate(raw)
        except ValidationError as exc:
            raise SchemaError(
                f"TMDB {media_type.value} payload is not an object"
            ) from exc

    if payload.id is None:
        raise SchemaError(f"TMDB {media_type.value} payload has no id")
    title = _title(payload, media_type)
    if title is None:
        raise SchemaError(
            f"TMDB {media_type.value} payload {payload.id} has no title or name"
        )

    if media_type == MediaType.MOVIE:
        year = _parse_year(payload.release_date)
    else:
        year = _parse_year(payload.first_air_date)

    detail = MediaDetail(
        id=payload.id,
        media_type=media_type,
        title=title,
        overview=payload.overview or "",
        backdrop_path=payload.backdrop_path,
        poster_path=payload.poster_path,
        year=year,
        rating=_parse_rating(payload.vote_average),
        length_info=_length_info(payload, media_type),
        genres=tuple(
            Genre(id=g.id, name=g.name)
            for g in payload.genres
            if g.id is not None and g.name
        ),
        cast=tuple(_cast(payload.credits.cast)),
        trailer_ref=resolve_trailer(payload.videos.results),
        related=tuple(
            build_related(
                payload.similar.results, payload.recommendations.results, media_type
            )
        ),
    )
    logger.debug(
        "Normalized %s %s: %d cast, %d related, trailer=%s",
        media_type.value,
        detail.id,
        len(detail.cast),
        len(detail.related),
        detail.trailer_ref is not None,
    )
    return detail
