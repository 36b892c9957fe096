"""Canonical view models handed to the presentation layer."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel


class MediaType(str, Enum):
    """Media type discriminant."""

    MOVIE = "movie"
    SERIES = "tv"


class _ViewModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class Genre(_ViewModel):
    id: int
    name: str


class CastMember(_ViewModel):
    """A credited cast member."""

    id: int
    name: str
    character: str = ""
    profile_image_path: Optional[str] = None


class RelatedItem(_ViewModel):
    """A lightweight card for the related titles row."""

    id: int
    title: str
    poster_path: Optional[str] = None
    media_type_guess: MediaType


class VideoRef(_ViewModel):
    """A playable trailer."""

    url: str
    key: str
    name: str = ""


class Runtime(_ViewModel):
    kind: Literal["runtime"] = "runtime"
    minutes: int


class SeasonCount(_ViewModel):
    kind: Literal["seasons"] = "seasons"
    count: int


class UnknownLength(_ViewModel):
    kind: Literal["unknown"] = "unknown"


LengthInfo = Annotated[
    Union[Runtime, SeasonCount, UnknownLength], Field(discriminator="kind")
]


class MediaDetail(_ViewModel):
    """A movie or series normalized into one shape.

    Only built by the normalizer; presentation code consumes it as-is.
    """

    id: int
    media_type: MediaType
    title: str
    overview: str = ""
    backdrop_path: Optional[str] = None
    poster_path: Optional[str] = None
    year: Optional[int] = None
    rating: Optional[float] = None
    length_info: LengthInfo = Field(default_factory=UnknownLength)
    genres: Tuple[Genre, ...] = ()
    cast: Tuple[CastMember, ...] = Field(default=(), max_length=10)
    trailer_ref: Optional[VideoRef] = None
    related: Tuple[RelatedItem, ...] = Field(default=(), max_length=12)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WatchlistEntry(BaseModel):
    """What the watchlist keeps for a title (not the whole MediaDetail).

    Stored as ``{id, mediaType, title, posterPath, addedAt}``.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: int
    media_type: MediaType
    title: str = ""
    poster_path: Optional[str] = None
    added_at: datetime = Field(default_factory=_utcnow)

    @field_validator("title", mode="before")
    @classmethod
    def _blank_title(cls, v):
        return "" if v is None else v

    @field_validator("added_at", mode="wrap")
    @classmethod
    def _fallback_added_at(cls, v, handler):
        # Older or hand-edited records may carry junk timestamps
        try:
            return handler(v)
        except ValidationError:
            return _utcnow()

    @property
    def key(self) -> tuple[int, MediaType]:
        return (self.id, self.media_type)

    @classmethod
    def from_detail(
        cls, detail: MediaDetail, added_at: datetime | None = None
    ) -> "WatchlistEntry":
        """Build an entry for a normalized title."""
        return cls(
            id=detail.id,
            media_type=detail.media_type,
            title=detail.title,
            poster_path=detail.poster_path,
            added_at=added_at or _utcnow(),
        )
