"""Raw TMDB detail payloads, typed but forgiving.

Every field is optional. A field whose value does not fit its type falls
back to the field default instead of failing the whole payload, and list
elements that are not objects are skipped. The normalizer only ever sees
``None``/empty for "absent or malformed".
"""

from typing import List, Mapping, Optional, get_origin

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore")

    @field_validator("*", mode="wrap")
    @classmethod
    def _default_on_malformed(cls, value, handler, info):
        field = cls.model_fields[info.field_name]
        if isinstance(value, list) and get_origin(field.annotation) is list:
            # Drop bad elements one by one; their siblings survive
            value = [item for item in value if isinstance(item, Mapping)]
        try:
            return handler(value)
        except ValidationError:
            return field.get_default(call_default_factory=True)


class RawGenre(_Lenient):
    id: Optional[int] = None
    name: Optional[str] = None


class RawCastMember(_Lenient):
    id: Optional[int] = None
    name: Optional[str] = None
    character: Optional[str] = None
    profile_path: Optional[str] = None
    order: Optional[int] = None


class RawCredits(_Lenient):
    cast: List[RawCastMember] = Field(default_factory=list)


class VideoDescriptor(_Lenient):
    """One entry of ``videos.results``."""

    key: Optional[str] = None
    name: Optional[str] = None
    site: Optional[str] = None
    type: Optional[str] = None
    official: Optional[bool] = None
    published_at: Optional[str] = None


class RawVideoPage(_Lenient):
    results: List[VideoDescriptor] = Field(default_factory=list)


class RawListItem(_Lenient):
    """An entry of ``similar`` / ``recommendations``."""

    id: Optional[int] = None
    title: Optional[str] = None
    name: Optional[str] = None
    poster_path: Optional[str] = None
    media_type: Optional[str] = None


class RawResultPage(_Lenient):
    results: List[RawListItem] = Field(default_factory=list)


class ProviderPayload(_Lenient):
    """``/movie/{id}`` or ``/tv/{id}`` with appended credits, videos and lists."""

    id: Optional[int] = None
    title: Optional[str] = None  # movies
    name: Optional[str] = None  # series
    overview: Optional[str] = None
    backdrop_path: Optional[str] = None
    poster_path: Optional[str] = None
    release_date: Optional[str] = None  # movies
    first_air_date: Optional[str] = None  # series
    vote_average: Optional[float] = None
    runtime: Optional[int] = None  # movies
    number_of_seasons: Optional[int] = None  # series
    genres: List[RawGenre] = Field(default_factory=list)
    credits: RawCredits = Field(default_factory=RawCredits)
    videos: RawVideoPage = Field(default_factory=RawVideoPage)
    similar: RawResultPage = Field(default_factory=RawResultPage)
    recommendations: RawResultPage = Field(default_factory=RawResultPage)
