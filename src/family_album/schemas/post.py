"""Post-related Pydantic schemas."""

from datetime import date, datetime, time

from pydantic import BaseModel, ConfigDict, Field

from family_album.core.settings import settings
from family_album.models.post import PostState
from family_album.schemas.photo import PhotoResponse


class FeedItem(BaseModel):
    """A post as shown in the infinite-scroll album."""

    id: int
    url: str
    thumbnail_url: str | None
    caption: str | None
    is_collection: bool


class FeedResponse(BaseModel):
    """One page of the album feed."""

    data: list[FeedItem]
    nextPage: int | None  # noqa: N815 - consumed by the album script as-is


class PostResponse(BaseModel):
    """Schema for post information returned by the API."""

    id: int
    user_id: int
    caption: str | None
    display_date: datetime | None
    created_at: datetime
    state: PostState
    is_completed: bool
    photos: list[PhotoResponse]

    model_config = ConfigDict(from_attributes=True)


class PostDetailResponse(PostResponse):
    """Post detail with neighbours for previous/next navigation."""

    title: str
    previous_post_id: int | None
    next_post_id: int | None


class PostUpdate(BaseModel):
    """Schema for a manual caption and date edit."""

    caption: str | None = Field(None, max_length=settings.edit_caption_max_length)
    taken_date: date
    taken_time: time
