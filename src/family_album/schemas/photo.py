"""Photo-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from family_album.models.post import PostState


class PhotoResponse(BaseModel):
    """Schema for photo information returned by the API."""

    id: int
    post_id: int
    user_id: int
    position: int
    width: int
    height: int
    taken_at: datetime | None
    original_url: str
    thumbnail_url: str | None

    model_config = ConfigDict(from_attributes=True)


class PhotoStatusResponse(PhotoResponse):
    """Photo plus the workflow state of its post, for the crop and caption pages."""

    post_state: PostState
    caption: str | None
    next_step: str


class AsyncUploadResponse(BaseModel):
    """Successful body of the background upload endpoint."""

    success: bool = True
    photo_id: int
    post_id: int
    width: int
    height: int


class UploadErrorResponse(BaseModel):
    """Error envelope of the background upload endpoint."""

    success: bool = False
    message: str

