"""Translation of service errors into HTTP responses."""

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse

from family_album.services.errors import (
    CodecUnavailableError,
    DecodeError,
    NotAuthorizedError,
    PipelineError,
    PostStateError,
    UploadRejectedError,
)


def status_for(exc: PipelineError) -> int:
    """Return the HTTP status code matching a service error."""
    if isinstance(exc, NotAuthorizedError):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, CodecUnavailableError):
        return status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    if isinstance(exc, (UploadRejectedError, DecodeError)):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, PostStateError):
        return status.HTTP_409_CONFLICT
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def http_error(exc: PipelineError) -> HTTPException:
    """Build the HTTPException raised by form-style routes.

    Validation failures carry a per-field message so the form can show it
    next to the offending input.
    """
    detail: object = str(exc)
    if isinstance(exc, UploadRejectedError):
        detail = {exc.field: str(exc)}
    return HTTPException(status_code=status_for(exc), detail=detail)


def json_error(message: str, status_code: int) -> JSONResponse:
    """Return the ``{success: false, message}`` envelope used by the async upload."""
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
    )
