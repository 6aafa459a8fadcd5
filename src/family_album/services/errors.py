"""Exceptions raised by the upload pipeline and post workflow.

The API layer maps each class onto an HTTP status; services never build
HTTP responses themselves.
"""

from __future__ import annotations


class PipelineError(RuntimeError):
    """Base exception for image pipeline and workflow failures."""


class UploadRejectedError(PipelineError):
    """Raised when an upload fails validation before processing starts.

    Attributes:
        field: Name of the request field the message belongs to.
    """

    def __init__(self, message: str, field: str = "photo") -> None:
        super().__init__(message)
        self.field = field


class UnsupportedFormatError(UploadRejectedError):
    """Raised when the uploaded file is not a JPEG, PNG, GIF or HEIC image."""


class StorageError(PipelineError):
    """Raised when an asset cannot be written to or read from storage."""


class DecodeError(PipelineError):
    """Raised when an image cannot be decoded."""


class CodecUnavailableError(DecodeError):
    """Raised when HEIC/HEIF input arrives but no HEIF codec is registered."""


class PostStateError(PipelineError):
    """Raised when an operation is not allowed in the post's current state."""


class NotAuthorizedError(PipelineError):
    """Raised when the acting user is neither the owner nor an administrator."""
