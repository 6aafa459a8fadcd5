"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from family_album.core.security import decode_access_token
from family_album.core.settings import settings
from family_album.db.session import get_db
from family_album.models import User
from family_album.services.ingestion import IngestionService, UploadLimits
from family_album.services.post_workflow import PostWorkflow
from family_album.services.storage import LocalStorage, get_storage

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_storage_dep() -> LocalStorage:
    """Return the media storage backend."""
    return get_storage()


StorageDep = Annotated[LocalStorage, Depends(get_storage_dep)]


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer token credentials
        db: Database session

    Returns:
        User object for the authenticated user

    Raises:
        HTTPException: If token is invalid or user not found
    """
    try:
        user_id = decode_access_token(credentials.credentials)
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]


def get_ingestion_service(db: SessionDep, storage: StorageDep) -> IngestionService:
    """Build the ingestion service with the configured upload limits."""
    return IngestionService(
        db,
        storage,
        UploadLimits.from_settings(settings),
        heic_quality=settings.heic_transcode_quality,
    )


def get_post_workflow(db: SessionDep, storage: StorageDep) -> PostWorkflow:
    """Build the post workflow with the configured thumbnail output."""
    return PostWorkflow(
        db,
        storage,
        thumbnail_size=settings.thumbnail_size,
        thumbnail_quality=settings.thumbnail_quality,
    )


IngestionDep = Annotated[IngestionService, Depends(get_ingestion_service)]
WorkflowDep = Annotated[PostWorkflow, Depends(get_post_workflow)]
