# src/family_album/api/v1/endpoints/posts.py
"""Post browsing and management endpoints for the Family Album API."""

from fastapi import APIRouter, HTTPException, Query, status

from family_album.api.v1.dependencies import CurrentUserDep, SessionDep, StorageDep
from family_album.api.v1.errors import http_error
from family_album.core.settings import settings
from family_album.models import Post
from family_album.repositories.post_repo import PostRepository
from family_album.schemas.photo import PhotoResponse
from family_album.schemas.post import (
    FeedItem,
    FeedResponse,
    PostDetailResponse,
    PostResponse,
    PostUpdate,
)
from family_album.services.errors import NotAuthorizedError
from family_album.services.post_workflow import normalize_caption
from family_album.services.posts import (
    clamp_page,
    combine_display_date,
    delete_post,
    load_feed,
    page_title,
    update_post,
)

router = APIRouter(prefix="/posts", tags=["posts"])


def _feed_item(post: Post) -> FeedItem:
    cover = post.cover_photo
    thumbnail_url = None
    if cover is not None:
        thumbnail_url = cover.thumbnail_url or cover.original_url
    return FeedItem(
        id=post.id,
        url=f"/posts/{post.id}",
        thumbnail_url=thumbnail_url,
        caption=post.caption,
        is_collection=post.is_collection,
    )


def _get_post(repo: PostRepository, post_id: int) -> Post:
    post = repo.get_by_id(post_id)
    if post is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found",
        )
    return post


@router.get("/feed", response_model=FeedResponse)
def get_feed(
    db: SessionDep,
    page: int | None = Query(None, description="1-based page number"),
    per_page: int | None = Query(None, description="Posts per page"),
) -> FeedResponse:
    """Return one page of published posts for the infinite-scroll album.

    Args:
        db: Database session
        page: Requested page, clamped to the configured maximum
        per_page: Page size, clamped to the configured maximum

    Returns:
        Feed items newest first, plus the next page number if more exist
    """
    page, per_page = clamp_page(
        page,
        per_page,
        default_per_page=settings.feed_default_per_page,
        max_per_page=settings.feed_max_per_page,
        max_page=settings.feed_max_page,
    )
    feed = load_feed(PostRepository(db), page, per_page)
    return FeedResponse(
        data=[_feed_item(post) for post in feed.posts],
        nextPage=feed.next_page,
    )


@router.get("/{post_id}", response_model=PostDetailResponse)
def get_post(
    post_id: int,
    db: SessionDep,
) -> PostDetailResponse:
    """Get a published post with its photos and neighbouring posts.

    Raises:
        HTTPException: If the post does not exist or is not published yet
    """
    repo = PostRepository(db)
    post = repo.get_completed(post_id)
    if post is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found",
        )

    previous = repo.previous_completed(post)
    following = repo.next_completed(post)
    return PostDetailResponse(
        id=post.id,
        user_id=post.user_id,
        caption=post.caption,
        display_date=post.display_date,
        created_at=post.created_at,
        state=post.state,
        is_completed=post.is_completed,
        photos=[PhotoResponse.model_validate(photo) for photo in post.photos],
        title=page_title(post),
        previous_post_id=previous.id if previous else None,
        next_post_id=following.id if following else None,
    )


@router.patch("/{post_id}", response_model=PostResponse)
def edit_post(
    post_id: int,
    update: PostUpdate,
    db: SessionDep,
    current_user: CurrentUserDep,
) -> Post:
    """Edit a post's caption and display date (owner or admin).

    Args:
        post_id: ID of the post to edit
        update: New caption plus the date and time the photos were taken
        db: Database session
        current_user: Authenticated user

    Returns:
        The updated post

    Raises:
        HTTPException: If the post is missing or the user may not edit it
    """
    repo = PostRepository(db)
    post = _get_post(repo, post_id)
    try:
        return update_post(
            repo,
            post,
            current_user,
            caption=normalize_caption(update.caption),
            display_date=combine_display_date(update.taken_date, update.taken_time),
        )
    except NotAuthorizedError as exc:
        raise http_error(exc) from exc


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_post(
    post_id: int,
    db: SessionDep,
    storage: StorageDep,
    current_user: CurrentUserDep,
) -> None:
    """Delete a post, its photos and their stored files (owner or admin).

    Raises:
        HTTPException: If the post is missing or the user may not delete it
    """
    repo = PostRepository(db)
    post = _get_post(repo, post_id)
    try:
        delete_post(repo, storage, post, current_user)
    except NotAuthorizedError as exc:
        raise http_error(exc) from exc
