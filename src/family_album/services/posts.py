"""Service-level helpers for browsing and managing published posts."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time

from family_album.models import Post, User
from family_album.repositories.post_repo import PostRepository
from family_album.services.errors import NotAuthorizedError
from family_album.services.storage import LocalStorage

logger = logging.getLogger(__name__)

TITLE_CAPTION_LENGTH = 60


@dataclass(frozen=True)
class FeedPage:
    """One page of the public feed."""

    posts: list[Post]
    page: int
    next_page: int | None


def clamp_page(page: int | None, per_page: int | None, *, default_per_page: int,
               max_per_page: int, max_page: int) -> tuple[int, int]:
    """Clamp requested paging parameters into the configured bounds."""
    per_page = per_page or default_per_page
    per_page = max(1, min(per_page, max_per_page))
    page = page or 1
    page = max(1, min(page, max_page))
    return page, per_page


def load_feed(repo: PostRepository, page: int, per_page: int) -> FeedPage:
    """Return completed posts for ``page``, newest first."""
    offset = (page - 1) * per_page
    posts = repo.list_completed(offset=offset, limit=per_page)
    has_more = repo.count_completed() > offset + len(posts)
    return FeedPage(posts=posts, page=page, next_page=page + 1 if has_more else None)


def page_title(post: Post) -> str:
    """Build the detail page title, e.g. ``Beach day - 3 Photos``."""
    count = len(post.photos)
    title = "Photo" if count == 1 else f"{count} Photos"
    if post.caption:
        caption = post.caption
        if len(caption) > TITLE_CAPTION_LENGTH:
            caption = caption[:TITLE_CAPTION_LENGTH] + "..."
        title = f"{caption} - {title}"
    return title


def combine_display_date(taken_date: date, taken_time: time) -> datetime:
    """Merge the edit form's date and time fields, seconds zeroed."""
    return datetime.combine(taken_date, taken_time.replace(second=0, microsecond=0))


def ensure_can_manage(post: Post, user: User) -> None:
    """Raise unless the user owns the post or is an administrator."""
    if not user.can_modify(post.user_id):
        raise NotAuthorizedError("You can only change your own posts")


def update_post(repo: PostRepository, post: Post, user: User, *,
                caption: str | None, display_date: datetime) -> Post:
    """Apply a manual caption/date edit; completion state is left alone."""
    ensure_can_manage(post, user)
    post.caption = caption
    post.display_date = display_date
    repo.session.commit()
    repo.session.refresh(post)
    return post


def delete_post(repo: PostRepository, storage: LocalStorage, post: Post, user: User) -> None:
    """Delete a post together with every stored original and thumbnail."""
    ensure_can_manage(post, user)
    for photo in post.photos:
        if photo.original_path:
            storage.delete(photo.original_path)
        if photo.thumbnail_path:
            storage.delete(photo.thumbnail_path)
    post_id = post.id
    photo_count = len(post.photos)
    repo.delete(post)
    logger.info("Deleted post %d with %d photo(s) by user %d", post_id, photo_count, user.id)
