"""Keyset (cursor) pagination over an ordered row set.

Two orderings are supported by the callers:

* identifier order, where the sort key is just ``(id,)``. Identifiers are
  time-sortable, so this is also creation order;
* composite order, where the sort key is ``(starts_at, id)`` and the
  cursor row's key is re-read when the page is requested.

``after_id`` walks forward from the cursor. ``before_id`` walks backward:
rows are fetched in the reverse order, then flipped back so every page is
presented in the requested order. One extra row is fetched to know whether
another page exists.
"""

from __future__ import annotations

from typing import Callable, Iterable, TypeVar

from conference_scheduler.domain.errors import InvalidLimit, InvalidPagination
from conference_scheduler.domain.models import PageInfo, PageRequest

T = TypeVar("T")

MIN_LIMIT = 1
MAX_LIMIT = 20


def validate_page(page: PageRequest, max_limit: int = MAX_LIMIT) -> None:
    """Reject cursor requests the engine must never silently resolve."""
    if page.after_id is not None and page.before_id is not None:
        raise InvalidPagination(
            details={"after_id": page.after_id, "before_id": page.before_id}
        )
    if not MIN_LIMIT <= page.limit <= max_limit:
        raise InvalidLimit(
            details={"limit": page.limit, "min": MIN_LIMIT, "max": max_limit}
        )


def paginate(
    rows: Iterable[T],
    *,
    sort_key: Callable[[T], tuple],
    row_id: Callable[[T], str],
    cursor_key: Callable[[str], tuple | None],
    after_id: str | None = None,
    before_id: str | None = None,
    limit: int,
    descending: bool = False,
) -> tuple[list[T], PageInfo]:
    """Return one page of *rows* plus the envelope for the next request.

    *rows* must already be filtered. *cursor_key* maps a cursor id to the
    sort key of that row; when it returns ``None`` (unknown cursor) the
    page is empty.
    """
    if after_id is not None and before_id is not None:
        raise InvalidPagination(details={"after_id": after_id, "before_id": before_id})

    backward = before_id is not None
    cursor_id = before_id if backward else after_id
    fetch_descending = descending != backward

    candidates = list(rows)
    if cursor_id is not None:
        cursor = cursor_key(cursor_id)
        if cursor is None:
            return [], PageInfo()
        if fetch_descending:
            candidates = [row for row in candidates if sort_key(row) < cursor]
        else:
            candidates = [row for row in candidates if sort_key(row) > cursor]

    candidates.sort(key=sort_key, reverse=fetch_descending)
    fetched = candidates[: limit + 1]

    has_more = len(fetched) > limit
    # The extra row is the one farthest from the cursor.
    page = fetched[:limit]
    if backward:
        page.reverse()

    if not page:
        return page, PageInfo(has_more=has_more)
    return page, PageInfo(
        has_more=has_more,
        first_id=row_id(page[0]),
        last_id=row_id(page[-1]),
    )
