"""Time-sortable identifier generation."""

from __future__ import annotations

from typing import Callable

from uuid6 import uuid7

IdGenerator = Callable[[], str]


def new_sortable_id() -> str:
    """Return a UUIDv7 string.

    UUIDv7 embeds a millisecond timestamp in its most significant bits, so
    comparing the canonical lowercase strings orders ids by creation time.
    """
    return str(uuid7())
