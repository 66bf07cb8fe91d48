"""Keyset pagination over snowflake-ordered collections.

Pages are cut by the internal ``oid`` of each row. Clients pass external ids as
``after``/``before`` cursors; each cursor is resolved to its ``oid`` with a point
lookup and turned into an exclusive bound on the range scan. ``after`` always
means "further along in the requested order".

Only the direction matching ``order`` is probed past the returned page, so a
descending request can report ``has_more_after`` but never ``has_more_before``
and an ascending request the reverse. Clients paging the other way issue a
request in the opposite order.
"""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar

from pydantic import BaseModel

from cargo_hold.common.errors import InvalidCursorError

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class SortOrder(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


class PageRequest(BaseModel):
    order: SortOrder = SortOrder.DESC
    limit: int | None = None
    after: str | None = None
    before: str | None = None


class KeysetSource(Protocol[T_co]):
    """Persistence collaborator the paginator reads from."""

    async def find_key(self, external_id: str) -> int | None:
        """Return the internal key of the row with this external id, or None."""
        ...

    async def fetch_range(
        self,
        scope: int | None,
        lower: int | None,
        upper: int | None,
        order: SortOrder,
        limit: int,
    ) -> Sequence[T_co]:
        """Return at most ``limit`` rows with ``lower < key < upper`` sorted by key."""
        ...


@dataclass
class Page(Generic[T]):
    items: list[T]
    has_more_before: bool = False
    has_more_after: bool = False


def clamp_limit(limit: int | None, default: int = DEFAULT_PAGE_SIZE, maximum: int = MAX_PAGE_SIZE) -> int:
    if limit is None:
        limit = default
    return max(1, min(limit, maximum))


def page_flags(order: SortOrder, has_more: bool) -> tuple[bool, bool]:
    """Map the single probe result to ``(has_more_before, has_more_after)``."""
    if order is SortOrder.DESC:
        return False, has_more
    return has_more, False


def _max(a: int | None, b: int) -> int:
    return b if a is None else max(a, b)


def _min(a: int | None, b: int) -> int:
    return b if a is None else min(a, b)


class KeysetPaginator(Generic[T]):
    def __init__(
        self,
        source: KeysetSource[T],
        default_limit: int = DEFAULT_PAGE_SIZE,
        max_limit: int = MAX_PAGE_SIZE,
    ) -> None:
        self.source = source
        self.default_limit = default_limit
        self.max_limit = max_limit

    async def resolve_cursor(self, field: str, external_id: str) -> int:
        key = await self.source.find_key(external_id)
        if key is None:
            raise InvalidCursorError(field, external_id)
        return key

    async def paginate(self, request: PageRequest, scope: int | None = None) -> Page[T]:
        """Fetch one page.

        Both cursors may be given; their bounds are intersected.

        Raises:
            InvalidCursorError: a cursor does not name an existing row.
        """
        limit = clamp_limit(request.limit, self.default_limit, self.max_limit)
        ascending = request.order is SortOrder.ASC
        lower: int | None = None
        upper: int | None = None

        if request.after is not None:
            key = await self.resolve_cursor("after", request.after)
            if ascending:
                lower = _max(lower, key)
            else:
                upper = _min(upper, key)

        if request.before is not None:
            key = await self.resolve_cursor("before", request.before)
            if ascending:
                upper = _min(upper, key)
            else:
                lower = _max(lower, key)

        rows = list(await self.source.fetch_range(scope, lower, upper, request.order, limit + 1))
        has_more = len(rows) > limit
        has_more_before, has_more_after = page_flags(request.order, has_more)
        return Page(items=rows[:limit], has_more_before=has_more_before, has_more_after=has_more_after)
