"""Cursor-based pagination shared by galleries, images and comments.

Collections are walked newest first, ordered by ``(created_at DESC, id DESC)``.
A cursor names the last item of the previous page as ``"<ms>_<id>"``, where
``<ms>`` is its creation time in milliseconds since the epoch; the next page
holds the items strictly after that position.  A bare ``"<ms>"`` is accepted
too and means "created strictly before ``<ms>``".

Nothing is stored server-side.  A traversal never skips or repeats an item
unless rows at or after the cursor position are inserted or deleted between
page fetches.
"""
import re
from datetime import datetime
from typing import Any, List, NamedTuple, Optional

from fastapi import Query
from sqlalchemy import and_, or_
from sqlalchemy.orm import Query as SQLQuery

from galleria.config import settings
from galleria.errors import InvalidParameter
from galleria.utils.timestamps import from_epoch_ms, to_epoch_ms

# Digit caps keep int() away from huge strings; ids must fit a signed 64-bit column
_CURSOR_RE = re.compile(r"^(\d{1,15})(?:_(\d{1,19}))?$")
_LIMIT_RE = re.compile(r"^\d{1,4}$")
_MAX_ID = 2 ** 63 - 1


class Cursor(NamedTuple):
    """Position in a ``(created_at, id)`` descending traversal"""
    created_at: datetime
    id: Optional[int] = None

    @classmethod
    def parse(cls, raw: str) -> "Cursor":
        match = _CURSOR_RE.match(raw.strip())
        if not match:
            raise InvalidParameter("cursor", "Invalid cursor format. Expected a millisecond timestamp.")
        try:
            created_at = from_epoch_ms(int(match.group(1)))
        except OverflowError:
            raise InvalidParameter("cursor", "Cursor timestamp is out of range.")
        item_id = int(match.group(2)) if match.group(2) is not None else None
        if item_id is not None and item_id > _MAX_ID:
            raise InvalidParameter("cursor", "Cursor id is out of range.")
        return cls(created_at=created_at, id=item_id)

    @classmethod
    def after(cls, item: Any) -> "Cursor":
        return cls(created_at=item.created_at, id=item.id)

    def encode(self) -> str:
        ms = to_epoch_ms(self.created_at)
        return str(ms) if self.id is None else f"{ms}_{self.id}"


class PageParams(NamedTuple):
    limit: int
    cursor: Optional[Cursor] = None


class Page(NamedTuple):
    items: List[Any]
    next_cursor: Optional[str]


def parse_limit(raw: Optional[str], default: int, maximum: int) -> int:
    if raw is None or raw.strip() == "":
        return default
    raw = raw.strip()
    if not _LIMIT_RE.match(raw) or not 1 <= int(raw) <= maximum:
        raise InvalidParameter(
            "limit",
            f"Invalid limit parameter. Limit must be an integer between 1 and {maximum}.",
        )
    return int(raw)


def build_page_params(limit: Optional[str] = None, cursor: Optional[str] = None) -> PageParams:
    """Validate raw query values into :class:`PageParams`.

    Raises:
        InvalidParameter: naming ``limit`` or ``cursor``.
    """
    return PageParams(
        limit=parse_limit(limit, settings.PAGE_LIMIT_DEFAULT, settings.PAGE_LIMIT_MAX),
        cursor=Cursor.parse(cursor) if cursor and cursor.strip() else None,
    )


def page_params(
    limit: Optional[str] = Query(None, description="Page size, 1-100"),
    cursor: Optional[str] = Query(None, description="nextCursor from the previous page"),
) -> PageParams:
    """FastAPI dependency wrapping :func:`build_page_params`.

    Parameters are taken as strings so that bad values surface as a 400
    naming the field instead of FastAPI's generic 422.
    """
    return build_page_params(limit, cursor)


def paginate(query: SQLQuery, model: Any, params: PageParams) -> Page:
    """Fetch one page of ``query`` (which must select ``model`` rows).

    ``model`` must expose ``created_at`` and ``id`` columns.
    """
    created, ident = model.created_at, model.id

    if params.cursor is not None:
        if params.cursor.id is None:
            query = query.filter(created < params.cursor.created_at)
        else:
            query = query.filter(
                or_(
                    created < params.cursor.created_at,
                    and_(created == params.cursor.created_at, ident < params.cursor.id),
                )
            )

    rows = query.order_by(created.desc(), ident.desc()).limit(params.limit + 1).all()

    if len(rows) <= params.limit:
        return Page(items=rows, next_cursor=None)

    rows = rows[: params.limit]
    return Page(items=rows, next_cursor=Cursor.after(rows[-1]).encode())
