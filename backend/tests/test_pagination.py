"""Tests for cursor pagination"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy.orm import Session

from galleria.errors import InvalidParameter
from galleria.models.gallery import Gallery
from galleria.models.user import User
from galleria.utils.pagination import Cursor, PageParams, build_page_params, paginate
from galleria.utils.timestamps import from_epoch_ms, to_epoch_ms

BASE_TIME = datetime(2026, 1, 1, 12, 0, 0)


@pytest.fixture
def owner(db: Session) -> User:
    user = User(username="owner", password_hash="x")
    db.add(user)
    db.commit()
    return user


def make_galleries(db: Session, owner: User, timestamps) -> None:
    for i, created in enumerate(timestamps):
        db.add(Gallery(name=f"g{i}", user_id=owner.id, created_at=created, updated_at=created))
    db.commit()


def walk(db: Session, limit: int):
    """Follow nextCursor to the end, returning every page"""
    pages = []
    cursor = None
    while True:
        page = paginate(db.query(Gallery), Gallery, PageParams(limit=limit, cursor=cursor))
        pages.append(page)
        if page.next_cursor is None:
            return pages
        cursor = Cursor.parse(page.next_cursor)


def test_empty_collection(db: Session):
    page = paginate(db.query(Gallery), Gallery, PageParams(limit=10))
    assert page.items == []
    assert page.next_cursor is None


def test_newest_first(db: Session, owner: User):
    make_galleries(db, owner, [BASE_TIME + timedelta(seconds=i) for i in range(3)])

    page = paginate(db.query(Gallery), Gallery, PageParams(limit=10))

    assert [g.name for g in page.items] == ["g2", "g1", "g0"]
    assert page.next_cursor is None


def test_exact_page_has_no_next_cursor(db: Session, owner: User):
    make_galleries(db, owner, [BASE_TIME + timedelta(seconds=i) for i in range(4)])

    page = paginate(db.query(Gallery), Gallery, PageParams(limit=4))

    assert len(page.items) == 4
    assert page.next_cursor is None


def test_full_traversal_visits_every_item_once(db: Session, owner: User):
    make_galleries(db, owner, [BASE_TIME + timedelta(milliseconds=i) for i in range(23)])

    pages = walk(db, limit=5)
    names = [g.name for page in pages for g in page.items]

    assert len(pages) == 5
    assert names == [f"g{i}" for i in reversed(range(23))]


def test_traversal_with_identical_timestamps(db: Session, owner: User):
    """Items sharing a creation time are split across pages without loss"""
    make_galleries(db, owner, [BASE_TIME] * 7)

    pages = walk(db, limit=3)
    ids = [g.id for page in pages for g in page.items]

    assert len(ids) == 7
    assert len(set(ids)) == 7
    assert ids == sorted(ids, reverse=True)


def test_bare_timestamp_cursor(db: Session, owner: User):
    make_galleries(db, owner, [BASE_TIME + timedelta(seconds=i) for i in range(3)])
    cursor = Cursor.parse(str(to_epoch_ms(BASE_TIME + timedelta(seconds=2))))

    page = paginate(db.query(Gallery), Gallery, PageParams(limit=10, cursor=cursor))

    assert [g.name for g in page.items] == ["g1", "g0"]


def test_cursor_round_trip():
    cursor = Cursor(created_at=datetime(2026, 3, 4, 5, 6, 7, 891000), id=42)
    assert Cursor.parse(cursor.encode()) == cursor


def test_epoch_ms_round_trip():
    moment = datetime(2026, 3, 4, 5, 6, 7, 891000)
    assert from_epoch_ms(to_epoch_ms(moment)) == moment


@pytest.mark.parametrize("limit", ["0", "101", "-1", "abc", "2.5", "00000", "9" * 5000])
def test_invalid_limit(limit: str):
    with pytest.raises(InvalidParameter) as exc_info:
        build_page_params(limit=limit)
    assert exc_info.value.field == "limit"


@pytest.mark.parametrize(
    "cursor",
    [
        "yesterday",
        "12_",
        "_12",
        "1.5",
        "99999999999999999999",
        "9" * 5000,
        "1767225600000_" + "9" * 5000,
        "1767225600000_99999999999999999999",
        "1767225600000_9223372036854775808",
        "999999999999999",
    ],
)
def test_invalid_cursor(cursor: str):
    with pytest.raises(InvalidParameter) as exc_info:
        build_page_params(cursor=cursor)
    assert exc_info.value.field == "cursor"


def test_default_limit():
    params = build_page_params()
    assert params.limit == 10
    assert params.cursor is None


def test_limit_bounds_accepted():
    assert build_page_params(limit="1").limit == 1
    assert build_page_params(limit="100").limit == 100


def test_largest_cursor_id_accepted():
    cursor = Cursor.parse("1767225600000_9223372036854775807")
    assert cursor.id == 2 ** 63 - 1
