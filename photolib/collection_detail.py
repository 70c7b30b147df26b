"""Collection detail views: sections grouped by rating, day or camera, each paged on its own.

Every section is queried independently with its own ``ORDER BY capture_time_unix DESC, id DESC``
and its own LIMIT/OFFSET. Paging one section therefore never pulls in rows from another,
and empty sections are left out of the summaries.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from photolib.collections import CollectionNotFoundError
from photolib.review import GRID_COLUMNS, REVIEW_BROWSE_BASE_WHERE, ReviewGridRow, _grid_row

_VISIBLE_MEMBER_WHERE = f"""{REVIEW_BROWSE_BASE_WHERE}
AND EXISTS (
  SELECT 1 FROM asset_collections ac
  WHERE ac.asset_id = assets.id AND ac.collection_id = ?
)"""

_LOCAL_DAY = "strftime('%Y-%m-%d', capture_time_unix, 'unixepoch', 'localtime')"

_PAGE_ORDER = """
ORDER BY capture_time_unix DESC, id DESC
LIMIT ? OFFSET ?"""


@dataclass(frozen=True)
class StarSection:
    """One non-empty star bucket; rating None means unrated."""

    rating: int | None
    count: int


@dataclass(frozen=True)
class DaySection:
    """One local calendar day bucket; day_key is YYYY-MM-DD in local time."""

    day_key: str
    count: int


@dataclass(frozen=True)
class CameraSection:
    """One camera label bucket; label None means the unknown camera."""

    label: str | None
    count: int


def collection_exists(conn: sqlite3.Connection, collection_id: int) -> bool:
    """Report whether a collection row exists for the id."""
    row = conn.execute(
        "SELECT 1 FROM collections WHERE id = ? LIMIT 1", (collection_id,)
    ).fetchone()
    return row is not None


def _require_collection(conn: sqlite3.Connection, collection_id: int) -> None:
    if not collection_exists(conn, collection_id):
        raise CollectionNotFoundError(f"collection {collection_id}: collection not found")


def _check_page(what: str, limit: int, offset: int) -> None:
    if limit < 1:
        raise ValueError(f"{what}: limit must be >= 1")
    if offset < 0:
        raise ValueError(f"{what}: offset must be >= 0")


def _page(conn: sqlite3.Connection, extra_where: str, args: list) -> list[ReviewGridRow]:
    query = f"""
SELECT {GRID_COLUMNS}
FROM assets
WHERE {_VISIBLE_MEMBER_WHERE}
{extra_where}{_PAGE_ORDER}"""
    return [_grid_row(row) for row in conn.execute(query, args)]


def count_collection_visible_assets(conn: sqlite3.Connection, collection_id: int) -> int:
    """Count the collection's members that default Review would show."""
    _require_collection(conn, collection_id)
    (n,) = conn.execute(
        f"SELECT COUNT(*) FROM assets WHERE {_VISIBLE_MEMBER_WHERE}", (collection_id,)
    ).fetchone()
    return int(n)


def list_collection_star_sections(
    conn: sqlite3.Connection, collection_id: int
) -> list[StarSection]:
    """Return the non-empty star buckets, 5 down to 1, then unrated."""
    _require_collection(conn, collection_id)
    query = f"""
SELECT rating, COUNT(*) AS c
FROM assets
WHERE {_VISIBLE_MEMBER_WHERE}
GROUP BY rating
ORDER BY rating IS NULL ASC, rating DESC"""
    by_rating: dict[int, int] = {}
    unrated = 0
    for rating, count in conn.execute(query, (collection_id,)):
        if rating is None:
            unrated += count
        elif 1 <= int(rating) <= 5:
            by_rating[int(rating)] = by_rating.get(int(rating), 0) + count
    out = [
        StarSection(stars, by_rating[stars])
        for stars in range(5, 0, -1)
        if by_rating.get(stars, 0) > 0
    ]
    if unrated > 0:
        out.append(StarSection(None, unrated))
    return out


def list_collection_star_section_page(
    conn: sqlite3.Connection,
    collection_id: int,
    rating: int | None,
    limit: int,
    offset: int,
) -> list[ReviewGridRow]:
    """Return one page of a star bucket; rating None selects unrated members."""
    _require_collection(conn, collection_id)
    _check_page("list collection star section page", limit, offset)
    if rating is None:
        return _page(conn, "AND rating IS NULL", [collection_id, limit, offset])
    return _page(conn, "AND rating = ?", [collection_id, rating, limit, offset])


def list_collection_day_sections(
    conn: sqlite3.Connection, collection_id: int
) -> list[DaySection]:
    """Return the non-empty local calendar days, newest first."""
    _require_collection(conn, collection_id)
    query = f"""
SELECT {_LOCAL_DAY} AS d, COUNT(*) AS c
FROM assets
WHERE {_VISIBLE_MEMBER_WHERE}
GROUP BY d
HAVING d IS NOT NULL AND d != ''
ORDER BY d DESC"""
    return [
        DaySection(day, count)
        for day, count in conn.execute(query, (collection_id,))
        if count > 0
    ]


def list_collection_day_section_page(
    conn: sqlite3.Connection,
    collection_id: int,
    day_key: str,
    limit: int,
    offset: int,
) -> list[ReviewGridRow]:
    """Return one page of the members captured on a local calendar day."""
    _require_collection(conn, collection_id)
    _check_page("list collection day section page", limit, offset)
    return _page(conn, f"AND {_LOCAL_DAY} = ?", [collection_id, day_key, limit, offset])


def list_collection_camera_sections(
    conn: sqlite3.Connection, collection_id: int
) -> list[CameraSection]:
    """Return the non-empty camera buckets by label, with the unknown camera last."""
    _require_collection(conn, collection_id)
    query = f"""
SELECT camera_label, COUNT(*) AS c
FROM assets
WHERE {_VISIBLE_MEMBER_WHERE}
GROUP BY camera_label
ORDER BY (camera_label IS NOT NULL) DESC, camera_label COLLATE NOCASE ASC"""
    return [
        CameraSection(label, count)
        for label, count in conn.execute(query, (collection_id,))
        if count > 0
    ]


def list_collection_camera_section_page(
    conn: sqlite3.Connection,
    collection_id: int,
    label: str | None,
    limit: int,
    offset: int,
) -> list[ReviewGridRow]:
    """Return one page of a camera bucket; label None selects the unknown camera."""
    _require_collection(conn, collection_id)
    _check_page("list collection camera section page", limit, offset)
    if label is None:
        return _page(conn, "AND camera_label IS NULL", [collection_id, limit, offset])
    return _page(conn, "AND camera_label = ?", [collection_id, label, limit, offset])