"""Review grid queries: filters, counts and paged listings of visible or rejected assets."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

# Default Review visibility: rejected hidden, soft-deletes excluded.
REVIEW_BROWSE_BASE_WHERE = "rejected = 0 AND deleted_at_unix IS NULL"

# The Rejected/Hidden bucket: rejected but not soft-deleted.
REVIEW_REJECTED_BASE_WHERE = "rejected = 1 AND deleted_at_unix IS NULL"

GRID_COLUMNS = "id, rel_path, content_hash, capture_time_unix, rejected, rating, mime, width, height"

_ID_CHUNK = 400


@dataclass(frozen=True)
class ReviewFilters:
    """Optional narrowing of the Review grid by collection, minimum rating and tag."""

    collection_id: int | None = None
    min_rating: int | None = None
    tag_id: int | None = None

    def validate(self) -> None:
        """Raise ValueError when a filter value is out of range."""
        if self.min_rating is not None and not 1 <= self.min_rating <= 5:
            raise ValueError(f"review filters: min rating must be 1..5, got {self.min_rating}")


@dataclass(frozen=True)
class ReviewGridRow:
    """The row shape shown in a Review thumbnail cell."""

    id: int
    rel_path: str
    content_hash: str
    capture_time_unix: int
    rejected: int
    rating: int | None = None
    mime: str = ""
    width: int = 0
    height: int = 0


def _grid_row(row: Sequence) -> ReviewGridRow:
    asset_id, rel_path, content_hash, capture, rejected, rating, mime, width, height = row
    return ReviewGridRow(
        id=asset_id,
        rel_path=rel_path,
        content_hash=content_hash,
        capture_time_unix=capture,
        rejected=rejected,
        rating=None if rating is None else int(rating),
        mime=mime or "",
        width=0 if width is None else int(width),
        height=0 if height is None else int(height),
    )


def stable_dedupe_asset_ids(ids: Iterable[int]) -> list[int]:
    """Drop non-positive and repeated ids, keeping first-seen order."""
    seen: set[int] = set()
    out: list[int] = []
    for asset_id in ids:
        if asset_id <= 0 or asset_id in seen:
            continue
        seen.add(asset_id)
        out.append(asset_id)
    return out


def review_filter_where_suffix(filters: ReviewFilters) -> tuple[str, list[int]]:
    """Return the ``AND ...`` SQL suffix and its bound arguments for the filters.

    Argument order is fixed: collection id, minimum rating, tag id.
    """
    filters.validate()
    suffix = ""
    args: list[int] = []
    if filters.collection_id is not None:
        suffix += """
 AND EXISTS (
    SELECT 1 FROM asset_collections ac
    WHERE ac.asset_id = assets.id AND ac.collection_id = ?
  )"""
        args.append(filters.collection_id)
    if filters.min_rating is not None:
        suffix += " AND rating IS NOT NULL AND rating >= ?"
        args.append(filters.min_rating)
    if filters.tag_id is not None:
        suffix += """
 AND EXISTS (
    SELECT 1 FROM asset_tags at
    WHERE at.asset_id = assets.id AND at.tag_id = ?
  )"""
        args.append(filters.tag_id)
    return suffix, args


def _check_page(what: str, limit: int, offset: int) -> None:
    if limit < 1:
        raise ValueError(f"{what}: limit must be >= 1")
    if offset < 0:
        raise ValueError(f"{what}: offset must be >= 0")


def _count(conn: sqlite3.Connection, base: str, filters: ReviewFilters) -> int:
    suffix, args = review_filter_where_suffix(filters)
    (n,) = conn.execute(f"SELECT COUNT(*) FROM assets WHERE {base}{suffix}", args).fetchone()
    return int(n)


def _list_page(
    conn: sqlite3.Connection, base: str, filters: ReviewFilters, limit: int, offset: int
) -> list[ReviewGridRow]:
    suffix, args = review_filter_where_suffix(filters)
    query = f"""
SELECT {GRID_COLUMNS}
FROM assets
WHERE {base}{suffix}
ORDER BY capture_time_unix DESC, id DESC
LIMIT ? OFFSET ?"""
    return [_grid_row(r) for r in conn.execute(query, [*args, limit, offset])]


def count_assets_for_review(conn: sqlite3.Connection, filters: ReviewFilters) -> int:
    """Count active, non-rejected assets matching the filters."""
    return _count(conn, REVIEW_BROWSE_BASE_WHERE, filters)


def list_assets_for_review(
    conn: sqlite3.Connection, filters: ReviewFilters, limit: int, offset: int
) -> list[ReviewGridRow]:
    """Return one page of the Review grid, newest capture first."""
    _check_page("list assets for review", limit, offset)
    return _list_page(conn, REVIEW_BROWSE_BASE_WHERE, filters, limit, offset)


def list_asset_ids_for_review(conn: sqlite3.Connection, filters: ReviewFilters) -> list[int]:
    """Return every asset id matching the Review grid, in grid order."""
    suffix, args = review_filter_where_suffix(filters)
    query = f"""
SELECT id FROM assets
WHERE {REVIEW_BROWSE_BASE_WHERE}{suffix}
ORDER BY capture_time_unix DESC, id DESC"""
    return [row[0] for row in conn.execute(query, args)]


def list_review_grid_rows_by_ids_in_order(
    conn: sqlite3.Connection, ordered_ids: Iterable[int]
) -> list[ReviewGridRow]:
    """Load grid rows for the ids in first-seen order, skipping ids with no row."""
    order = stable_dedupe_asset_ids(ordered_ids)
    found: dict[int, ReviewGridRow] = {}
    for start in range(0, len(order), _ID_CHUNK):
        part = order[start : start + _ID_CHUNK]
        placeholders = ",".join("?" * len(part))
        query = f"SELECT {GRID_COLUMNS} FROM assets WHERE id IN ({placeholders})"
        for row in conn.execute(query, part):
            grid = _grid_row(row)
            found[grid.id] = grid
    return [found[i] for i in order if i in found]


def count_rejected_for_review(conn: sqlite3.Connection, filters: ReviewFilters) -> int:
    """Count rejected, non-deleted assets matching the filters."""
    return _count(conn, REVIEW_REJECTED_BASE_WHERE, filters)


def list_rejected_for_review(
    conn: sqlite3.Connection, filters: ReviewFilters, limit: int, offset: int
) -> list[ReviewGridRow]:
    """Return one page of rejected assets, newest capture first."""
    _check_page("list rejected for review", limit, offset)
    return _list_page(conn, REVIEW_REJECTED_BASE_WHERE, filters, limit, offset)