"""Tags: label normalisation, lookup and bulk linking to assets."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass

from photolib.db import StoreError

logger = logging.getLogger(__name__)

DEFAULT_BULK_CHUNK = 500


@dataclass(frozen=True)
class TagRow:
    """One row of the tags table."""

    id: int
    label: str


def normalize_tag_label(s: str) -> str:
    """Trim and collapse whitespace runs to single spaces; raise ValueError if empty."""
    label = " ".join(s.split())
    if not label:
        raise ValueError("tag label is empty")
    return label


def list_tags(conn: sqlite3.Connection) -> list[TagRow]:
    """Return every tag, sorted by label case-insensitively."""
    rows = conn.execute("SELECT id, label FROM tags ORDER BY label COLLATE NOCASE ASC")
    return [TagRow(tag_id, label) for tag_id, label in rows]


def find_tag_by_label(conn: sqlite3.Connection, raw_label: str) -> int | None:
    """Return the id of the tag with the normalised label (case-insensitive), or None."""
    label = normalize_tag_label(raw_label)
    row = conn.execute(
        "SELECT id FROM tags WHERE label = ? COLLATE NOCASE LIMIT 1", (label,)
    ).fetchone()
    return None if row is None else row[0]


def find_or_create_tag_by_label(conn: sqlite3.Connection, raw_label: str) -> int:
    """Return the id of the tag with the normalised label, creating it if needed."""
    label = normalize_tag_label(raw_label)
    with conn:
        conn.execute("INSERT OR IGNORE INTO tags (label) VALUES (?)", (label,))
        row = conn.execute(
            "SELECT id FROM tags WHERE label = ? COLLATE NOCASE LIMIT 1", (label,)
        ).fetchone()
    if row is None:
        raise StoreError(f"find or create tag: no row for {label!r}")
    return row[0]


def _dedupe_asset_ids(ids: Iterable[int]) -> list[int]:
    seen: set[int] = set()
    out: list[int] = []
    for asset_id in ids:
        if asset_id <= 0 or asset_id in seen:
            continue
        seen.add(asset_id)
        out.append(asset_id)
    return out


def _bulk(
    conn: sqlite3.Connection,
    what: str,
    verb: str,
    sql: str,
    tag_id: int,
    asset_ids: Iterable[int],
    chunk_size: int,
) -> None:
    if tag_id <= 0:
        raise ValueError(f"{what}: invalid tag id {tag_id}")
    if chunk_size < 1:
        raise ValueError(f"{what}: chunk size must be >= 1")
    ids = _dedupe_asset_ids(asset_ids)
    for start in range(0, len(ids), chunk_size):
        chunk = ids[start : start + chunk_size]
        try:
            with conn:
                conn.executemany(sql, [(aid, tag_id) for aid in chunk])
        except sqlite3.Error as exc:
            logger.error("%s chunk failed: chunk_start=%d err=%s", what, start, exc)
            if start > 0:
                raise StoreError(
                    f"bulk tag {verb}: first {start} selected assets were updated; "
                    f"remaining assets unchanged: {exc}"
                ) from exc
            raise StoreError(f"{what}: {exc}") from exc


def link_tag_to_assets(
    conn: sqlite3.Connection,
    tag_id: int,
    asset_ids: Iterable[int],
    chunk_size: int = DEFAULT_BULK_CHUNK,
) -> None:
    """Link the tag to each asset (idempotent), one transaction per chunk.

    Earlier chunks stay committed if a later chunk fails.
    """
    _bulk(
        conn,
        "link tag to assets",
        "add",
        "INSERT OR IGNORE INTO asset_tags (asset_id, tag_id) VALUES (?, ?)",
        tag_id,
        asset_ids,
        chunk_size,
    )


def unlink_tag_from_assets(
    conn: sqlite3.Connection,
    tag_id: int,
    asset_ids: Iterable[int],
    chunk_size: int = DEFAULT_BULK_CHUNK,
) -> None:
    """Remove the tag from each asset (idempotent), chunked like link_tag_to_assets."""
    _bulk(
        conn,
        "unlink tag from assets",
        "remove",
        "DELETE FROM asset_tags WHERE asset_id = ? AND tag_id = ?",
        tag_id,
        asset_ids,
        chunk_size,
    )


def list_tags_union_for_assets(conn: sqlite3.Connection, asset_ids: Iterable[int]) -> list[TagRow]:
    """Return the distinct tags linked to any of the assets, sorted by label."""
    ids = _dedupe_asset_ids(asset_ids)
    if not ids:
        return []
    placeholders = ",".join("?" * len(ids))
    query = f"""
SELECT DISTINCT t.id, t.label
FROM tags t
JOIN asset_tags at ON at.tag_id = t.id
WHERE at.asset_id IN ({placeholders})
ORDER BY t.label COLLATE NOCASE ASC"""
    return [TagRow(tag_id, label) for tag_id, label in conn.execute(query, ids)]


def foreign_key_check(conn: sqlite3.Connection) -> None:
    """Raise StoreError if PRAGMA foreign_key_check reports any violation."""
    if conn.execute("PRAGMA foreign_key_check").fetchone() is not None:
        raise StoreError("foreign_key_check: violations present")