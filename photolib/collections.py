"""Collections (albums): creation, editing, membership and listing."""

from __future__ import annotations

import re
import sqlite3
import time
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime

from photolib.db import StoreError
from photolib.review import REVIEW_BROWSE_BASE_WHERE

_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


class CollectionNotFoundError(StoreError):
    """Raised when a collection id has no row."""


@dataclass(frozen=True)
class CollectionRow:
    """A lightweight collection row for filter lists."""

    id: int
    name: str


@dataclass(frozen=True)
class CollectionAlbumListRow:
    """A collection plus an optional cover asset; cover_asset_id is 0 when there is none."""

    id: int
    name: str
    cover_asset_id: int = 0
    cover_rel_path: str = ""
    cover_content_hash: str = ""


@dataclass(frozen=True)
class CollectionDetail:
    """A full collections row for edit surfaces."""

    id: int
    name: str
    display_date: str
    created_at_unix: int


def _validate_display_date(what: str, value: str) -> None:
    if not _ISO_DATE.fullmatch(value):
        raise ValueError(f"{what}: display date must be YYYY-MM-DD: got {value!r}")
    try:
        date.fromisoformat(value)
    except ValueError as exc:
        raise ValueError(f"{what}: display date must be YYYY-MM-DD: {exc}") from exc


def _normalize_new_fields(name: str, display_date: str) -> tuple[str, str]:
    name = name.strip()
    if not name:
        raise ValueError("create collection: name is required")
    dd = display_date.strip()
    if not dd:
        dd = date.today().isoformat()
    else:
        _validate_display_date("create collection", dd)
    return name, dd


def _normalize_update_fields(name: str, display_date: str, created_at_unix: int) -> tuple[str, str]:
    name = name.strip()
    if not name:
        raise ValueError("update collection: name is required")
    dd = display_date.strip()
    if not dd:
        # A cleared date falls back to the local calendar day the collection was created.
        dd = datetime.fromtimestamp(created_at_unix).strftime("%Y-%m-%d")
    else:
        _validate_display_date("update collection", dd)
    return name, dd


def list_collections(conn: sqlite3.Connection) -> list[CollectionRow]:
    """Return every collection sorted by name, case-insensitively."""
    rows = conn.execute("SELECT id, name FROM collections ORDER BY name COLLATE NOCASE")
    return [CollectionRow(cid, name) for cid, name in rows]


def list_collection_album_list_rows(conn: sqlite3.Connection) -> list[CollectionAlbumListRow]:
    """Return every collection by name, each with its newest visible member as cover."""
    query = f"""
WITH cover AS (
  SELECT ac.collection_id,
         a.id AS asset_id,
         a.rel_path AS rel_path,
         a.content_hash AS content_hash,
         ROW_NUMBER() OVER (
           PARTITION BY ac.collection_id
           ORDER BY a.capture_time_unix DESC, a.id DESC
         ) AS rn
  FROM asset_collections ac
  INNER JOIN assets a ON a.id = ac.asset_id
  WHERE {REVIEW_BROWSE_BASE_WHERE}
)
SELECT c.id, c.name,
       cover.asset_id, cover.rel_path, cover.content_hash
FROM collections c
LEFT JOIN cover ON cover.collection_id = c.id AND cover.rn = 1
ORDER BY c.name COLLATE NOCASE"""
    out: list[CollectionAlbumListRow] = []
    for cid, name, asset_id, rel_path, content_hash in conn.execute(query):
        if asset_id is None:
            out.append(CollectionAlbumListRow(cid, name))
        else:
            out.append(
                CollectionAlbumListRow(cid, name, asset_id, rel_path or "", content_hash or "")
            )
    return out


def get_collection(conn: sqlite3.Connection, collection_id: int) -> CollectionDetail:
    """Load one collection; raise CollectionNotFoundError when it is missing."""
    row = conn.execute(
        "SELECT id, name, display_date, created_at_unix FROM collections WHERE id = ?",
        (collection_id,),
    ).fetchone()
    if row is None:
        raise CollectionNotFoundError(f"get collection {collection_id}: collection not found")
    return CollectionDetail(*row)


def update_collection(
    conn: sqlite3.Connection, collection_id: int, name: str, display_date: str = ""
) -> None:
    """Set name and display date.

    An empty display date is recomputed from the row's creation time in local time.
    """
    row = conn.execute(
        "SELECT created_at_unix FROM collections WHERE id = ?", (collection_id,)
    ).fetchone()
    if row is None:
        raise CollectionNotFoundError(f"update collection {collection_id}: collection not found")
    name, dd = _normalize_update_fields(name, display_date, row[0])
    try:
        with conn:
            cur = conn.execute(
                "UPDATE collections SET name = ?, display_date = ? WHERE id = ?",
                (name, dd, collection_id),
            )
    except sqlite3.Error as exc:
        raise StoreError(f"update collection {collection_id}: {exc}") from exc
    if cur.rowcount == 0:
        raise CollectionNotFoundError(f"update collection {collection_id}: collection not found")


def list_collection_ids_for_asset(conn: sqlite3.Connection, asset_id: int) -> list[int]:
    """Return ids of the collections holding the asset, ordered by name then id."""
    rows = conn.execute(
        """
SELECT c.id FROM collections c
INNER JOIN asset_collections ac ON ac.collection_id = c.id AND ac.asset_id = ?
ORDER BY c.name COLLATE NOCASE, c.id""",
        (asset_id,),
    )
    return [row[0] for row in rows]


def unlink_asset_from_collection(
    conn: sqlite3.Connection, asset_id: int, collection_id: int
) -> None:
    """Remove the asset from the collection; a missing link is not an error."""
    try:
        with conn:
            conn.execute(
                "DELETE FROM asset_collections WHERE asset_id = ? AND collection_id = ?",
                (asset_id, collection_id),
            )
    except sqlite3.Error as exc:
        raise StoreError(
            f"unlink asset {asset_id} from collection {collection_id}: {exc}"
        ) from exc


def _insert_collection(conn: sqlite3.Connection, name: str, display_date: str) -> int:
    try:
        cur = conn.execute(
            "INSERT INTO collections (name, display_date, created_at_unix) VALUES (?, ?, ?)",
            (name, display_date, int(time.time())),
        )
    except sqlite3.Error as exc:
        raise StoreError(f"create collection: {exc}") from exc
    return cur.lastrowid


def _link_assets(conn: sqlite3.Connection, collection_id: int, asset_ids: list[int]) -> None:
    now = int(time.time())
    for aid in asset_ids:
        try:
            conn.execute(
                """
INSERT INTO asset_collections (asset_id, collection_id, created_at_unix) VALUES (?, ?, ?)
ON CONFLICT(asset_id, collection_id) DO NOTHING""",
                (aid, collection_id, now),
            )
        except sqlite3.Error as exc:
            raise StoreError(f"link asset {aid} to collection {collection_id}: {exc}") from exc


def create_collection(conn: sqlite3.Connection, name: str, display_date: str = "") -> int:
    """Insert a collection and return its id.

    An empty display date defaults to today's local date; otherwise it must be YYYY-MM-DD.
    """
    name, dd = _normalize_new_fields(name, display_date)
    with conn:
        return _insert_collection(conn, name, dd)


def create_collection_and_link_assets(
    conn: sqlite3.Connection, name: str, display_date: str, asset_ids: Iterable[int]
) -> int:
    """Insert a collection and link assets in one transaction; nothing persists on failure."""
    name, dd = _normalize_new_fields(name, display_date)
    ids = list(asset_ids)
    with conn:
        collection_id = _insert_collection(conn, name, dd)
        _link_assets(conn, collection_id, ids)
    return collection_id


def link_assets_to_collection(
    conn: sqlite3.Connection, collection_id: int, asset_ids: Iterable[int]
) -> None:
    """Link each asset to the collection in one transaction.

    Existing and repeated links are skipped; any failure rolls back every link.
    An empty batch does nothing and does not check the collection.
    """
    ids = list(asset_ids)
    if not ids:
        return
    with conn:
        _link_assets(conn, collection_id, ids)


def delete_collection(conn: sqlite3.Connection, collection_id: int) -> None:
    """Delete the collection; memberships go with it by cascade."""
    try:
        with conn:
            cur = conn.execute("DELETE FROM collections WHERE id = ?", (collection_id,))
    except sqlite3.Error as exc:
        raise StoreError(f"delete collection {collection_id}: {exc}") from exc
    if cur.rowcount == 0:
        raise CollectionNotFoundError(f"delete collection {collection_id}: collection not found")