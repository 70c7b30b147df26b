"""Asset rows: lookup, insertion and per-asset metadata updates."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from photolib.camera import camera_label_from_parts, normalize_camera_field
from photolib.db import StoreError


@dataclass(frozen=True)
class AssetRecord:
    """Identity and capture time of one asset row."""

    id: int
    content_hash: str
    rel_path: str
    capture_time_unix: int


def asset_row_by_content_hash(conn: sqlite3.Connection, content_hash: str) -> AssetRecord | None:
    """Return the asset with the given content hash, or None."""
    row = conn.execute(
        "SELECT id, rel_path, capture_time_unix FROM assets WHERE content_hash = ? LIMIT 1",
        (content_hash,),
    ).fetchone()
    if row is None:
        return None
    asset_id, rel_path, capture = row
    return AssetRecord(asset_id, content_hash, rel_path, capture)


def asset_id_by_content_hash(conn: sqlite3.Connection, content_hash: str) -> int | None:
    """Return the primary key of the asset with the given content hash, or None."""
    record = asset_row_by_content_hash(conn, content_hash)
    return None if record is None else record.id


def find_asset_by_content_hash(conn: sqlite3.Connection, content_hash: str) -> bool:
    """Report whether an asset row exists for the given SHA-256 hex digest."""
    return asset_id_by_content_hash(conn, content_hash) is not None


def insert_asset(
    conn: sqlite3.Connection,
    content_hash: str,
    rel_path: str,
    capture_time_unix: int,
    created_at_unix: int,
    camera_make: str = "",
    camera_model: str = "",
) -> int:
    """Insert a new active asset row and return its id.

    Blank camera fields are stored as NULL; the camera label is derived from make and model.
    """
    make = normalize_camera_field(camera_make) or None
    model = normalize_camera_field(camera_model) or None
    label = camera_label_from_parts(camera_make, camera_model)
    with conn:
        cur = conn.execute(
            """
INSERT INTO assets (content_hash, rel_path, capture_time_unix, created_at_unix, camera_make, camera_model, camera_label)
VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (content_hash, rel_path, capture_time_unix, created_at_unix, make, model, label),
        )
    return cur.lastrowid


def asset_rel_path_content_hash_by_id(
    conn: sqlite3.Connection, asset_id: int
) -> tuple[str, str] | None:
    """Return (rel_path, content_hash) for an active asset, or None."""
    row = conn.execute(
        """
SELECT rel_path, content_hash
FROM assets
WHERE id = ? AND deleted_at_unix IS NULL
LIMIT 1""",
        (asset_id,),
    ).fetchone()
    return None if row is None else (row[0], row[1])


def active_asset_by_rel_path(conn: sqlite3.Connection, rel_path: str) -> AssetRecord | None:
    """Return the active (non-deleted) asset at rel_path, or None."""
    row = conn.execute(
        """
SELECT id, content_hash, capture_time_unix
FROM assets
WHERE rel_path = ? AND deleted_at_unix IS NULL
LIMIT 1""",
        (rel_path,),
    ).fetchone()
    if row is None:
        return None
    asset_id, content_hash, capture = row
    return AssetRecord(asset_id, content_hash, rel_path, capture)


def update_asset_capture_time(conn: sqlite3.Connection, asset_id: int, capture_unix: int) -> None:
    """Set capture_time_unix for an active asset; raise StoreError if no row changed."""
    with conn:
        cur = conn.execute(
            "UPDATE assets SET capture_time_unix = ? WHERE id = ? AND deleted_at_unix IS NULL",
            (capture_unix, asset_id),
        )
    if cur.rowcount == 0:
        raise StoreError(f"update asset capture_time: no row updated for id {asset_id}")


def update_asset_rating(conn: sqlite3.Connection, asset_id: int, rating: int) -> None:
    """Set the 1..5 star rating of an active asset."""
    if not 1 <= rating <= 5:
        raise ValueError(f"update asset rating: rating must be 1..5, got {rating}")
    with conn:
        cur = conn.execute(
            "UPDATE assets SET rating = ? WHERE id = ? AND deleted_at_unix IS NULL",
            (rating, asset_id),
        )
    if cur.rowcount == 0:
        raise StoreError(f"update asset rating: no active row updated for id {asset_id}")