"""Reject / restore flags and default-share eligibility of assets."""

from __future__ import annotations

import sqlite3


def reject_asset(conn: sqlite3.Connection, asset_id: int, rejected_at_unix: int) -> bool:
    """Mark an active, non-rejected asset as rejected.

    Returns False when the row is missing, soft-deleted or already rejected.
    """
    with conn:
        cur = conn.execute(
            """
UPDATE assets SET rejected = 1, rejected_at_unix = ?
WHERE id = ? AND deleted_at_unix IS NULL AND rejected = 0""",
            (rejected_at_unix, asset_id),
        )
    return cur.rowcount > 0


def restore_asset(conn: sqlite3.Connection, asset_id: int) -> bool:
    """Clear the reject flags of an active, rejected asset.

    Returns False when the row is missing, soft-deleted or not rejected.
    """
    with conn:
        cur = conn.execute(
            """
UPDATE assets SET rejected = 0, rejected_at_unix = NULL
WHERE id = ? AND deleted_at_unix IS NULL AND rejected = 1""",
            (asset_id,),
        )
    return cur.rowcount > 0


def asset_eligible_for_default_share(conn: sqlite3.Connection, asset_id: int) -> bool:
    """Report whether an asset exists and is neither rejected nor soft-deleted."""
    row = conn.execute(
        "SELECT rejected, deleted_at_unix FROM assets WHERE id = ?", (asset_id,)
    ).fetchone()
    if row is None:
        return False
    rejected, deleted = row
    return deleted is None and rejected == 0