"""Moving asset files into the library trash and soft-deleting their rows."""

from __future__ import annotations

import logging
import os
import sqlite3

from photolib.db import StoreError

logger = logging.getLogger(__name__)

TRASH_DIR_NAME = ".trash"
_MAX_SUFFIX = 10000


def asset_primary_path(library_root: str | os.PathLike[str], rel_path: str) -> str:
    """Resolve rel_path under library_root, rejecting the root itself and escapes."""
    root = os.path.normpath(os.fspath(library_root))
    native = rel_path.replace("/", os.sep).lstrip(os.sep)
    clean = os.path.normpath(os.path.join(root, native))
    try:
        rel = os.path.relpath(clean, root)
    except ValueError as exc:
        raise StoreError(f"asset path: {exc}") from exc
    if rel == ".":
        raise StoreError("asset path resolves to library root")
    if rel == ".." or rel.startswith(".." + os.sep):
        raise StoreError("asset path escapes library root")
    return clean


def _split_ext(base: str) -> tuple[str, str]:
    dot = base.rfind(".")
    if dot < 0:
        return base, ""
    return base[:dot], base[dot:]


def _exists(path: str) -> bool:
    try:
        os.stat(path)
    except FileNotFoundError:
        return False
    return True


def _quarantine_destination(quarantine_dir: str, base: str) -> str:
    candidate = os.path.join(quarantine_dir, base)
    if not _exists(candidate):
        return candidate
    stem, ext = _split_ext(base)
    for i in range(1, _MAX_SUFFIX):
        candidate = os.path.join(quarantine_dir, f"{stem}_{i}{ext}")
        if not _exists(candidate):
            logger.warning(
                "delete: quarantine basename collision, using suffix base=%s chosen=%s",
                base,
                os.path.basename(candidate),
            )
            return candidate
    raise StoreError(f"quarantine: no free filename for {base!r}")


def _base_name(rel_path: str) -> str:
    stripped = rel_path.replace("/", os.sep).rstrip(os.sep)
    if not stripped:
        return os.sep if rel_path else "."
    return os.path.basename(stripped)


def delete_asset_to_trash(
    conn: sqlite3.Connection,
    library_root: str | os.PathLike[str],
    asset_id: int,
    deleted_at_unix: int,
) -> bool:
    """Move an asset's file into ``.trash/<id>/`` and soft-delete its row.

    Returns False for an unknown id or an already-deleted row. A missing primary
    file still soft-deletes the row.
    """
    row = conn.execute(
        "SELECT rel_path, deleted_at_unix FROM assets WHERE id = ?", (asset_id,)
    ).fetchone()
    if row is None:
        return False
    rel_path, deleted = row
    if deleted is not None:
        return False

    try:
        abs_src = asset_primary_path(library_root, rel_path)
    except StoreError as exc:
        raise StoreError(f"delete asset path: {exc}") from exc

    quarantine_dir = os.path.join(os.fspath(library_root), TRASH_DIR_NAME, str(asset_id))
    try:
        os.makedirs(quarantine_dir, mode=0o755, exist_ok=True)
    except OSError as exc:
        raise StoreError(f"delete mkdir quarantine: {exc}") from exc

    base = _base_name(rel_path)
    if not rel_path or base == ".":
        raise StoreError(f"delete: invalid rel_path {rel_path!r}")

    quarantine_file: str | None = None
    try:
        os.stat(abs_src)
    except FileNotFoundError:
        logger.warning(
            "delete: primary file missing, soft-delete only asset_id=%d path=%s", asset_id, abs_src
        )
    except OSError as exc:
        raise StoreError(f"delete stat source: {exc}") from exc
    else:
        dest = _quarantine_destination(quarantine_dir, base)
        try:
            os.rename(abs_src, dest)
        except OSError as exc:
            raise StoreError(f"delete quarantine rename: {exc}") from exc
        quarantine_file = dest

    try:
        with conn:
            cur = conn.execute(
                "UPDATE assets SET deleted_at_unix = ? WHERE id = ? AND deleted_at_unix IS NULL",
                (deleted_at_unix, asset_id),
            )
    except sqlite3.Error as exc:
        if quarantine_file is not None:
            logger.error(
                "delete: file moved to quarantine but DB update failed "
                "asset_id=%d src=%s quarantine_file=%s quarantine_dir=%s",
                asset_id,
                abs_src,
                quarantine_file,
                quarantine_dir,
            )
        raise StoreError(f"delete asset update: {exc}") from exc

    if cur.rowcount == 0:
        if quarantine_file is not None:
            logger.error(
                "delete: quarantine rename succeeded but row not marked deleted "
                "asset_id=%d quarantine_file=%s quarantine_dir=%s",
                asset_id,
                quarantine_file,
                quarantine_dir,
            )
            raise StoreError(
                f"delete: lost update for asset {asset_id} after quarantine (check .trash)"
            )
        return False
    return True