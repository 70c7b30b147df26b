"""Opening the library database and applying its schema migrations."""

from __future__ import annotations

import os
import sqlite3
from pathlib import Path

TARGET_SCHEMA_VERSION = 7

METADATA_DIR_NAME = ".phototool"
DATABASE_FILE_NAME = "library.sqlite"


class StoreError(Exception):
    """Raised when the library store cannot satisfy a request."""


_MIGRATIONS: dict[int, str] = {
    1: """
-- Core asset table and schema bookkeeping.
CREATE TABLE IF NOT EXISTS schema_meta (
  singleton INTEGER PRIMARY KEY CHECK (singleton = 1),
  version INTEGER NOT NULL
);
CREATE TABLE assets (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  content_hash TEXT NOT NULL,
  rel_path TEXT NOT NULL,
  capture_time_unix INTEGER NOT NULL,
  created_at_unix INTEGER NOT NULL,
  rejected INTEGER NOT NULL DEFAULT 0 CHECK (rejected IN (0, 1)),
  rejected_at_unix INTEGER,
  deleted_at_unix INTEGER,
  mime TEXT,
  width INTEGER,
  height INTEGER
);
CREATE INDEX idx_assets_content_hash ON assets (content_hash);
CREATE UNIQUE INDEX idx_assets_rel_path_active ON assets (rel_path) WHERE deleted_at_unix IS NULL;
CREATE INDEX idx_assets_capture_time ON assets (capture_time_unix);
""",
    2: """
-- Collections and asset membership.
CREATE TABLE collections (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  display_date TEXT NOT NULL,
  created_at_unix INTEGER NOT NULL
);
CREATE TABLE asset_collections (
  asset_id INTEGER NOT NULL REFERENCES assets (id) ON DELETE CASCADE,
  collection_id INTEGER NOT NULL REFERENCES collections (id) ON DELETE CASCADE,
  created_at_unix INTEGER NOT NULL,
  PRIMARY KEY (asset_id, collection_id)
);
CREATE INDEX idx_asset_collections_collection ON asset_collections (collection_id);
""",
    3: """
-- Star ratings for review filters.
ALTER TABLE assets ADD COLUMN rating INTEGER CHECK (rating IS NULL OR (rating >= 1 AND rating <= 5));
CREATE INDEX idx_assets_review ON assets (rejected, deleted_at_unix, rating);
""",
    4: """
-- Free-form tags.
CREATE TABLE tags (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  label TEXT NOT NULL COLLATE NOCASE UNIQUE
);
CREATE TABLE asset_tags (
  asset_id INTEGER NOT NULL REFERENCES assets (id) ON DELETE CASCADE,
  tag_id INTEGER NOT NULL REFERENCES tags (id) ON DELETE CASCADE,
  PRIMARY KEY (asset_id, tag_id)
);
CREATE INDEX idx_asset_tags_tag ON asset_tags (tag_id);
""",
    5: """
-- Camera metadata from EXIF.
ALTER TABLE assets ADD COLUMN camera_make TEXT;
ALTER TABLE assets ADD COLUMN camera_model TEXT;
ALTER TABLE assets ADD COLUMN camera_label TEXT;
CREATE INDEX idx_assets_camera_label ON assets (camera_label);
""",
    6: """
-- Single-asset share links; only the token hash is stored.
CREATE TABLE share_links (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  token_hash TEXT NOT NULL UNIQUE,
  asset_id INTEGER REFERENCES assets (id) ON DELETE CASCADE,
  created_at_unix INTEGER NOT NULL,
  payload TEXT
);
CREATE INDEX idx_share_links_asset ON share_links (asset_id);
""",
    7: """
-- Package share links with ordered snapshot members.
ALTER TABLE share_links ADD COLUMN link_kind TEXT NOT NULL DEFAULT 'single' CHECK (link_kind IN ('single', 'package'));
CREATE TABLE share_link_members (
  share_link_id INTEGER NOT NULL REFERENCES share_links (id) ON DELETE CASCADE,
  position INTEGER NOT NULL,
  asset_id INTEGER NOT NULL REFERENCES assets (id) ON DELETE CASCADE,
  PRIMARY KEY (share_link_id, position)
);
CREATE INDEX idx_share_link_members_asset ON share_link_members (asset_id);
""",
}


def split_sql_statements(sql_text: str) -> list[str]:
    """Split a migration script into statements, dropping blank and ``--`` comment lines."""
    kept = "".join(
        line + "\n"
        for line in sql_text.split("\n")
        if line.strip() and not line.strip().startswith("--")
    )
    chunk = kept.strip()
    if not chunk:
        return []
    return [part.strip() for part in chunk.split(";") if part.strip()]


def current_version(conn: sqlite3.Connection) -> int:
    """Return the schema version: -1 without a schema_meta table, 0 when it has no row."""
    (tables,) = conn.execute(
        "SELECT COUNT(*) FROM sqlite_master WHERE type = 'table' AND name = 'schema_meta'"
    ).fetchone()
    if tables == 0:
        return -1
    row = conn.execute("SELECT version FROM schema_meta WHERE singleton = 1").fetchone()
    return 0 if row is None else int(row[0])


def apply_migration(conn: sqlite3.Connection, version: int) -> None:
    """Apply one numbered migration and record it in schema_meta, atomically."""
    try:
        body = _MIGRATIONS[version]
    except KeyError:
        raise StoreError(f"unknown migration {version:03d}") from None
    try:
        conn.execute("BEGIN")
        for stmt in split_sql_statements(body):
            conn.execute(stmt)
        conn.execute(
            """
INSERT INTO schema_meta (singleton, version) VALUES (1, ?)
ON CONFLICT(singleton) DO UPDATE SET version = excluded.version""",
            (version,),
        )
        conn.commit()
    except sqlite3.Error as exc:
        conn.rollback()
        raise StoreError(f"migration {version:03d}: {exc}") from exc


def migrate(conn: sqlite3.Connection) -> None:
    """Apply every pending migration up to TARGET_SCHEMA_VERSION."""
    while (version := current_version(conn)) < TARGET_SCHEMA_VERSION:
        apply_migration(conn, max(version, 0) + 1)


def open_library(library_root: str | os.PathLike[str]) -> sqlite3.Connection:
    """Open (or create) the library database under ``library_root/.phototool`` and migrate it.

    The metadata directory must already exist.
    """
    if not os.fspath(library_root):
        raise StoreError("library root is empty")
    meta_dir = Path(library_root) / METADATA_DIR_NAME
    if not meta_dir.exists():
        raise StoreError(f"library metadata dir {str(meta_dir)!r} does not exist")
    if not meta_dir.is_dir():
        raise StoreError(f"library metadata path {str(meta_dir)!r} is not a directory")
    db_path = meta_dir / DATABASE_FILE_NAME
    try:
        conn = sqlite3.connect(db_path, timeout=5.0)
    except sqlite3.Error as exc:
        raise StoreError(f"open sqlite {str(db_path)!r}: {exc}") from exc
    try:
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA busy_timeout = 5000")
        migrate(conn)
    except BaseException:
        conn.close()
        raise
    return conn