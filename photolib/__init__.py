"""SQLite-backed photo library store: assets, review queries, tags, collections, trash and share links."""

__version__ = "0.1.0"

__all__ = [
    "assets",
    "camera",
    "collection_detail",
    "collections",
    "db",
    "reject",
    "review",
    "share",
    "tags",
    "trash",
]