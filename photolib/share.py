"""Share links: minting, resolving and eligibility of single-asset and package shares.

Only the SHA-256 hex digest of a share token is stored; the raw token goes back to the caller.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
import secrets
import sqlite3
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass

from photolib.db import StoreError
from photolib.review import stable_dedupe_asset_ids

# Cap on eligible assets in one package share.
PACKAGE_SHARE_MAX_ELIGIBLE_ASSETS = 500

_TOKEN_BYTES = 32
_MINT_ATTEMPTS = 8
_ID_CHUNK = 400


class ShareAssetIneligibleError(StoreError):
    """The asset is missing, rejected or soft-deleted and cannot be shared."""


class PackageTooManyAssetsError(StoreError):
    """A package would hold more eligible assets than the cap allows."""


class PackageNoEligibleAssetsError(StoreError):
    """No candidate asset of a package is eligible for sharing."""


@dataclass(frozen=True)
class ShareSnapshotPayload:
    """The JSON snapshot stored with a share link; empty fields are omitted."""

    kind: str = ""
    rating: int | None = None
    display_title: str = ""
    audience_label: str = ""

    def to_json(self) -> str:
        """Serialise compactly, leaving out empty fields."""
        data: dict[str, object] = {}
        if self.kind:
            data["kind"] = self.kind
        if self.rating is not None:
            data["rating"] = self.rating
        if self.display_title:
            data["display_title"] = self.display_title
        if self.audience_label:
            data["audience_label"] = self.audience_label
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True)
class ResolvedPackageShareLink:
    """A package share with its members in snapshot order."""

    share_link_id: int
    payload: str
    member_ids: tuple[int, ...]


@dataclass(frozen=True)
class ResolvedDefaultShareLink:
    """A single-asset share whose asset is still eligible."""

    share_link_id: int
    asset_id: int
    payload: str


def _string_field(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"share payload json: {key} must be a string")
    return value


def parse_share_snapshot_payload_json(s: str) -> ShareSnapshotPayload:
    """Parse a stored payload; blank input gives an empty payload, bad JSON raises ValueError.

    Unknown keys are ignored.
    """
    if not s.strip():
        return ShareSnapshotPayload()
    try:
        data = json.loads(s)
    except json.JSONDecodeError as exc:
        raise ValueError(f"share payload json: {exc}") from exc
    if data is None:
        return ShareSnapshotPayload()
    if not isinstance(data, dict):
        raise ValueError("share payload json: expected an object")
    rating = data.get("rating")
    if rating is not None and (isinstance(rating, bool) or not isinstance(rating, int)):
        raise ValueError("share payload json: rating must be an integer")
    return ShareSnapshotPayload(
        kind=_string_field(data, "kind"),
        rating=rating,
        display_title=_string_field(data, "display_title"),
        audience_label=_string_field(data, "audience_label"),
    )


def token_hash(raw_token: str) -> str:
    """Return the lowercase hex SHA-256 of a raw share token."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def is_unique_token_hash_error(err: BaseException | None) -> bool:
    """Report whether an error is a unique-constraint failure on token_hash."""
    if err is None:
        return False
    text = str(err).lower()
    return "unique constraint" in text and "token_hash" in text


@contextmanager
def _transaction(conn: sqlite3.Connection) -> Iterator[None]:
    conn.execute("BEGIN")
    try:
        yield
    except BaseException:
        conn.rollback()
        raise
    else:
        conn.commit()


def _eligible(conn: sqlite3.Connection, asset_id: int) -> bool:
    row = conn.execute(
        "SELECT rejected, deleted_at_unix FROM assets WHERE id = ?", (asset_id,)
    ).fetchone()
    if row is None:
        return False
    rejected, deleted = row
    return deleted is None and rejected == 0


def _insert_link(
    conn: sqlite3.Connection,
    what: str,
    asset_id: int | None,
    created_at_unix: int,
    payload: str,
    kind: str,
) -> tuple[str, int]:
    for attempt in range(_MINT_ATTEMPTS):
        raw = secrets.token_urlsafe(_TOKEN_BYTES)
        try:
            cur = conn.execute(
                """
INSERT INTO share_links (token_hash, asset_id, created_at_unix, payload, link_kind)
VALUES (?, ?, ?, ?, ?)""",
                (token_hash(raw), asset_id, created_at_unix, payload, kind),
            )
        except sqlite3.IntegrityError as exc:
            if is_unique_token_hash_error(exc) and attempt + 1 < _MINT_ATTEMPTS:
                continue
            raise StoreError(f"{what} insert: {exc}") from exc
        except sqlite3.Error as exc:
            raise StoreError(f"{what} insert: {exc}") from exc
        return raw, cur.lastrowid
    raise StoreError(f"{what}: exhausted token hash retries")


def mint_default_share_link(
    conn: sqlite3.Connection, asset_id: int, created_at_unix: int
) -> tuple[str, int]:
    """Create a single-asset share link and return (raw token, share link id).

    Eligibility is re-checked inside the transaction.
    """
    if asset_id <= 0:
        raise ValueError("share mint: invalid asset id")
    if created_at_unix <= 0:
        raise ValueError("share mint: invalid created time")
    with _transaction(conn):
        if not _eligible(conn, asset_id):
            raise ShareAssetIneligibleError("share mint: asset not eligible for default share")
        (rating,) = conn.execute("SELECT rating FROM assets WHERE id = ?", (asset_id,)).fetchone()
        payload = ShareSnapshotPayload(rating=None if rating is None else int(rating)).to_json()
        return _insert_link(conn, "share mint", asset_id, created_at_unix, payload, "single")


def _eligible_ids(conn: sqlite3.Connection, ids: Sequence[int]) -> set[int]:
    found: set[int] = set()
    for start in range(0, len(ids), _ID_CHUNK):
        part = list(ids[start : start + _ID_CHUNK])
        placeholders = ",".join("?" * len(part))
        query = (
            f"SELECT id FROM assets WHERE id IN ({placeholders}) "
            "AND rejected = 0 AND deleted_at_unix IS NULL"
        )
        found.update(row[0] for row in conn.execute(query, part))
    return found


def package_prepare_eligible_for_mint(
    conn: sqlite3.Connection, deduped_ordered: Iterable[int]
) -> list[int]:
    """Keep the eligible candidates in order.

    Raises PackageNoEligibleAssetsError when candidates were given but none is eligible,
    and PackageTooManyAssetsError when the eligible set exceeds the cap.
    """
    candidates = list(deduped_ordered)
    if not candidates:
        return []
    eligible = _eligible_ids(conn, candidates)
    out = [asset_id for asset_id in candidates if asset_id in eligible]
    if not out:
        raise PackageNoEligibleAssetsError("share package mint: no eligible assets")
    if len(out) > PACKAGE_SHARE_MAX_ELIGIBLE_ASSETS:
        raise PackageTooManyAssetsError("share package mint: too many eligible assets")
    return out


def mint_package_share_link(
    conn: sqlite3.Connection,
    eligible_ordered: Iterable[int],
    created_at_unix: int,
    payload: ShareSnapshotPayload | None = None,
) -> tuple[str, int]:
    """Create a package share with ordered members and return (raw token, share link id).

    Every member is re-checked for eligibility inside the transaction.
    """
    if created_at_unix <= 0:
        raise ValueError("share package mint: invalid created time")
    members = stable_dedupe_asset_ids(eligible_ordered)
    if not members:
        raise PackageNoEligibleAssetsError("share package mint: no eligible assets")
    if len(members) > PACKAGE_SHARE_MAX_ELIGIBLE_ASSETS:
        raise PackageTooManyAssetsError("share package mint: too many eligible assets")
    body = dataclasses.replace(payload or ShareSnapshotPayload(), kind="package").to_json()
    with _transaction(conn):
        for asset_id in members:
            if not _eligible(conn, asset_id):
                raise ShareAssetIneligibleError(
                    "share mint: asset not eligible for default share"
                )
        raw, link_id = _insert_link(
            conn, "share package mint", None, created_at_unix, body, "package"
        )
        try:
            conn.executemany(
                "INSERT INTO share_link_members (share_link_id, position, asset_id) VALUES (?, ?, ?)",
                [(link_id, pos, aid) for pos, aid in enumerate(members)],
            )
        except sqlite3.Error as exc:
            raise StoreError(f"share package mint member: {exc}") from exc
        return raw, link_id


def resolve_package_share_link(
    conn: sqlite3.Connection, raw_token: str
) -> ResolvedPackageShareLink | None:
    """Load a package share and its snapshot members; None for unknown or single links.

    Members are not filtered by their current eligibility.
    """
    row = conn.execute(
        "SELECT id, IFNULL(payload, ''), link_kind FROM share_links WHERE token_hash = ?",
        (token_hash(raw_token),),
    ).fetchone()
    if row is None:
        return None
    link_id, payload, kind = row
    if kind != "package":
        return None
    members = conn.execute(
        "SELECT asset_id FROM share_link_members WHERE share_link_id = ? ORDER BY position ASC",
        (link_id,),
    )
    return ResolvedPackageShareLink(link_id, payload, tuple(r[0] for r in members))


def resolve_default_share_link(
    conn: sqlite3.Connection, raw_token: str
) -> ResolvedDefaultShareLink | None:
    """Return the single-asset share for the token while its asset is still eligible."""
    row = conn.execute(
        """
SELECT sl.id, sl.asset_id, IFNULL(sl.payload, '')
FROM share_links sl
JOIN assets a ON a.id = sl.asset_id
WHERE sl.token_hash = ?
  AND sl.link_kind = 'single'
  AND a.deleted_at_unix IS NULL
  AND a.rejected = 0""",
        (token_hash(raw_token),),
    ).fetchone()
    return None if row is None else ResolvedDefaultShareLink(*row)


def default_share_blocked_user_message(conn: sqlite3.Connection, asset_id: int) -> str:
    """Return why the asset cannot be shared, or an empty string when it can."""
    if asset_id <= 0:
        return "No photo is selected."
    if _eligible(conn, asset_id):
        return ""
    row = conn.execute(
        "SELECT rejected, deleted_at_unix FROM assets WHERE id = ?", (asset_id,)
    ).fetchone()
    if row is None:
        return "This photo is no longer in the library."
    rejected, deleted = row
    if deleted is not None:
        return "This photo is in library trash and can't be shared."
    if rejected != 0:
        return "Rejected photos can't be shared. Restore the photo first."
    return "This photo can't be shared."


def asset_library_file_for_share(
    conn: sqlite3.Connection, asset_id: int
) -> tuple[str, str | None] | None:
    """Return (rel_path, mime) for an eligible asset, or None."""
    if asset_id <= 0:
        return None
    row = conn.execute(
        """
SELECT rel_path, mime FROM assets
WHERE id = ?
  AND deleted_at_unix IS NULL
  AND rejected = 0""",
        (asset_id,),
    ).fetchone()
    if row is None or not row[0]:
        return None
    return row[0], row[1]


def count_share_links(conn: sqlite3.Connection) -> int:
    """Return the number of share_links rows."""
    (n,) = conn.execute("SELECT COUNT(*) FROM share_links").fetchone()
    return int(n)