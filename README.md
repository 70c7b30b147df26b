# photolib

A storage layer for a personal photo library. It keeps its data in one
SQLite file at `<library>/.phototool/library.sqlite`. The schema carries a
version number, and the library upgrades it when you open it. The package
uses only the standard library and needs Python 3.10 or later.

## Modules

- `photolib.db`: `open_library(root)` opens or creates the database. It
  turns on foreign keys, sets a 5 s busy timeout and applies any pending
  migrations up to `TARGET_SCHEMA_VERSION` (7). The `.phototool` directory
  must already exist. If it is missing, `open_library` raises `StoreError`.
  The module also has `current_version`, `migrate`, `apply_migration` and
  `split_sql_statements`.
- `photolib.camera`: `normalize_camera_field` trims the text and collapses
  runs of whitespace. `camera_label_from_parts(make, model)` builds the
  camera grouping label. It returns `None` when both parts are blank.
- `photolib.assets`:
  - `insert_asset` returns the new row id and stores blank camera fields
    as NULL.
  - Lookups: `asset_row_by_content_hash` and `active_asset_by_rel_path`
    return an `AssetRecord` or `None`. There are also
    `asset_id_by_content_hash`, `find_asset_by_content_hash` and
    `asset_rel_path_content_hash_by_id`.
  - `update_asset_capture_time` and `update_asset_rating` change a row.
    The rating must be 1..5, otherwise they raise `ValueError`. If no
    active row matches, they raise `StoreError`.
- `photolib.reject`: `reject_asset` and `restore_asset` return `True` only
  when they changed the row. `asset_eligible_for_default_share` is also
  here.
- `photolib.review`:
  - `ReviewFilters(collection_id, min_rating, tag_id)` narrows a listing.
  - `count_assets_for_review` and `list_assets_for_review(conn, filters,
    limit, offset)` count and list visible assets, newest capture first.
    Visible means not rejected and not deleted.
  - `list_asset_ids_for_review` and `list_review_grid_rows_by_ids_in_order`
    return ids and rows.
  - `count_rejected_for_review` and `list_rejected_for_review` work the
    same way on rejected assets.
  - Rows are `ReviewGridRow` values.
- `photolib.tags`:
  - `normalize_tag_label`, `list_tags`, `find_tag_by_label` and
    `find_or_create_tag_by_label` handle labels. Labels match without
    regard to case.
  - `link_tag_to_assets` and `unlink_tag_from_assets` take an optional
    `chunk_size`, default 500, and commit one transaction per chunk. Some
    chunks may already be committed when a later one fails. In that case
    the `StoreError` says how many assets were already updated.
  - `list_tags_union_for_assets` and `foreign_key_check` are also here.
- `photolib.collections`:
  - `create_collection` takes a display date as `YYYY-MM-DD`. An empty
    date means today, in local time.
  - `create_collection_and_link_assets` creates and links in one
    transaction.
  - Other functions: `get_collection`, `update_collection`,
    `delete_collection`, `link_assets_to_collection`,
    `unlink_asset_from_collection`, `list_collections`,
    `list_collection_ids_for_asset` and `list_collection_album_list_rows`.
    The last returns each album with its newest visible member as cover.
  - A missing id raises `CollectionNotFoundError`.
- `photolib.collection_detail`: lists the visible members of a collection
  in sections. A section is a star rating (`StarSection`), a local calendar
  day (`DaySection`) or a camera label (`CameraSection`). Each section is
  paged on its own with the matching `list_collection_*_section_page`
  function. `collection_exists` and `count_collection_visible_assets` are
  also here.
- `photolib.trash`: `delete_asset_to_trash` moves the asset's file into
  `<library>/.trash/<id>/` and soft-deletes the row. If the name is already
  taken, it adds a `_1`, `_2`, … suffix. `asset_primary_path` resolves a
  relative path and rejects the library root itself and any path that
  escapes it.
- `photolib.share`:
  - `mint_default_share_link` and `mint_package_share_link` create links
    and return `(raw_token, link_id)`. Only `token_hash(raw_token)`, a
    SHA-256 hex digest, is stored.
  - `package_prepare_eligible_for_mint` keeps only the eligible
    candidates. A package holds at most 500 assets.
  - `resolve_default_share_link` and `resolve_package_share_link` look up
    a link from a raw token.
  - `default_share_blocked_user_message` says in plain words why an asset
    can't be shared.
  - Other functions: `asset_library_file_for_share`, `count_share_links`,
    `parse_share_snapshot_payload_json` and `is_unique_token_hash_error`.

## Usage

```python
from pathlib import Path

from photolib.db import open_library
from photolib.assets import insert_asset, update_asset_rating
from photolib.collections import create_collection, link_assets_to_collection
from photolib.review import ReviewFilters, count_assets_for_review, list_assets_for_review
from photolib.share import mint_default_share_link, resolve_default_share_link

root = Path("my-library")
(root / ".phototool").mkdir(parents=True, exist_ok=True)

conn = open_library(root)
asset_id = insert_asset(conn, "sha256-hex", "2024/01/02/a.jpg", 1704153600, 1704153600, "Canon", "EOS R8")
update_asset_rating(conn, asset_id, 4)

album = create_collection(conn, "Trip", "")
link_assets_to_collection(conn, album, [asset_id])

filters = ReviewFilters(collection_id=album, min_rating=3)
print(count_assets_for_review(conn, filters))
for row in list_assets_for_review(conn, filters, 50, 0):
    print(row.id, row.rel_path, row.rating)

raw_token, link_id = mint_default_share_link(conn, asset_id, 1704153700)
print(resolve_default_share_link(conn, raw_token))
```

Errors are raised as exceptions. Store failures raise
`photolib.db.StoreError` or one of its subclasses, such as
`CollectionNotFoundError`, `ShareAssetIneligibleError`,
`PackageTooManyAssetsError` and `PackageNoEligibleAssetsError`. Invalid
arguments raise `ValueError`.

## What it does not do

This package is only the storage layer.

- It has no command-line tool.
- It does not scan or import folders of photos, and it does not read EXIF
  data. You pass in content hashes, capture times and camera fields
  yourself.
- It makes no thumbnails.
- It has no user interface.
- It has no web server to serve share links to recipients. It only mints
  and resolves the links.

## Tests

```
pip install .[test]
pytest
```