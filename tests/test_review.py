import pytest

from photolib.db import open_library
from photolib.review import (
    REVIEW_BROWSE_BASE_WHERE,
    REVIEW_REJECTED_BASE_WHERE,
    ReviewFilters,
    count_assets_for_review,
    count_rejected_for_review,
    list_asset_ids_for_review,
    list_assets_for_review,
    list_rejected_for_review,
    list_review_grid_rows_by_ids_in_order,
    review_filter_where_suffix,
    stable_dedupe_asset_ids,
)
from photolib.tags import find_or_create_tag_by_label, foreign_key_check, link_tag_to_assets


@pytest.fixture
def conn(tmp_path):
    root = tmp_path / "lib"
    (root / ".phototool").mkdir(parents=True)
    c = open_library(root)
    yield c
    c.close()


def _insert(conn, rel, content_hash, capture=1, rejected=0, deleted=None, rating=None):
    cur = conn.execute(
        """
INSERT INTO assets (content_hash, rel_path, capture_time_unix, created_at_unix, rejected, deleted_at_unix, rating)
VALUES (?, ?, ?, 1, ?, ?, ?)""",
        (content_hash, rel, capture, rejected, deleted, rating),
    )
    conn.commit()
    return cur.lastrowid


def _collection(conn, name):
    cur = conn.execute(
        "INSERT INTO collections (name, display_date, created_at_unix) VALUES (?, '2024-01-01', 1)",
        (name,),
    )
    conn.commit()
    return cur.lastrowid


def _link(conn, collection_id, asset_id):
    conn.execute(
        "INSERT INTO asset_collections (asset_id, collection_id, created_at_unix) VALUES (?, ?, 1)",
        (asset_id, collection_id),
    )
    conn.commit()


def test_count_defaults_and_exclusions(conn):
    _insert(conn, "a/a.jpg", "h1")
    _insert(conn, "a/b.jpg", "h2", rejected=1)
    _insert(conn, "a/c.jpg", "h3", deleted=99)
    rated = _insert(conn, "a/d.jpg", "h4", rating=4)
    _insert(conn, "a/e.jpg", "h5", rating=2)

    assert count_assets_for_review(conn, ReviewFilters()) == 3
    assert count_assets_for_review(conn, ReviewFilters(min_rating=3)) == 1

    cid = _collection(conn, "Album")
    _link(conn, cid, rated)
    assert count_assets_for_review(conn, ReviewFilters(collection_id=cid)) == 1


def test_base_where_contracts(conn):
    assert REVIEW_BROWSE_BASE_WHERE == "rejected = 0 AND deleted_at_unix IS NULL"
    assert REVIEW_REJECTED_BASE_WHERE == "rejected = 1 AND deleted_at_unix IS NULL"

    _insert(conn, "a.jpg", "h1")
    _insert(conn, "b.jpg", "h2", rejected=1)
    _insert(conn, "c.jpg", "h3", deleted=5)
    _insert(conn, "d.jpg", "h4", rejected=1, deleted=5)

    browse_raw = conn.execute(
        "SELECT COUNT(*) FROM assets WHERE " + REVIEW_BROWSE_BASE_WHERE
    ).fetchone()[0]
    rejected_raw = conn.execute(
        "SELECT COUNT(*) FROM assets WHERE " + REVIEW_REJECTED_BASE_WHERE
    ).fetchone()[0]
    assert count_assets_for_review(conn, ReviewFilters()) == browse_raw == 1
    assert count_rejected_for_review(conn, ReviewFilters()) == rejected_raw == 1


def test_suffix_empty():
    assert review_filter_where_suffix(ReviewFilters()) == ("", [])


def test_suffix_invalid_min_rating():
    with pytest.raises(ValueError):
        review_filter_where_suffix(ReviewFilters(min_rating=99))


def test_suffix_collection_and_rating_arg_order():
    suffix, args = review_filter_where_suffix(ReviewFilters(collection_id=42, min_rating=3))
    assert "asset_collections" in suffix and "rating >=" in suffix
    assert args == [42, 3]


def test_suffix_tag_with_collection():
    suffix, args = review_filter_where_suffix(ReviewFilters(collection_id=7, tag_id=99))
    assert "asset_collections" in suffix and "asset_tags" in suffix
    assert args == [7, 99]


def test_suffix_collection_rating_tag_order():
    suffix, args = review_filter_where_suffix(
        ReviewFilters(collection_id=11, min_rating=3, tag_id=17)
    )
    assert "asset_collections" in suffix and "rating >=" in suffix and "asset_tags" in suffix
    assert args == [11, 3, 17]


def test_list_matches_count_and_paging(conn):
    _insert(conn, "a/z.jpg", "hz", capture=300)
    _insert(conn, "a/y.jpg", "hy", capture=200, rating=3)
    _insert(conn, "a/x.jpg", "hx", capture=100, rating=5)
    f = ReviewFilters()
    assert count_assets_for_review(conn, f) == 3

    page0 = list_assets_for_review(conn, f, 2, 0)
    assert [r.rel_path for r in page0] == ["a/z.jpg", "a/y.jpg"]
    assert page0[1].rating == 3
    assert page0[0].rating is None

    page1 = list_assets_for_review(conn, f, 2, 2)
    assert [r.rel_path for r in page1] == ["a/x.jpg"]

    assert list_assets_for_review(conn, f, 10, 99) == []


@pytest.mark.parametrize("limit,offset", [(0, 0), (10, -1)])
def test_list_invalid_limit_or_offset(conn, limit, offset):
    with pytest.raises(ValueError):
        list_assets_for_review(conn, ReviewFilters(), limit, offset)
    with pytest.raises(ValueError):
        list_rejected_for_review(conn, ReviewFilters(), limit, offset)


def test_list_excludes_rejected_and_deleted_like_count(conn):
    _insert(conn, "ok.jpg", "h1")
    _insert(conn, "rej.jpg", "h2", rejected=1)
    _insert(conn, "del.jpg", "h3", deleted=99)
    n = count_assets_for_review(conn, ReviewFilters())
    rows = list_assets_for_review(conn, ReviewFilters(), 50, 0)
    assert n == len(rows) == 1
    assert rows[0].rel_path == "ok.jpg"


def test_tag_filter_and_stale_tag_id(conn):
    foreign_key_check(conn)
    a1 = _insert(conn, "a/1.jpg", "h1")
    _insert(conn, "a/2.jpg", "h2")
    t1 = find_or_create_tag_by_label(conn, "vacation")
    link_tag_to_assets(conn, t1, [a1])

    assert count_assets_for_review(conn, ReviewFilters()) == 2
    assert count_assets_for_review(conn, ReviewFilters(tag_id=t1)) == 1
    rows = list_assets_for_review(conn, ReviewFilters(tag_id=t1), 10, 0)
    assert [r.id for r in rows] == [a1]

    stale = ReviewFilters(tag_id=999999)
    assert count_assets_for_review(conn, stale) == 0
    assert list_assets_for_review(conn, stale, 10, 0) == []

    t2 = find_or_create_tag_by_label(conn, "unused")
    assert count_assets_for_review(conn, ReviewFilters(tag_id=t2)) == 0


def test_rejected_matches_filters_and_sort(conn):
    _insert(conn, "browse.jpg", "hb", capture=50)
    r_low = _insert(conn, "rej-low.jpg", "hr1", capture=200, rejected=1, rating=2)
    r_high = _insert(conn, "rej-high.jpg", "hr2", capture=300, rejected=1, rating=5)

    f = ReviewFilters()
    assert count_rejected_for_review(conn, f) == 2
    rows = list_rejected_for_review(conn, f, 10, 0)
    assert [r.id for r in rows] == [r_high, r_low]
    assert rows[0].rejected == 1

    f3 = ReviewFilters(min_rating=3)
    assert count_rejected_for_review(conn, f3) == 1
    assert [r.id for r in list_rejected_for_review(conn, f3, 5, 0)] == [r_high]

    cid = _collection(conn, "Bin")
    _link(conn, cid, r_low)
    assert count_rejected_for_review(conn, ReviewFilters(collection_id=cid)) == 1


def test_count_rejected_excludes_deleted_and_non_rejected(conn):
    _insert(conn, "ok-rej.jpg", "h1", rejected=1)
    _insert(conn, "browse.jpg", "h2")
    _insert(conn, "rej-del.jpg", "h3", rejected=1, deleted=99)
    rows = list_rejected_for_review(conn, ReviewFilters(), 50, 0)
    assert count_rejected_for_review(conn, ReviewFilters()) == 1
    assert [r.rel_path for r in rows] == ["ok-rej.jpg"]


def test_list_ids_matches_count_and_list_order(conn):
    newer = _insert(conn, "a/newer.jpg", "h1", capture=200, rating=4)
    older = _insert(conn, "a/older.jpg", "h2", capture=100, rating=5)
    excluded = _insert(conn, "a/low.jpg", "h3", capture=50, rating=2)
    cid = _collection(conn, "Trip")
    for aid in (newer, older, excluded):
        _link(conn, cid, aid)
    t1 = find_or_create_tag_by_label(conn, "keep")
    link_tag_to_assets(conn, t1, [newer, older])

    f = ReviewFilters(collection_id=cid, min_rating=3, tag_id=t1)
    n = count_assets_for_review(conn, f)
    assert n == 2
    ids = list_asset_ids_for_review(conn, f)
    rows = list_assets_for_review(conn, f, n, 0)
    assert ids == [r.id for r in rows]
    assert ids == [newer, older]


def test_stable_dedupe_asset_ids():
    assert stable_dedupe_asset_ids([3, 1, 3, 0, -2, 2, 1]) == [3, 1, 2]
    assert stable_dedupe_asset_ids([]) == []


def test_rows_by_ids_in_order(conn):
    a = _insert(conn, "a.jpg", "ha", capture=1)
    b = _insert(conn, "b.jpg", "hb", capture=2, rejected=1)
    rows = list_review_grid_rows_by_ids_in_order(conn, [b, 999999, a, b])
    assert [r.id for r in rows] == [b, a]
    assert rows[0].rejected == 1
    assert list_review_grid_rows_by_ids_in_order(conn, []) == []