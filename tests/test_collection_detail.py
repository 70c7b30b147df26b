from datetime import datetime, timedelta

import pytest

from photolib.assets import insert_asset
from photolib.collection_detail import (
    CameraSection,
    DaySection,
    StarSection,
    collection_exists,
    count_collection_visible_assets,
    list_collection_camera_section_page,
    list_collection_camera_sections,
    list_collection_day_section_page,
    list_collection_day_sections,
    list_collection_star_section_page,
    list_collection_star_sections,
)
from photolib.collections import (
    CollectionNotFoundError,
    create_collection,
    link_assets_to_collection,
)
from photolib.db import open_library


@pytest.fixture
def conn(tmp_path):
    root = tmp_path / "lib"
    (root / ".phototool").mkdir(parents=True)
    c = open_library(root)
    yield c
    c.close()


def _insert(conn, content_hash, rel_path, capture, *, rating=None, rejected=0, deleted=None):
    with conn:
        cur = conn.execute(
            """
INSERT INTO assets (content_hash, rel_path, capture_time_unix, created_at_unix, rating, rejected, deleted_at_unix)
VALUES (?, ?, ?, 1, ?, ?, ?)""",
            (content_hash, rel_path, capture, rating, rejected, deleted),
        )
    return cur.lastrowid


def _hash_of(i):
    return chr(ord("A") + i) + "hash"


def test_collection_exists(conn):
    cid = create_collection(conn, "Here", "")
    assert collection_exists(conn, cid) is True
    assert collection_exists(conn, 99999) is False


def test_star_sections_order_and_omit_empty(conn):
    cid = create_collection(conn, "Trip", "")
    id5a = _insert(conn, "h1", "a/a.jpg", 300, rating=5)
    id5b = _insert(conn, "h2", "a/b.jpg", 200, rating=5)
    id3 = _insert(conn, "h3", "a/c.jpg", 400, rating=3)
    id_unrated = _insert(conn, "h4", "a/d.jpg", 100)
    _insert(conn, "h5", "a/e.jpg", 500, rating=5, rejected=1)
    _insert(conn, "h6", "a/f.jpg", 600, rating=5, deleted=99)
    link_assets_to_collection(conn, cid, [id5a, id5b, id3, id_unrated])

    assert list_collection_star_sections(conn, cid) == [
        StarSection(5, 2),
        StarSection(3, 1),
        StarSection(None, 1),
    ]

    rows = list_collection_star_section_page(conn, cid, 5, 10, 0)
    assert [r.id for r in rows] == [id5a, id5b]
    rows = list_collection_star_section_page(conn, cid, 3, 10, 0)
    assert [r.id for r in rows] == [id3]
    rows = list_collection_star_section_page(conn, cid, None, 10, 0)
    assert [r.id for r in rows] == [id_unrated]
    assert rows[0].rating is None


def test_all_members_invisible_is_empty(conn):
    cid = create_collection(conn, "Emptyish", "")
    aid = _insert(conn, "hx", "x/x.jpg", 1, rejected=1)
    link_assets_to_collection(conn, cid, [aid])
    assert count_collection_visible_assets(conn, cid) == 0
    assert list_collection_star_sections(conn, cid) == []


def test_count_visible_assets(conn):
    cid = create_collection(conn, "Count", "")
    a = _insert(conn, "h1", "a/1.jpg", 1)
    b = _insert(conn, "h2", "a/2.jpg", 2)
    c = _insert(conn, "h3", "a/3.jpg", 3, deleted=5)
    _insert(conn, "h4", "a/4.jpg", 4)
    link_assets_to_collection(conn, cid, [a, b, c])
    assert count_collection_visible_assets(conn, cid) == 2


@pytest.mark.parametrize(
    "call",
    [
        lambda c: count_collection_visible_assets(c, 99999),
        lambda c: list_collection_star_sections(c, 99999),
        lambda c: list_collection_star_section_page(c, 99999, 5, 10, 0),
        lambda c: list_collection_day_sections(c, 99999),
        lambda c: list_collection_day_section_page(c, 99999, "2024-01-01", 10, 0),
        lambda c: list_collection_camera_sections(c, 99999),
        lambda c: list_collection_camera_section_page(c, 99999, None, 10, 0),
    ],
)
def test_collection_not_found(conn, call):
    with pytest.raises(CollectionNotFoundError):
        call(conn)


@pytest.mark.parametrize(
    "call",
    [
        lambda c, cid: list_collection_star_section_page(c, cid, 5, 0, 0),
        lambda c, cid: list_collection_star_section_page(c, cid, 5, 10, -1),
        lambda c, cid: list_collection_day_section_page(c, cid, "2024-01-01", 0, 0),
        lambda c, cid: list_collection_day_section_page(c, cid, "2024-01-01", 10, -1),
        lambda c, cid: list_collection_camera_section_page(c, cid, "X", 0, 0),
        lambda c, cid: list_collection_camera_section_page(c, cid, "X", 10, -1),
    ],
)
def test_invalid_limit_or_offset(conn, call):
    cid = create_collection(conn, "Paging", "")
    with pytest.raises(ValueError):
        call(conn, cid)


def test_day_sections_same_local_day(conn):
    cid = create_collection(conn, "Days", "")
    day = datetime(2024, 3, 15, 10, 0, 0)
    t1 = int(day.timestamp())
    t2 = int((day + timedelta(hours=3)).timestamp())
    id1 = _insert(conn, "h1", "a/1.jpg", t1)
    id2 = _insert(conn, "h2", "a/2.jpg", t2)
    link_assets_to_collection(conn, cid, [id1, id2])

    assert list_collection_day_sections(conn, cid) == [DaySection("2024-03-15", 2)]


def test_day_sections_newest_first(conn):
    cid = create_collection(conn, "Two days", "")
    a = _insert(conn, "h1", "a/1.jpg", int(datetime(2024, 5, 1, 8).timestamp()))
    b = _insert(conn, "h2", "a/2.jpg", int(datetime(2024, 5, 2, 8).timestamp()))
    link_assets_to_collection(conn, cid, [a, b])
    assert list_collection_day_sections(conn, cid) == [
        DaySection("2024-05-02", 1),
        DaySection("2024-05-01", 1),
    ]


def test_camera_sections_unknown_last(conn):
    cid = create_collection(conn, "Cam", "")
    id_a = insert_asset(conn, "ha", "a/a.jpg", 1, 1, "Zebra", "Z1")
    id_b = insert_asset(conn, "hb", "a/b.jpg", 2, 1, "Alpha", "A1")
    id_u = _insert(conn, "hc", "a/c.jpg", 3)
    link_assets_to_collection(conn, cid, [id_a, id_b, id_u])

    assert list_collection_camera_sections(conn, cid) == [
        CameraSection("Alpha A1", 1),
        CameraSection("Zebra Z1", 1),
        CameraSection(None, 1),
    ]
    unknown = list_collection_camera_section_page(conn, cid, None, 10, 0)
    assert [r.id for r in unknown] == [id_u]


def test_star_paging_does_not_mix_buckets(conn):
    cid = create_collection(conn, "Paging", "")
    five_star = [
        _insert(conn, _hash_of(i), f"a/{chr(ord('a') + i)}.jpg", 100 + i, rating=5)
        for i in range(7)
    ]
    id4 = _insert(conn, "h4star", "a/z.jpg", 999, rating=4)
    link_assets_to_collection(conn, cid, [*five_star, id4])

    p0 = list_collection_star_section_page(conn, cid, 5, 5, 0)
    p1 = list_collection_star_section_page(conn, cid, 5, 5, 5)
    everything = list_collection_star_section_page(conn, cid, 5, 50, 0)
    assert len(p0) == 5
    assert len(p1) == 2
    assert len(p0) + len(p1) == len(everything)
    assert all(r.rating == 5 for r in p0 + p1)
    assert [r.id for r in p0 + p1] == list(reversed(five_star))


def test_day_paging_does_not_mix_days(conn):
    cid = create_collection(conn, "DayPaging", "")
    day_a = datetime(2024, 5, 1, 8, 0, 0)
    day_b = datetime(2024, 5, 2, 8, 0, 0)
    key_a = "2024-05-01"
    day_a_ids = [
        _insert(
            conn,
            _hash_of(i + 10),
            f"d/{chr(ord('a') + i)}.jpg",
            int((day_a + timedelta(minutes=i)).timestamp()),
        )
        for i in range(6)
    ]
    id_b = _insert(conn, "dayB1", "d/z.jpg", int(day_b.timestamp()))
    link_assets_to_collection(conn, cid, [*day_a_ids, id_b])

    p0 = list_collection_day_section_page(conn, cid, key_a, 5, 0)
    p1 = list_collection_day_section_page(conn, cid, key_a, 5, 5)
    all_a = list_collection_day_section_page(conn, cid, key_a, 50, 0)
    assert len(p0) + len(p1) == len(all_a) == 6
    for row in p0 + p1:
        assert datetime.fromtimestamp(row.capture_time_unix).strftime("%Y-%m-%d") == key_a
    assert id_b not in {r.id for r in all_a}


def test_camera_paging_does_not_mix_labels(conn):
    cid = create_collection(conn, "CamPaging", "")
    alpha_ids = [
        insert_asset(conn, _hash_of(i + 40), f"cam/{chr(ord('a') + i)}.jpg", 300 + i, 1, "Brand", "Alpha")
        for i in range(7)
    ]
    id_beta = insert_asset(conn, "hBeta", "cam/z.jpg", 999, 1, "Brand", "Beta")
    link_assets_to_collection(conn, cid, [*alpha_ids, id_beta])

    p0 = list_collection_camera_section_page(conn, cid, "Brand Alpha", 5, 0)
    p1 = list_collection_camera_section_page(conn, cid, "Brand Alpha", 5, 5)
    all_a = list_collection_camera_section_page(conn, cid, "Brand Alpha", 50, 0)
    assert len(p0) + len(p1) == len(all_a) == 7
    assert id_beta not in {r.id for r in p0 + p1}

    rows_b = list_collection_camera_section_page(conn, cid, "Brand Beta", 50, 0)
    assert [r.id for r in rows_b] == [id_beta]