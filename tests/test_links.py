import pytest

from harvester.config import DEFAULT_SERVER, UNKNOWN_QUALITY
from harvester.links import LinkPool, make_candidate, normalize_label, quality_rank, server_rank
from harvester.models import CandidateLink


@pytest.mark.parametrize("label, expected", [
    ("Pucuk 720p", ("Pucuk", "720p")),
    ("Nakama 1080p", ("Nakama", "1080p")),
    ("Mega480p", ("Mega", "480p")),
    ("  Vidhide 720P ", ("Vidhide", "720p")),
    ("Premium", ("Premium", UNKNOWN_QUALITY)),
    ("RandomHost", (DEFAULT_SERVER, UNKNOWN_QUALITY)),
    ("RandomHost 1080p", (DEFAULT_SERVER, "1080p")),
    ("pucuk 720p", (DEFAULT_SERVER, "720p")),
    ("", (DEFAULT_SERVER, UNKNOWN_QUALITY)),
    ("Mega 360p", ("Mega", UNKNOWN_QUALITY)),
    ("Pucuk 2160p", ("Pucuk", UNKNOWN_QUALITY)),
])
def test_normalize_label(label, expected):
    assert normalize_label(label) == expected


def test_ranks():
    assert server_rank("Pucuk") == 1
    assert server_rank("Blogspot") == 6
    assert server_rank(DEFAULT_SERVER) == 99
    assert quality_rank("1080p") < quality_rank("720p") < quality_rank("480p") < quality_rank(UNKNOWN_QUALITY)
    assert quality_rank("360p") == quality_rank(UNKNOWN_QUALITY)


def test_make_candidate_carries_priority():
    candidate = make_candidate("Nakama 720p", "https://cdn.example/a")
    assert candidate == CandidateLink(server="Nakama", quality="720p", url="https://cdn.example/a", priority=2)


def test_first_insert_wins():
    pool = LinkPool()
    assert pool.insert(make_candidate("Pucuk 720p", "https://first"))
    assert not pool.insert(make_candidate("Pucuk 720p", "https://second"))
    assert not pool.insert(make_candidate("Pucuk 720p", "https://first"))
    assert len(pool) == 1
    assert pool.get("Pucuk", "720p").url == "https://first"


def test_unknown_servers_share_catch_all_slot():
    pool = LinkPool()
    pool.insert(make_candidate("HostA 720p", "https://a"))
    pool.insert(make_candidate("HostB 720p", "https://b"))
    assert len(pool) == 1
    assert pool.get(DEFAULT_SERVER, "720p").url == "https://a"


def test_frozen_pool_rejects_inserts():
    pool = LinkPool()
    pool.insert(make_candidate("Pucuk 720p", "https://a"))
    pool.freeze()
    with pytest.raises(RuntimeError):
        pool.insert(make_candidate("Nakama 720p", "https://b"))
    assert pool.frozen


def test_flatten_sorted_by_server_then_quality():
    pool = LinkPool()
    pool.insert(make_candidate("Mega 480p", "https://m480"))
    pool.insert(make_candidate("RandomHost", "https://r"))
    pool.insert(make_candidate("Pucuk 480p", "https://p480"))
    pool.insert(make_candidate("Pucuk 1080p", "https://p1080"))
    flat = [(c.server, c.quality) for c in pool.flatten()]
    assert flat == [
        ("Pucuk", "1080p"),
        ("Pucuk", "480p"),
        ("Mega", "480p"),
        (DEFAULT_SERVER, UNKNOWN_QUALITY),
    ]


def test_empty_pool_is_falsy():
    pool = LinkPool()
    assert not pool
    assert pool.flatten() == []


def test_non_target_resolution_shares_unknown_slot():
    pool = LinkPool()
    assert pool.insert(make_candidate("Mega", "https://m/plain"))
    assert not pool.insert(make_candidate("Mega 360p", "https://m/360"))
    assert len(pool) == 1
    assert pool.get("Mega", UNKNOWN_QUALITY).url == "https://m/plain"
