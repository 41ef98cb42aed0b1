import pytest

from harvester.errors import MalformedInput
from harvester.urls import (
    PATH_STYLES, EpisodeUrl, PathStyle, episode_urls, extract_domain,
    extract_episode_number, extract_slug, parse_base_link,
)


def test_path_styles_order_is_flat_first():
    assert PATH_STYLES == (PathStyle.FLAT, PathStyle.ANIME_SEGMENT)


def test_episode_urls_in_fallback_order():
    urls = [u.url for u in episode_urls("https://site.example", "one-piece", 12)]
    assert urls == [
        "https://site.example/one-piece-episode-12",
        "https://site.example/anime/one-piece-episode-12",
    ]


def test_episode_url_str():
    url = EpisodeUrl("https://site.example", "naruto", 3, PathStyle.ANIME_SEGMENT)
    assert str(url) == "https://site.example/anime/naruto-episode-3"


@pytest.mark.parametrize("link, slug", [
    ("https://site.example/anime/one-piece/", "one-piece"),
    ("https://site.example/anime/one-piece", "one-piece"),
    ("https://site.example/one-piece-episode-12", "one-piece"),
    ("https://site.example/one-piece-episode-12-subtitle-indonesia/", "one-piece"),
    ("https://site.example/anime/one-piece-episode-3", "one-piece"),
    ("https://site.example/naruto/", "naruto"),
])
def test_extract_slug(link, slug):
    assert extract_slug(link) == slug


def test_extract_slug_without_path():
    assert extract_slug("https://site.example/") is None
    assert extract_slug("not a url") is None


def test_extract_domain():
    assert extract_domain("https://site.example/anime/x") == "https://site.example"
    assert extract_domain("http://10.0.0.1:8080/x") == "http://10.0.0.1:8080"
    assert extract_domain("site.example/x") is None


def test_extract_episode_number():
    assert extract_episode_number("https://site.example/x-episode-7") == 7
    assert extract_episode_number("https://site.example/anime/x") is None


def test_parse_base_link():
    assert parse_base_link("https://site.example/anime/bleach/") == ("https://site.example", "bleach")


def test_parse_base_link_rejects_garbage():
    with pytest.raises(MalformedInput):
        parse_base_link("bleach")
