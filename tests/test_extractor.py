import threading

import pytest

from harvester.config import ExtractorConfig
from harvester.errors import AutomationFault
from harvester.extractor import EpisodeExtractor

from conftest import FakeBrowser, episode_page, full_page

URL = "https://anime.example/bleach-episode-1"


def make_extractor(browser, **config):
    return EpisodeExtractor(browser, config=ExtractorConfig(click_settle=0, **config))


def test_missing_selector_is_not_found():
    browser = FakeBrowser(site={})
    result = make_extractor(browser).extract(URL, 1)
    assert not result.success
    assert result.links == []
    assert browser.closed_sessions == 1


def test_extracts_and_selects_links():
    browser = FakeBrowser(site={URL: full_page(1)})
    result = make_extractor(browser).extract(URL, 1)
    assert result.success
    assert result.pool_size == 6
    assert [(l.server, l.quality) for l in result.links][:3] == [
        ("Pucuk", "1080p"), ("Pucuk", "720p"), ("Pucuk", "480p"),
    ]
    assert result.links[0].url == "https://cdn.example/Pucuk/1/1080p"
    assert browser.closed_sessions == 1


def test_blocked_hosts_are_skipped():
    browser = FakeBrowser(site={URL: full_page(1)})
    result = make_extractor(browser).extract(URL, 1)
    assert all("facebook.com" not in link.url for link in result.links)


def test_options_are_clicked_in_server_priority_order():
    page = episode_page(
        ("m", "Mega 720p", "https://cdn/m"),
        ("x", "RandomHost 720p", "https://cdn/x"),
        ("p", "Pucuk 720p", "https://cdn/p"),
    )
    browser = FakeBrowser(site={URL: page})
    make_extractor(browser).extract(URL, 1)
    assert browser.clicks == ["p", "m", "x"]


def test_click_failure_skips_option():
    page = episode_page(
        ("p1", "Pucuk 1080p", "raise"),
        ("p2", "Pucuk 720p", "https://cdn/p720"),
        ("p3", "Pucuk 480p", None),
    )
    browser = FakeBrowser(site={URL: page})
    result = make_extractor(browser).extract(URL, 1)
    assert result.success
    assert [(l.server, l.quality) for l in result.links] == [("Pucuk", "720p")]


def test_duplicate_option_ids_clicked_once():
    page = episode_page(
        ("p", "Pucuk 720p", "https://cdn/a"),
        ("p", "Pucuk 720p", "https://cdn/b"),
    )
    browser = FakeBrowser(site={URL: page})
    make_extractor(browser).extract(URL, 1)
    assert browser.clicks == ["p"]


def test_page_without_usable_links_fails():
    page = episode_page(("p", "Pucuk 720p", None))
    browser = FakeBrowser(site={URL: page})
    result = make_extractor(browser).extract(URL, 1)
    assert not result.success


def test_stops_clicking_once_pool_is_sufficient():
    servers = ("Pucuk", "Nakama", "Premium", "Vidhide", "Mega", "Blogspot")
    browser = FakeBrowser(site={URL: full_page(1, servers=servers)})
    result = make_extractor(browser, max_server_clicks=3).extract(URL, 1)
    # 9 links from 3 servers satisfy the pool; Vidhide onwards is never clicked
    assert result.pool_size == 9
    assert len(browser.clicks) == 9
    assert not any(c.startswith("vidhide") for c in browser.clicks)


def test_navigation_fault_propagates_and_closes_session():
    browser = FakeBrowser(site={URL: full_page(1)}, faulty_urls=[URL])
    with pytest.raises(AutomationFault):
        make_extractor(browser).extract(URL, 1)
    assert browser.closed_sessions == 1


def test_stopped_extractor_does_not_open_session():
    browser = FakeBrowser(site={URL: full_page(1)})
    stop = threading.Event()
    stop.set()
    extractor = EpisodeExtractor(browser, config=ExtractorConfig(click_settle=0), stop_event=stop)
    with pytest.raises(AutomationFault):
        extractor.extract(URL, 1)
    assert browser.sessions == []
