"""Runs the page-side extractor in a real Chromium page.

Skipped when no Chromium build is installed for Playwright.
"""
import logging

import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from kagi_search.collector_kagi.extractor import SelectorStrategy, extract_results


@pytest.fixture(scope="module")
def browser_page():
    playwright = sync_playwright().start()
    try:
        browser = playwright.chromium.launch(headless=True)
    except PlaywrightError as exc:
        playwright.stop()
        pytest.skip(f"Chromium is not available: {exc}")

    page = browser.new_page()
    yield page
    browser.close()
    playwright.stop()


@pytest.fixture
def render(browser_page):
    def _render(*cards):
        browser_page.set_content("<html><body><main>" + "".join(cards) + "</main></body></html>")
        return browser_page

    return _render


def _card(link, title, snippet=None):
    snippet_html = f'<div class="snippet">{snippet}</div>' if snippet is not None else ""
    return f'<div class="search-result"><h3><a href="{link}">{title}</a></h3>{snippet_html}</div>'


def _sri_group(*items):
    body = "".join(
        f'<div class="sri-item"><h3><a href="{link}">{title}</a></h3>'
        f'<div class="sri-snippet">{snippet}</div></div>'
        for link, title, snippet in items
    )
    return f'<div class="sri-group">{body}</div>'


def test_duplicate_links_keep_first_record(render):
    page = render(
        _card("https://example.com/a", "First", "first snippet"),
        _card("https://example.com/a", "Second", "second snippet"),
    )

    results = extract_results(page, 10)

    assert [(r.title, r.snippet) for r in results] == [("First", "first snippet")]


def test_cap_keeps_document_order_and_leaves_later_layouts_unused(render):
    cards = [_card(f"https://example.com/{i}", f"Result {i}", f"s{i}") for i in range(15)]
    page = render(*cards, _sri_group(("https://other.org/x", "Other", "")))

    results = extract_results(page, 10)

    assert [r.link for r in results] == [f"https://example.com/{i}" for i in range(10)]


def test_later_layouts_fill_remaining_slots(render):
    page = render(
        _card("https://example.com/1", "One", "s1"),
        _card("https://example.com/2", "Two", "s2"),
        _sri_group(
            ("https://example.com/2", "Two again", ""),
            ("https://example.com/3", "Three", "s3"),
        ),
    )

    results = extract_results(page, 10)

    assert [(r.title, r.link, r.snippet) for r in results] == [
        ("One", "https://example.com/1", "s1"),
        ("Two", "https://example.com/2", "s2"),
        ("Three", "https://example.com/3", "s3"),
    ]


def test_engine_links_dropped_unless_query_urls(render):
    page = render(
        _card("https://kagi.com/settings", "Settings"),
        _card("https://kagi.com/search?q=related", "Related search"),
        _card("https://example.com/", "External"),
    )

    results = extract_results(page, 10, engine_host="kagi.com")

    assert [r.link for r in results] == [
        "https://kagi.com/search?q=related",
        "https://example.com/",
    ]


def test_non_web_links_do_not_take_up_the_limit(render):
    cards = [_card("javascript:void(0)", "Script link"), _card("mailto:someone@example.com", "Mail")]
    cards += [_card(f"https://example.com/{i}", f"Result {i}") for i in range(11)]
    page = render(*cards)

    results = extract_results(page, 10)

    assert len(results) == 10
    assert [r.link for r in results] == [f"https://example.com/{i}" for i in range(10)]


def test_container_errors_are_reported_and_skipped(render, caplog):
    page = render(_card("https://example.com/ok", "Ok", "fine"))
    strategies = (
        SelectorStrategy(".search-result", "h3 a[", ".snippet"),
        SelectorStrategy(".search-result", "h3 a", ".snippet"),
    )

    with caplog.at_level(logging.WARNING):
        results = extract_results(page, 10, strategies=strategies)

    assert [r.title for r in results] == ["Ok"]
    assert "Skipped result container: .search-result" in caplog.text
