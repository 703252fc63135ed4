"""Kagi result collection through Playwright."""

from .browser_fetcher import ChromiumLauncher, KagiSearchSession, google_search, kagi_search
from .extractor import RESULT_STRATEGIES, SelectorStrategy, extract_results, parse_results_html
from .html_capture import get_google_search_page_html, get_kagi_search_page_html, sanitize_html

__all__ = [
    "ChromiumLauncher",
    "KagiSearchSession",
    "google_search",
    "kagi_search",
    "RESULT_STRATEGIES",
    "SelectorStrategy",
    "extract_results",
    "parse_results_html",
    "get_google_search_page_html",
    "get_kagi_search_page_html",
    "sanitize_html",
]
