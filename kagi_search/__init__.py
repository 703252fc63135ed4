"""Authenticated Kagi search with a persistent browser identity."""

from .collector_kagi import (
    get_google_search_page_html,
    get_kagi_search_page_html,
    google_search,
    kagi_search,
)
from .config import SearchConfig
from .errors import (
    AuthError,
    ConfigError,
    ExtractionWarning,
    KagiSearchError,
    NoResultsError,
    PersistenceWarning,
    SearchError,
)
from .models import FingerprintProfile, HtmlResponse, SearchOptions, SearchResponse, SearchResult

__all__ = [
    "get_google_search_page_html",
    "get_kagi_search_page_html",
    "google_search",
    "kagi_search",
    "SearchConfig",
    "AuthError",
    "ConfigError",
    "ExtractionWarning",
    "KagiSearchError",
    "NoResultsError",
    "PersistenceWarning",
    "SearchError",
    "FingerprintProfile",
    "HtmlResponse",
    "SearchOptions",
    "SearchResponse",
    "SearchResult",
]
