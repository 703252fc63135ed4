"""Search result extraction, in the rendered page or from saved HTML."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag
from playwright.sync_api import Page
from pydantic import ValidationError

from ..errors import ExtractionWarning
from ..models import SearchResult

LOGGER = logging.getLogger(__name__)

DEFAULT_ENGINE_HOST = "kagi.com"


@dataclass(frozen=True)
class SelectorStrategy:
    """Selectors for one result page layout."""

    container: str
    title: str
    snippet: str


# Ordered: later layouts are only consulted while the limit is unfilled.
RESULT_STRATEGIES: Sequence[SelectorStrategy] = (
    SelectorStrategy(".search-result", "h3 a, .result-title a", ".result-snippet, .snippet"),
    SelectorStrategy(".sri-group .sri-item", "h3 a", ".sri-snippet"),
    SelectorStrategy('[data-testid="search-result"]', "h3 a", ".snippet"),
    SelectorStrategy(".result", "h3 a, .title a", ".description, .snippet"),
)

# Runs inside the page; receives only serialised arguments.
EXTRACT_RESULTS_JS = """
({ maxResults, strategies, engineHost }) => {
    const results = [];
    const errors = [];
    const seen = new Set();
    const isEngineLink = (link) => link.includes(engineHost) && !link.includes('search?q=');
    const isWebLink = (link) => /^https?:[/][/][^/]/i.test(link);

    for (const strategy of strategies) {
        if (results.length >= maxResults) break;

        for (const container of document.querySelectorAll(strategy.container)) {
            if (results.length >= maxResults) break;
            try {
                const anchor = container.querySelector(strategy.title);
                if (!anchor) continue;

                const title = (anchor.textContent || '').trim();
                const link = anchor.href || '';
                const snippetElement = container.querySelector(strategy.snippet);
                const snippet = snippetElement ? (snippetElement.textContent || '').trim() : '';

                if (!title || !isWebLink(link) || seen.has(link) || isEngineLink(link)) continue;
                seen.add(link);
                results.push({ title, link, snippet });
            } catch (error) {
                errors.push(`${strategy.container}: ${error}`);
            }
        }
    }
    return { results, errors };
}
"""


def is_engine_link(link: str, engine_host: str = DEFAULT_ENGINE_HOST) -> bool:
    """True for links back into the engine itself, except query URLs."""
    return engine_host in link and "search?q=" not in link


def coerce_results(raw: Iterable[Dict[str, Any]], limit: int) -> List[SearchResult]:
    """Validate records that crossed the page boundary."""
    results: List[SearchResult] = []
    for item in raw:
        if len(results) >= limit:
            break
        try:
            results.append(SearchResult.model_validate(item))
        except ValidationError as exc:
            LOGGER.warning("Dropping malformed result %r: %s", item, exc)
    return results


def extract_results(
    page: Page,
    limit: int,
    *,
    engine_host: str = DEFAULT_ENGINE_HOST,
    strategies: Sequence[SelectorStrategy] = RESULT_STRATEGIES,
) -> List[SearchResult]:
    """Extract results from the rendered page.

    Parameters
    ----------
    page : Page
        Page showing a result list
    limit : int
        Maximum number of results
    engine_host : str
        Links into this host are dropped unless they are query URLs
    strategies : sequence of SelectorStrategy
        Layouts to try, in order

    Returns
    -------
    list of SearchResult
        Unique links in discovery order
    """
    payload = page.evaluate(
        EXTRACT_RESULTS_JS,
        {
            "maxResults": limit,
            "strategies": [asdict(strategy) for strategy in strategies],
            "engineHost": engine_host,
        },
    )
    for message in payload.get("errors") or []:
        LOGGER.warning("Skipped result container: %s", message)

    results = coerce_results(payload.get("results") or [], limit)
    LOGGER.info("Extracted %d search result(s)", len(results))
    return results


def _text(node: Optional[Tag]) -> str:
    return node.get_text().strip() if node is not None else ""


def _read_container(
    container: Tag,
    strategy: SelectorStrategy,
    base_url: str,
) -> Optional[SearchResult]:
    anchor = container.select_one(strategy.title)
    if anchor is None:
        return None

    title = _text(anchor)
    href = anchor.get("href")
    if not title or not href:
        return None

    try:
        link = urljoin(base_url, str(href))
        return SearchResult(title=title, link=link, snippet=_text(container.select_one(strategy.snippet)))
    except (ValueError, ValidationError) as exc:
        raise ExtractionWarning(f"unusable link {href!r}: {exc}") from exc


def parse_results_html(
    html: str,
    limit: int,
    *,
    base_url: str = "https://kagi.com/",
    engine_host: str = DEFAULT_ENGINE_HOST,
    strategies: Sequence[SelectorStrategy] = RESULT_STRATEGIES,
) -> List[SearchResult]:
    """Apply the extraction strategies to saved HTML.

    Same rules as the in-page extractor; relative hrefs are resolved
    against ``base_url`` the way the browser would.
    """
    soup = BeautifulSoup(html, "html.parser")
    results: List[SearchResult] = []
    seen: set[str] = set()

    for strategy in strategies:
        if len(results) >= limit:
            break
        for container in soup.select(strategy.container):
            if len(results) >= limit:
                break
            try:
                record = _read_container(container, strategy, base_url)
            except ExtractionWarning as exc:
                LOGGER.warning("Skipped result container %s: %s", strategy.container, exc)
                continue

            if record is None or record.link in seen or is_engine_link(record.link, engine_host):
                continue
            seen.add(record.link)
            results.append(record)

    LOGGER.info("Parsed %d search result(s) from HTML", len(results))
    return results
