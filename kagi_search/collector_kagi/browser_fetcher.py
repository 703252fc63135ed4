"""Playwright-driven Kagi search with persisted identity and headed fallback."""
from __future__ import annotations

import logging
import random
from enum import Enum
from typing import Dict, List, Optional, Protocol, Sequence, Type
from urllib.parse import quote, urlencode

from playwright.sync_api import Browser, BrowserContext, BrowserType, Page, Playwright
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from ..antibot import (
    EscalationMatrix,
    HostHints,
    IdentityComposer,
    LaunchMode,
    PersistedState,
    StateStore,
    generate_fingerprint,
)
from ..antibot.identity import BrowserIdentity
from ..config import DEFAULT_LAUNCH_ARGS, SearchConfig
from ..errors import AuthError, NavigationError, NoResultsError, PersistenceWarning, SearchError
from ..models import FingerprintProfile, SearchOptions, SearchQuery, SearchResponse, SearchResult
from .extractor import extract_results

LOGGER = logging.getLogger(__name__)

RESULT_CONTAINER_SELECTORS: Sequence[str] = (
    ".search-result",
    ".result",
    "[data-testid='search-result']",
    ".sri-group",
    "main",
)
SETTLE_DELAY_MS = (200, 500)


class SessionState(str, Enum):
    """Stages of one search session."""

    INIT = "init"
    AUTHENTICATING = "authenticating"
    SEARCHING = "searching"
    WAITING_FOR_RESULTS = "waiting_for_results"
    EXTRACTING = "extracting"
    PERSISTING = "persisting"
    CLOSED = "closed"
    FAILED = "failed"


def build_auth_url(base_url: str, token: str) -> str:
    return f"{base_url}/search?{urlencode({'token': token}, quote_via=quote)}"


def build_search_url(base_url: str, query: str) -> str:
    return f"{base_url}/search?{urlencode({'q': query}, quote_via=quote)}"


class BrowserLauncher(Protocol):
    """Something that can start browsers and shut its driver down."""

    def launch(self, *, headless: bool, timeout_ms: int) -> Browser:
        ...

    def stop(self) -> None:
        ...


class ChromiumLauncher:
    """Launch Chromium with automation markers hidden.

    Playwright is started lazily on the first launch. When ``browser_type``
    is given (taken from a caller's browser) that driver is reused instead.
    """

    def __init__(
        self,
        *,
        launch_args: Sequence[str] = DEFAULT_LAUNCH_ARGS,
        browser_type: Optional[BrowserType] = None,
    ) -> None:
        self.launch_args = list(launch_args)
        self._browser_type = browser_type
        self._playwright: Optional[Playwright] = None

    def launch(self, *, headless: bool, timeout_ms: int) -> Browser:
        browser_type = self._browser_type
        if browser_type is None:
            if self._playwright is None:
                self._playwright = sync_playwright().start()
            browser_type = self._playwright.chromium

        LOGGER.info("Launching browser (headless=%s)", headless)
        browser = browser_type.launch(
            headless=headless,
            timeout=timeout_ms,
            args=self.launch_args,
            ignore_default_args=["--enable-automation"],
        )
        LOGGER.info("Browser launched")
        return browser

    def stop(self) -> None:
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None

    def __enter__(self) -> "ChromiumLauncher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()


def navigate(page: Page, url: str, timeout_ms: int, error_cls: Type[NavigationError], what: str) -> None:
    """Go to ``url`` and raise ``error_cls`` unless the response is ok."""
    response = page.goto(url, timeout=timeout_ms, wait_until="networkidle")
    if response is None or not response.ok:
        status = response.status if response is not None else None
        raise error_cls(f"{what} failed (status={status})", status=status)


class KagiSearchSession:
    """One pass from Init to Closed against a single browser.

    The session owns its context and page and always closes them. The
    browser is closed only if the session launched it.
    """

    def __init__(
        self,
        query: SearchQuery,
        *,
        config: SearchConfig,
        fingerprint: FingerprintProfile,
        store: StateStore,
        persisted: PersistedState,
        launcher: BrowserLauncher,
        mode: LaunchMode = LaunchMode.HEADLESS,
        browser: Optional[Browser] = None,
        composer: Optional[IdentityComposer] = None,
        persist_enabled: bool = True,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.query = query
        self.config = config
        self.fingerprint = fingerprint
        self.store = store
        self.persisted = persisted
        self.launcher = launcher
        self.mode = mode
        self.browser = browser
        self.owns_browser = False
        self.composer = composer or IdentityComposer()
        self.persist_enabled = persist_enabled
        self.rng = rng or random.Random()

        self.state = SessionState.INIT
        self.failed_in: Optional[SessionState] = None
        self.identity: Optional[BrowserIdentity] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    @property
    def final_state(self) -> SessionState:
        """Stage that raised if the session failed, else the current one."""
        return self.failed_in or self.state

    def _transition(self, state: SessionState) -> None:
        LOGGER.debug("Session [%s] %s -> %s", self.mode.value, self.state.value, state.value)
        self.state = state

    def run(self) -> SearchResponse:
        try:
            self._open()
            self._authenticate()
            self._search()
            self._wait_for_results()
            results = self._extract()
            self._persist()
            return SearchResponse(query=self.query.text, results=results)
        except Exception:
            self.failed_in = self.state
            self._transition(SessionState.FAILED)
            raise
        finally:
            self.close()

    def _open(self) -> None:
        if self.browser is None:
            self.browser = self.launcher.launch(
                headless=self.mode.headless,
                timeout_ms=self.query.timeout_ms * 2,
            )
            self.owns_browser = True
        else:
            LOGGER.info("Using existing browser instance")

        # Init scripts go in before the first page so every navigation sees them.
        self.identity = self.composer.compose(self.fingerprint)
        storage_state = str(self.persisted.storage_state) if self.persisted.has_session else None
        self.context = self.identity.new_context(self.browser, storage_state=storage_state)
        self.page = self.context.new_page()

    def _authenticate(self) -> None:
        self._transition(SessionState.AUTHENTICATING)
        LOGGER.info("Opening Kagi authentication page")
        token = self.config.require_token()
        navigate(
            self.page,
            build_auth_url(self.config.base_url, token),
            self.query.timeout_ms,
            AuthError,
            "Kagi authentication",
        )
        self.page.wait_for_load_state("networkidle", timeout=self.query.timeout_ms)

    def _search(self) -> None:
        self._transition(SessionState.SEARCHING)
        LOGGER.info("Searching Kagi for %r", self.query.text)
        navigate(
            self.page,
            build_search_url(self.config.base_url, self.query.text),
            self.query.timeout_ms,
            SearchError,
            "Kagi search request",
        )

    def _wait_for_results(self) -> None:
        self._transition(SessionState.WAITING_FOR_RESULTS)
        LOGGER.info("Waiting for results on %s", self.page.url)
        sub_timeout = self.query.timeout_ms / 2

        for selector in RESULT_CONTAINER_SELECTORS:
            try:
                self.page.wait_for_selector(selector, timeout=sub_timeout)
            except PlaywrightError as exc:
                LOGGER.debug("Selector %s did not appear: %s", selector, exc)
                continue
            LOGGER.info("Found search results via %s", selector)
            break
        else:
            LOGGER.error("No search result container appeared")
            raise NoResultsError(
                "no result container matched: " + ", ".join(RESULT_CONTAINER_SELECTORS)
            )

        self.page.wait_for_timeout(self.rng.randint(*SETTLE_DELAY_MS))

    def _extract(self) -> List[SearchResult]:
        self._transition(SessionState.EXTRACTING)
        return extract_results(
            self.page,
            self.query.limit,
            engine_host=self.config.engine_host,
        )

    def _persist(self) -> None:
        self._transition(SessionState.PERSISTING)
        if not self.persist_enabled:
            LOGGER.info("State persistence disabled, not saving browser state")
            return
        try:
            self.store.save(self.context, self.fingerprint, persist_enabled=True)
        except PersistenceWarning as exc:
            LOGGER.warning("Browser state not saved: %s", exc)

    def close(self) -> None:
        """Release page, context and (if launched here) the browser."""
        resources = [("page", self.page), ("context", self.context)]
        if self.owns_browser:
            resources.append(("browser", self.browser))

        for name, resource in resources:
            if resource is None:
                continue
            try:
                resource.close()
            except Exception as exc:
                LOGGER.warning("Failed to close %s: %s", name, exc)

        self.page = None
        self.context = None
        if self.owns_browser:
            self.browser = None
            self.owns_browser = False
        if self.state is not SessionState.FAILED:
            self._transition(SessionState.CLOSED)


def kagi_search(
    query: str,
    options: Optional[SearchOptions] = None,
    browser: Optional[Browser] = None,
    *,
    config: SearchConfig,
    launcher: Optional[BrowserLauncher] = None,
    composer: Optional[IdentityComposer] = None,
) -> SearchResponse:
    """Run a Kagi search and return the extracted results.

    The flow is tried headless first (in ``browser`` when given) and, on any
    failure, once more in a freshly launched headed browser.

    Parameters
    ----------
    query : str
        Search text
    options : SearchOptions, optional
        Limit, timeout, state file, persistence switch and locale
    browser : Browser, optional
        Caller-owned browser for the headless attempt; never closed here
    config : SearchConfig
        Token and engine settings
    launcher : BrowserLauncher, optional
        Browser factory (Chromium via Playwright by default)
    composer : IdentityComposer, optional
        Context composer (default device catalog)

    Returns
    -------
    SearchResponse
        Query and results in discovery order

    Raises
    ------
    ConfigError
        If the token is missing
    KagiSearchError, playwright.sync_api.Error
        Whatever ended the headed retry
    """
    options = options or SearchOptions()
    config.require_token()
    LOGGER.info(
        "Initializing search (limit=%d, timeout=%dms, state_file=%s)",
        options.limit,
        options.timeout_ms,
        options.state_file,
    )

    store = StateStore(options.state_file)
    persisted = store.load()
    fingerprint = persisted.fingerprint
    if fingerprint is None:
        fingerprint = generate_fingerprint(
            HostHints.collect(locale_override=options.locale, env_locale=config.system_locale)
        )
    else:
        LOGGER.info("Using saved browser fingerprint")

    search_query = SearchQuery.from_options(query, options)
    owns_launcher = launcher is None
    if launcher is None:
        launcher = ChromiumLauncher(
            launch_args=config.launch_args,
            browser_type=browser.browser_type if browser is not None else None,
        )

    sessions: Dict[LaunchMode, KagiSearchSession] = {}

    def attempt(mode: LaunchMode) -> SearchResponse:
        session = sessions[mode] = KagiSearchSession(
            search_query,
            config=config,
            fingerprint=fingerprint,
            store=store,
            persisted=persisted,
            launcher=launcher,
            mode=mode,
            browser=browser if mode.headless else None,
            composer=composer,
            persist_enabled=not options.no_save_state,
        )
        return session.run()

    try:
        matrix: EscalationMatrix[SearchResponse] = EscalationMatrix(
            state_of=lambda mode: sessions[mode].final_state.value if mode in sessions else None,
        )
        response = matrix.run(attempt)
    finally:
        if owns_launcher:
            launcher.stop()

    LOGGER.info("Search %r returned %d result(s)", query, len(response.results))
    return response


# Older callers import the Google-era names.
google_search = kagi_search
