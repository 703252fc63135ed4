"""Capture the raw Kagi result page for debugging selector drift."""
from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

from playwright.sync_api import Page

from ..antibot.fingerprint import CANONICAL_DEVICE
from ..antibot.identity import DEVICE_TEMPLATES, BrowserIdentity
from ..antibot.storage import StateStore
from ..config import SearchConfig
from ..errors import AuthError, SearchError
from ..models import HtmlResponse, SearchOptions
from .browser_fetcher import (
    BrowserLauncher,
    ChromiumLauncher,
    build_auth_url,
    build_search_url,
    navigate,
)

LOGGER = logging.getLogger(__name__)

SCRIPT_RE = re.compile(r"<script[^>]*>[\s\S]*?</script>", re.IGNORECASE)
STYLE_RE = re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE)
COMMENT_RE = re.compile(r"<!--[\s\S]*?-->")

CAPTURE_LAUNCH_ARGS = ("--disable-blink-features=AutomationControlled",)


def sanitize_html(html: str) -> str:
    """Strip scripts, styles and comments (text-level, not a DOM rewrite)."""
    html = SCRIPT_RE.sub("", html)
    html = STYLE_RE.sub("", html)
    return COMMENT_RE.sub("", html)


def default_capture_path(now: Optional[datetime] = None) -> Path:
    """``kagi-search-2024-05-01T10-20-30-123Z.html`` in the working directory."""
    now = now or datetime.now(timezone.utc)
    stamp = now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"
    return Path(f"kagi-search-{stamp}.html")


def screenshot_path_for(saved_path: Path) -> Path:
    return saved_path.with_suffix(".png")


def _save_capture(
    page: Page,
    html: str,
    output_path: Optional[Path | str],
) -> Tuple[Optional[str], Optional[str]]:
    saved_path = Path(output_path) if output_path else default_capture_path()
    saved: Optional[str] = None
    screenshot: Optional[str] = None

    try:
        saved_path.parent.mkdir(parents=True, exist_ok=True)
        saved_path.write_text(html, encoding="utf-8")
        saved = str(saved_path)
        LOGGER.info("Saved HTML to %s", saved_path)
    except OSError as exc:
        LOGGER.error("Failed to save HTML to %s: %s", saved_path, exc)

    shot_path = screenshot_path_for(saved_path)
    try:
        page.screenshot(path=str(shot_path), full_page=True)
        screenshot = str(shot_path)
        LOGGER.info("Saved page screenshot to %s", shot_path)
    except Exception as exc:
        LOGGER.warning("Failed to save page screenshot: %s", exc)

    return saved, screenshot


def get_kagi_search_page_html(
    query: str,
    options: Optional[SearchOptions] = None,
    save_to_file: bool = False,
    output_path: Optional[Path | str] = None,
    *,
    config: SearchConfig,
    launcher: Optional[BrowserLauncher] = None,
) -> HtmlResponse:
    """Fetch the result page HTML for ``query``.

    Parameters
    ----------
    query : str
        Search text
    options : SearchOptions, optional
        Timeout, state file and locale are used
    save_to_file : bool
        Also write the raw HTML and a full-page screenshot
    output_path : Path | str, optional
        HTML destination (timestamped name by default)
    config : SearchConfig
        Token and engine settings
    launcher : BrowserLauncher, optional
        Browser factory

    Returns
    -------
    HtmlResponse
        Sanitized HTML, final URL and any saved paths
    """
    options = options or SearchOptions()
    token = config.require_token()
    LOGGER.info("Capturing Kagi result page for %r", query)

    persisted = StateStore(options.state_file).load()
    identity = BrowserIdentity(
        device_name=CANONICAL_DEVICE,
        context_options={
            **DEVICE_TEMPLATES[CANONICAL_DEVICE].to_playwright_context(),
            "locale": options.locale,
        },
    )

    owns_launcher = launcher is None
    if launcher is None:
        launcher = ChromiumLauncher(launch_args=CAPTURE_LAUNCH_ARGS)

    browser = None
    context = None
    try:
        browser = launcher.launch(headless=True, timeout_ms=options.timeout_ms * 2)
        storage_state = str(persisted.storage_state) if persisted.has_session else None
        context = identity.new_context(browser, storage_state=storage_state)
        page = context.new_page()

        LOGGER.info("Opening Kagi authentication page")
        navigate(page, build_auth_url(config.base_url, token), options.timeout_ms, AuthError, "Kagi authentication")

        search_url = build_search_url(config.base_url, query)
        LOGGER.info("Fetching result page %s", search_url)
        navigate(page, search_url, options.timeout_ms, SearchError, "Kagi search request")
        page.wait_for_load_state("networkidle", timeout=options.timeout_ms)

        original_html = page.content()
        saved_path = screenshot_path = None
        if save_to_file:
            saved_path, screenshot_path = _save_capture(page, original_html, output_path)

        return HtmlResponse(
            query=query,
            html=sanitize_html(original_html),
            url=page.url,
            saved_path=saved_path,
            screenshot_path=screenshot_path,
            original_html_length=len(original_html.encode("utf-8")),
        )
    finally:
        for name, resource in (("context", context), ("browser", browser)):
            if resource is None:
                continue
            try:
                resource.close()
            except Exception as exc:
                LOGGER.warning("Failed to close %s: %s", name, exc)
        if owns_launcher:
            launcher.stop()


get_google_search_page_html = get_kagi_search_page_html
