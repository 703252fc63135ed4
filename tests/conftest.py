"""In-process stand-ins for the Playwright objects the collector touches."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import pytest
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from kagi_search.config import SearchConfig


class FakeResponse:
    def __init__(self, status: int = 200) -> None:
        self.status = status

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class FakePage:
    def __init__(
        self,
        *,
        statuses: Optional[Dict[str, Optional[int]]] = None,
        present: Iterable[str] = (".search-result",),
        payload: Optional[Dict[str, Any]] = None,
        html: str = "<html><body></body></html>",
    ) -> None:
        self.statuses = statuses or {}
        self.present = set(present)
        self.payload = payload if payload is not None else {"results": [], "errors": []}
        self.html = html
        self.url = "about:blank"
        self.visited: List[str] = []
        self.evaluated: List[Any] = []
        self.selector_waits: List[tuple] = []
        self.events: List[tuple] = []
        self.owner = ""

    def goto(self, url: str, timeout: Optional[float] = None, wait_until: Optional[str] = None):
        self.visited.append(url)
        self.url = url
        for marker, status in self.statuses.items():
            if marker in url:
                return None if status is None else FakeResponse(status)
        return FakeResponse(200)

    def wait_for_load_state(self, state: Optional[str] = None, timeout: Optional[float] = None) -> None:
        pass

    def wait_for_selector(self, selector: str, timeout: Optional[float] = None) -> None:
        self.selector_waits.append((selector, timeout))
        if selector not in self.present:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")

    def wait_for_timeout(self, timeout: float) -> None:
        pass

    def evaluate(self, expression: str, arg: Any = None) -> Any:
        self.evaluated.append(arg)
        return self.payload

    def content(self) -> str:
        return self.html

    def screenshot(self, path: Optional[str] = None, full_page: bool = False) -> bytes:
        Path(path).write_bytes(b"\x89PNG")
        return b"\x89PNG"

    def close(self) -> None:
        self.events.append(("page.close", self.owner))


class FakeContext:
    def __init__(self, browser: "FakeBrowser", options: Dict[str, Any], page: FakePage) -> None:
        self.browser = browser
        self.options = options
        self.page = page
        self.init_scripts: List[str] = []
        self.fail_storage_state = False

    def add_init_script(self, script: str) -> None:
        self.browser.events.append(("context.add_init_script", self.browser.name))
        self.init_scripts.append(script)

    def new_page(self) -> FakePage:
        self.browser.events.append(("context.new_page", self.browser.name))
        self.page.events = self.browser.events
        self.page.owner = self.browser.name
        return self.page

    def storage_state(self, path: Optional[str] = None) -> Dict[str, Any]:
        if self.fail_storage_state:
            raise OSError("disk full")
        state = {"cookies": [{"name": "kagi_session", "value": self.browser.name}], "origins": []}
        if path:
            Path(path).write_text(json.dumps(state), encoding="utf-8")
        return state

    def close(self) -> None:
        self.browser.events.append(("context.close", self.browser.name))


class FakeBrowser:
    def __init__(self, name: str, page: FakePage, events: Optional[List[tuple]] = None) -> None:
        self.name = name
        self.page = page
        self.events = events if events is not None else []
        self.contexts: List[FakeContext] = []
        self.closed = False
        self.browser_type = None
        self.fail_storage_state = False

    def new_context(self, **options: Any) -> FakeContext:
        self.events.append(("browser.new_context", self.name))
        context = FakeContext(self, options, self.page)
        context.fail_storage_state = self.fail_storage_state
        self.contexts.append(context)
        return context

    def close(self) -> None:
        self.closed = True
        self.events.append(("browser.close", self.name))


class FakeLauncher:
    """Launches a FakeBrowser per call; ``page_for(headless)`` builds its page."""

    def __init__(self, page_for: Callable[[bool], FakePage], *, fail_storage_state: bool = False) -> None:
        self.page_for = page_for
        self.fail_storage_state = fail_storage_state
        self.events: List[tuple] = []
        self.launches: List[Dict[str, Any]] = []
        self.browsers: List[FakeBrowser] = []
        self.stopped = False

    def launch(self, *, headless: bool, timeout_ms: int) -> FakeBrowser:
        name = f"{'headless' if headless else 'headed'}#{len(self.launches) + 1}"
        self.launches.append({"headless": headless, "timeout_ms": timeout_ms})
        self.events.append(("launch", name))
        browser = FakeBrowser(name, self.page_for(headless), self.events)
        browser.fail_storage_state = self.fail_storage_state
        self.browsers.append(browser)
        return browser

    def stop(self) -> None:
        self.stopped = True


def result_payload(*records: Dict[str, str], errors: Iterable[str] = ()) -> Dict[str, Any]:
    return {"results": list(records), "errors": list(errors)}


@pytest.fixture
def config() -> SearchConfig:
    return SearchConfig(token="test-token", base_url="https://kagi.com", system_locale="en_US.UTF-8")


@pytest.fixture
def state_file(tmp_path: Path) -> Path:
    return tmp_path / "state" / "browser-state.json"
