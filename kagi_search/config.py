"""Runtime configuration for the search flow."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

from .errors import ConfigError

TOKEN_ENV_VAR = "KAGI_TOKEN"
BASE_URL_ENV_VAR = "KAGI_BASE_URL"
DEFAULT_BASE_URL = "https://kagi.com"

# Chromium flags that hide the most obvious automation markers.
DEFAULT_LAUNCH_ARGS: Tuple[str, ...] = (
    "--disable-blink-features=AutomationControlled",
    "--disable-features=IsolateOrigins,site-per-process",
    "--disable-site-isolation-trials",
    "--disable-web-security",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
    "--hide-scrollbars",
    "--mute-audio",
    "--disable-background-networking",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-breakpad",
    "--disable-component-extensions-with-background-pages",
    "--disable-extensions",
    "--disable-features=TranslateUI",
    "--disable-ipc-flooding-protection",
    "--disable-renderer-backgrounding",
    "--enable-features=NetworkService,NetworkServiceInProcess",
    "--force-color-profile=srgb",
    "--metrics-recording-only",
)


@dataclass(frozen=True)
class SearchConfig:
    """
    Explicit configuration handed to the search entry points.

    Only ``from_env`` touches the process environment; everything below it
    receives this object, so tests can build one directly.
    """

    token: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    system_locale: Optional[str] = None
    launch_args: Tuple[str, ...] = field(default=DEFAULT_LAUNCH_ARGS)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        *,
        dotenv_path: Optional[Path | str] = None,
    ) -> "SearchConfig":
        """Build configuration from environment variables.

        Parameters
        ----------
        environ : mapping, optional
            Variables to read (defaults to ``os.environ`` after loading .env)
        dotenv_path : Path | str, optional
            Explicit .env file; the nearest .env is used when omitted
        """
        if environ is None:
            load_dotenv(dotenv_path)
            environ = os.environ

        token = (environ.get(TOKEN_ENV_VAR) or "").strip() or None
        base_url = (environ.get(BASE_URL_ENV_VAR) or DEFAULT_BASE_URL).rstrip("/")
        return cls(
            token=token,
            base_url=base_url,
            system_locale=environ.get("LANG") or None,
        )

    def require_token(self) -> str:
        if not self.token:
            raise ConfigError(
                f"{TOKEN_ENV_VAR} is not set. Put your Kagi token in the "
                "environment or in a .env file."
            )
        return self.token

    @property
    def engine_host(self) -> str:
        """Host part of ``base_url`` (``kagi.com``)."""
        host = self.base_url.split("://", 1)[-1]
        return host.split("/", 1)[0]
