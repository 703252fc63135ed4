"""Pydantic models shared across the search components."""
from __future__ import annotations

from typing import List, Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_STATE_FILE = "./browser-state.json"
DEFAULT_LOCALE = "zh-CN"
DEFAULT_TIMEOUT_MS = 60_000
DEFAULT_LIMIT = 10


class _CamelModel(BaseModel):
    """Snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FingerprintProfile(_CamelModel):
    """Browser identity presented to the search engine.

    Frozen: once written next to a state file it is reused verbatim.
    """

    model_config = ConfigDict(frozen=True)

    device_name: str
    locale: str
    timezone_id: str
    color_scheme: Literal["dark", "light"]
    reduced_motion: Literal["reduce", "no-preference"] = "no-preference"
    forced_colors: Literal["active", "none"] = "none"


class FingerprintDocument(_CamelModel):
    """On-disk layout of the fingerprint companion file."""

    fingerprint: Optional[FingerprintProfile] = None


class SearchOptions(_CamelModel):
    limit: int = Field(DEFAULT_LIMIT, ge=1)
    timeout_ms: int = Field(DEFAULT_TIMEOUT_MS, gt=0, alias="timeout")
    state_file: str = DEFAULT_STATE_FILE
    no_save_state: bool = False
    locale: str = DEFAULT_LOCALE


class SearchQuery(BaseModel):
    text: str
    limit: int = Field(DEFAULT_LIMIT, ge=1)
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    locale: str = DEFAULT_LOCALE

    @classmethod
    def from_options(cls, text: str, options: SearchOptions) -> "SearchQuery":
        return cls(
            text=text,
            limit=options.limit,
            timeout_ms=options.timeout_ms,
            locale=options.locale,
        )


class SearchResult(BaseModel):
    title: str = Field(..., min_length=1)
    link: str
    snippet: str = ""

    @field_validator("link")
    @classmethod
    def validate_link(cls, v: str) -> str:
        """Only absolute http(s) links are accepted."""
        parsed = urlparse(v)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(f"link is not an absolute URL: {v!r}")
        return v


class SearchResponse(BaseModel):
    query: str
    results: List[SearchResult] = Field(default_factory=list)


class HtmlResponse(_CamelModel):
    """Sanitized snapshot of a result page (see html_capture)."""

    query: str
    html: str
    url: str
    saved_path: Optional[str] = None
    screenshot_path: Optional[str] = None
    original_html_length: int
