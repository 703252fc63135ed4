"""Command line entry point for Kagi searches."""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Optional

import click
import orjson
from playwright.sync_api import Error as PlaywrightError
from pydantic import BaseModel

from ..config import SearchConfig
from ..errors import KagiSearchError
from ..models import (
    DEFAULT_LIMIT,
    DEFAULT_LOCALE,
    DEFAULT_STATE_FILE,
    DEFAULT_TIMEOUT_MS,
    SearchOptions,
    SearchResponse,
)
from .browser_fetcher import kagi_search
from .extractor import parse_results_html
from .html_capture import get_kagi_search_page_html

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    # stdout carries the JSON result, logs go to stderr.
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def _emit(model: BaseModel) -> None:
    payload: Any = model.model_dump(mode="json", by_alias=True, exclude_none=True)
    click.echo(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode())


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Read KAGI_TOKEN and friends from this .env file",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, env_file: Optional[Path]) -> None:
    """Kagi search with a persistent browser identity."""
    _configure_logging(verbose)
    ctx.obj = {"env_file": env_file}


def _config(ctx: click.Context) -> SearchConfig:
    return SearchConfig.from_env(dotenv_path=ctx.obj.get("env_file"))


def _search_options(func):
    func = click.option("--locale", default=DEFAULT_LOCALE, show_default=True, help="Result language")(func)
    func = click.option(
        "--no-save-state",
        is_flag=True,
        help="Do not write browser state or fingerprint",
    )(func)
    func = click.option(
        "--state-file",
        default=DEFAULT_STATE_FILE,
        show_default=True,
        help="Browser state file (fingerprint is stored beside it)",
    )(func)
    func = click.option(
        "--timeout",
        "timeout_ms",
        default=DEFAULT_TIMEOUT_MS,
        show_default=True,
        type=click.IntRange(min=1),
        help="Navigation timeout in milliseconds",
    )(func)
    func = click.option(
        "--limit",
        "-l",
        default=DEFAULT_LIMIT,
        show_default=True,
        type=click.IntRange(min=1),
        help="Maximum number of results",
    )(func)
    return func


def _run_search(
    ctx: click.Context,
    query: str,
    limit: int,
    timeout_ms: int,
    state_file: str,
    no_save_state: bool,
    locale: str,
) -> None:
    options = SearchOptions(
        limit=limit,
        timeout_ms=timeout_ms,
        state_file=state_file,
        no_save_state=no_save_state,
        locale=locale,
    )
    try:
        response = kagi_search(query, options, config=_config(ctx))
    except (KagiSearchError, PlaywrightError) as exc:
        raise click.ClickException(str(exc)) from exc
    _emit(response)


@cli.command()
@click.argument("query")
@_search_options
@click.pass_context
def search(ctx: click.Context, query: str, **kwargs: Any) -> None:
    """Search Kagi and print results as JSON."""
    _run_search(ctx, query, **kwargs)


@cli.command("google-search", hidden=True)
@click.argument("query")
@_search_options
@click.pass_context
def google_search(ctx: click.Context, query: str, **kwargs: Any) -> None:
    """Alias of ``search`` kept for older scripts."""
    _run_search(ctx, query, **kwargs)


@cli.command()
@click.argument("query")
@click.option("--save", "save_to_file", is_flag=True, help="Write raw HTML and a screenshot")
@click.option(
    "--output",
    "-o",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="HTML destination (timestamped name by default)",
)
@click.option("--timeout", "timeout_ms", default=DEFAULT_TIMEOUT_MS, show_default=True, type=click.IntRange(min=1))
@click.option("--state-file", default=DEFAULT_STATE_FILE, show_default=True)
@click.option("--locale", default=DEFAULT_LOCALE, show_default=True)
@click.pass_context
def html(
    ctx: click.Context,
    query: str,
    save_to_file: bool,
    output_path: Optional[Path],
    timeout_ms: int,
    state_file: str,
    locale: str,
) -> None:
    """Fetch the sanitized result page HTML."""
    options = SearchOptions(timeout_ms=timeout_ms, state_file=state_file, locale=locale)
    try:
        response = get_kagi_search_page_html(
            query,
            options,
            save_to_file,
            output_path,
            config=_config(ctx),
        )
    except (KagiSearchError, PlaywrightError) as exc:
        raise click.ClickException(str(exc)) from exc
    _emit(response)


@cli.command()
@click.argument("html_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--limit", "-l", default=DEFAULT_LIMIT, show_default=True, type=click.IntRange(min=1))
@click.option("--base-url", default="https://kagi.com/", show_default=True, help="Base for relative links")
@click.option("--query", "-q", default="", help="Query label for the output")
def parse(html_file: Path, limit: int, base_url: str, query: str) -> None:
    """Extract results from a saved result page."""
    results = parse_results_html(
        html_file.read_text(encoding="utf-8"),
        limit,
        base_url=base_url,
    )
    _emit(SearchResponse(query=query, results=results))


def main() -> None:
    cli(prog_name="kagi-search")


if __name__ == "__main__":
    main()
