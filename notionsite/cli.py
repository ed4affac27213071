import asyncio
import json
import logging
import logging.config
from typing import Any, Awaitable, Callable

import click
from pydantic_core import to_jsonable_python

from notionsite.errors import ConfigurationError, NotionError
from notionsite.lib import content
from notionsite.lib.content import ContentClient
from notionsite.lib.render import render_blocks

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "brief": {"format": "%(message)s"},
        "default": {
            "format": "%(asctime)s %(levelname)-8s %(name)-15s %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        "notionsite": {"level": logging.WARNING, "handlers": ["console"]},
        "aiohttp": {"level": logging.WARNING, "handlers": ["console"]},
    },
}

logger = logging.getLogger(__name__)


def _run(operation: Callable[[ContentClient], Awaitable[Any]]) -> Any:
    async def _main():
        client = content.create()
        try:
            return await operation(client)
        finally:
            await client.cache.join()

    try:
        return asyncio.run(_main())
    except (ConfigurationError, NotionError) as e:
        raise click.ClickException(str(e)) from e


def _echo_json(value: Any) -> None:
    click.echo(json.dumps(to_jsonable_python(value), indent=2, ensure_ascii=False))


@click.group()
@click.version_option()
@click.option("-v", "--verbose", is_flag=True, help="Log debug messages")
def cli(verbose: bool):
    "Render Notion database pages."
    logging.config.dictConfig(LOGGING_CONFIG)
    if verbose:
        logging.getLogger("notionsite").setLevel(logging.DEBUG)


@cli.command(name="page")
@click.argument("page_id")
@click.option("--no-blocks", is_flag=True, help="Only fetch page properties")
@click.option("--html", is_flag=True, help="Print rendered page content")
def page(page_id: str, no_blocks: bool, html: bool):
    result = _run(lambda c: c.get_formatted_page(page_id, fetch_blocks=not no_blocks))

    if html:
        click.echo(render_blocks(result.blocks))
    else:
        _echo_json(result)


@cli.command(name="list")
@click.option("--all", "show_all", is_flag=True, help="Don't filter by status")
@click.option("-s", "--status", default=content.DEFAULT_STATUS, show_default=True)
def list_pages(show_all: bool, status: str):
    _echo_json(
        _run(
            lambda c: c.get_formatted_database(
                filter_by_status=not show_all, status=status
            )
        )
    )


@cli.command(name="slug")
@click.argument("slug")
@click.option("--html", is_flag=True, help="Print rendered page content")
def slug(slug: str, html: bool):
    result = _run(lambda c: c.get_page_by_slug(slug))

    if result is None:
        raise click.ClickException(f"No page with slug: {slug}")

    if html:
        click.echo(render_blocks(result.blocks))
    else:
        _echo_json(result)


@cli.command(name="tag")
@click.argument("tag")
def tag(tag: str):
    _echo_json(_run(lambda c: c.get_pages_by_tag(tag)))


@cli.command(name="category")
@click.argument("category")
def category(category: str):
    _echo_json(_run(lambda c: c.get_pages_by_category(category)))


@cli.command(name="tags")
def tags():
    for name in _run(lambda c: c.get_all_tags()):
        click.echo(name)


@cli.command(name="categories")
def categories():
    for name in _run(lambda c: c.get_all_categories()):
        click.echo(name)


@cli.command(name="search")
@click.argument("query")
def search(query: str):
    _echo_json(_run(lambda c: c.search_pages(query)))


if __name__ == "__main__":
    cli()
