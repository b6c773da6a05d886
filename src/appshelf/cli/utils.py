import asyncio
import logging

import click

from appshelf.catalog.errors import CatalogError
from appshelf.catalog.models import CatalogItem

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str):
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def run(coro):
    """Run a coroutine for a command, turning catalog errors into click errors."""
    try:
        return asyncio.run(coro)
    except CatalogError as exc:
        raise click.ClickException(exc.message)
    except asyncio.TimeoutError:
        raise click.ClickException("Timed out waiting for the catalog to load")


def format_item(item: CatalogItem) -> str:
    flag = " *" if item.featured else ""
    return f"{item.id} - {item.title} [{item.category.value}] - {item.downloads} downloads{flag}"
