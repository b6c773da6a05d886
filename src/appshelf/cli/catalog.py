import json

import click

from appshelf.bootstrap.manager import build_services
from appshelf.catalog.filtering import CatalogView
from appshelf.catalog.models import Category
from appshelf.catalog.stats import compute_stats
from appshelf.cli.utils import format_item, run


async def _load_view(search, category):
    services = build_services()
    await services.synchronizer.start()
    try:
        await services.synchronizer.wait_for_snapshot(0)
        return CatalogView(services.synchronizer, search=search or "", category=category).visible
    finally:
        await services.synchronizer.stop()
        await services.store.close()


async def _load_items():
    services = build_services()
    await services.synchronizer.start()
    try:
        await services.synchronizer.wait_for_snapshot(0)
        return services.synchronizer.items
    finally:
        await services.synchronizer.stop()
        await services.store.close()


@click.group(name="apps")
def apps():
    """Browse the catalog."""
    pass


@apps.command(name="list")
@click.option("--search", default="", help="Search title and description.")
@click.option(
    "--category",
    type=click.Choice([c.value for c in Category]),
    default=None,
    help="Only list apps in this category.",
)
def list_apps(search, category):
    """List catalog apps, newest first."""
    items = run(_load_view(search, Category(category) if category else None))
    if not items:
        click.echo("No apps found")
        return
    for item in items:
        click.echo(format_item(item))


@apps.command(name="stats")
def stats():
    """Print download and category analytics."""
    summary = compute_stats(run(_load_items()))
    click.echo(json.dumps(summary.model_dump(mode="json"), indent=4))
