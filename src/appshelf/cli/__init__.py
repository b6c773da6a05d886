import click

from appshelf.bootstrap.manager import build_services, load_seed_file, seed_catalog
from appshelf.cli.catalog import apps
from appshelf.cli.utils import configure_logging, run
from appshelf.config.settings import config


@click.group()
@click.option("--log-level", default=None, help="Override APPSHELF_LOG_LEVEL.")
@click.pass_context
def main(ctx, log_level):
    """AppShelf CLI"""
    ctx.ensure_object(dict)
    configure_logging(log_level or config.log_level)

main.add_command(apps)


async def _seed(drafts):
    services = build_services()
    return await seed_catalog(services.synchronizer, drafts)


@main.command()
@click.option("--file", "path", required=True, type=click.Path(exists=True, dir_okay=False), help="YAML file with an 'apps' list.")
def seed(path):
    """Create catalog apps from a YAML file."""
    try:
        drafts = load_seed_file(path)
    except ValueError as exc:
        raise click.UsageError(str(exc))

    if not config.database_url:
        click.echo("APPSHELF_DATABASE_URL is not set; seeded apps will not be persisted", err=True)

    created, failed = run(_seed(drafts))
    for title, reason in failed:
        click.echo(f"Skipped {title or '<untitled>'}: {reason}", err=True)
    click.echo(f"Seeded {len(created)}/{len(drafts)} apps")


@main.command()
def version():
    """Print the application version."""
    from appshelf.version import get_version

    click.echo(get_version())


@main.command()
@click.option('--host', default='127.0.0.1', help='The host to bind to.')
@click.option('--port', default=8000, help='The port to bind to.')
def server(host, port):
    """Run the FastAPI server."""
    import uvicorn

    from appshelf.api.server import create_app

    uvicorn.run(create_app(), host=host, port=port)
