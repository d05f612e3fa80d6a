"""Click CLI entry point.

Usage:
    minara-cms serve --port 5000
    minara-cms init-db
    minara-cms check
    minara-cms reslug --resource articles
    minara-cms slug "Al-Fatiha: An Introduction"
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import click

from minara_cms.utils.logging import BOLD, DIM, GREEN, RESET, YELLOW, get_logger

log = get_logger()

_SCHEMA_PATH = Path(__file__).parent / "schema.sql"


@click.group()
def cli() -> None:
    """Minara Masjid content backend CLI."""
    pass


@cli.command()
@click.option("--host", default=None, help="Bind address (default from HOST)")
@click.option("--port", default=None, type=int, help="Port (default from PORT)")
@click.option("--reload", is_flag=True, help="Restart on code changes")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the API and pages with uvicorn."""
    import uvicorn

    from minara_cms.config import settings

    uvicorn.run(
        "minara_cms.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level=settings.log_level,
    )


@cli.command("init-db")
def init_db() -> None:
    """Create tables from schema.sql (idempotent)."""
    asyncio.run(_init_db())


async def _init_db() -> None:
    from minara_cms.db import ContentStore

    store = await ContentStore.connect()
    try:
        click.echo(f"  {DIM}Applying schema...{RESET}")
        await store.execute_script(_SCHEMA_PATH.read_text(encoding="utf-8"))
        click.echo(f"  {GREEN}✓{RESET} Schema applied")
    finally:
        await store.close()


@cli.command()
def check() -> None:
    """Show live record counts per resource."""
    asyncio.run(_check())


async def _check() -> None:
    from minara_cms.db import ContentStore
    from minara_cms.resource_config import get_all_resources

    store = await ContentStore.connect()
    try:
        click.echo(f"\n{BOLD}Minara CMS - Database Stats{RESET}\n")
        click.echo(f"  {'Resource':<16} {'Table':<18} {'Records':>8}")
        click.echo(f"  {'─' * 16} {'─' * 18} {'─' * 8}")

        total = 0
        for resource in get_all_resources():
            rows = await store.list_records(resource)
            total += len(rows)
            click.echo(f"  {resource.name:<16} {resource.table:<18} {len(rows):>8}")

        galleries = await store.search_galleries()
        click.echo(f"  {'galleries':<16} {'galleries':<18} {len(galleries):>8}")
        click.echo(f"\n  {GREEN}Total: {total + len(galleries)} records{RESET}\n")
    finally:
        await store.close()


@cli.command()
@click.option("--resource", "resource_name", default=None, help="Resource name (default: all with a slug column)")
@click.option("--dry-run", is_flag=True, help="Report changes without writing")
def reslug(resource_name: str | None, dry_run: bool) -> None:
    """Recompute stored slugs from current titles."""
    asyncio.run(_reslug(resource_name, dry_run))


async def _reslug(resource_name: str | None, dry_run: bool) -> None:
    from minara_cms.config import settings
    from minara_cms.db import ContentStore
    from minara_cms.resource_config import get_all_resources, get_resource
    from minara_cms.text.language import parse_language_order
    from minara_cms.text.normalize import record_slug

    if resource_name:
        resource = get_resource(resource_name)
        if resource is None or not resource.slug:
            click.echo(f"Error: '{resource_name}' is not a resource with slugs")
            raise SystemExit(1)
        resources = [resource]
    else:
        resources = [r for r in get_all_resources() if r.slug]

    order = parse_language_order(settings.language_order)
    store = await ContentStore.connect()
    try:
        for resource in resources:
            changed = 0
            for row in await store.list_records(resource, include_deleted=True):
                slug = record_slug(row, resource, order)
                if slug == row.get("slug"):
                    continue
                changed += 1
                click.echo(f"  {DIM}{resource.name}#{row['id']}{RESET} {row.get('slug')!r} → {slug!r}")
                if not dry_run:
                    await store.update_slug(resource, row["id"], slug)
            color = YELLOW if dry_run and changed else GREEN
            click.echo(f"  {color}✓{RESET} {resource.name}: {changed} slugs {'to update' if dry_run else 'updated'}")
    finally:
        await store.close()


@cli.command()
@click.argument("text")
def slug(text: str) -> None:
    """Print the canonical slug and text direction for TEXT."""
    from minara_cms.text.language import detect_direction
    from minara_cms.text.slug import compute_slug

    click.echo(compute_slug(text) or f"{YELLOW}(empty){RESET}")
    click.echo(f"{DIM}direction: {detect_direction(text)}{RESET}")


if __name__ == "__main__":
    cli()
