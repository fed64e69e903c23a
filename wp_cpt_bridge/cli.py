"""
CLI interface for wp-cpt-bridge management commands.

Provides command-line access to:
- post-types / taxonomies: Show the metadata the shop sees for a store
- flush-cache: Drop cached metadata
- check-plugin: Run the companion plugin integration check
- wp-check: Verify WordPress reachability and credentials
- status: Display bridge configuration
"""

import asyncio
import json
import logging
from typing import Optional

import click

from . import config as config_module
from . import wordpress_api
from .cache import build_cache
from .config import Settings
from .loader import MetadataLoader
from .events import Event
from .observers import INTEGRATION_TESTS_EVENT, Observer
from .plugin import IntegrationTestHelper, plugin_target

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
log = logging.getLogger("wp-cpt-bridge.cli")


def _build_loader() -> MetadataLoader:
    settings = config_module.settings
    return MetadataLoader(
        build_cache(settings.cache_dir),
        wordpress_api.WordPressContext,
        post_type_ignore=settings.post_type_ignorelist,
        taxonomy_ignore=settings.taxonomy_ignorelist,
        permalink_plugin=settings.cpt_permalink_plugin,
    )


def _store_option(func):
    return click.option(
        "--store-id",
        type=int,
        default=None,
        help="Store identifier (defaults to WP_STORE_ID)",
    )(func)


def _resolve_store(store_id: Optional[int]) -> int:
    return config_module.settings.store_id if store_id is None else store_id


@click.group()
@click.option(
    "--config-file",
    type=click.Path(exists=True),
    help="Path to environment file with configuration",
)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[str], debug: bool) -> None:
    """WordPress custom post type bridge CLI management tool."""
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)
        log.debug("Debug mode enabled")

    # Load configuration from specified file if provided
    if config_file:
        log.info(f"Loading configuration from: {config_file}")
        from pydantic_settings import SettingsConfigDict

        class LocalSettings(Settings):
            model_config = SettingsConfigDict(
                env_file=config_file,
                env_file_encoding="utf-8",
                extra="ignore",
            )

        # Replace global settings for this CLI session
        config_module.settings = LocalSettings()
        wordpress_api.settings = config_module.settings
        log.debug("Configuration loaded from custom file")

    settings = config_module.settings
    log.debug("Configuration loaded:")
    log.debug(f"  wp_base_url: {settings.wp_base_url}")
    log.debug(f"  wp_app_password: {'*' * 8 if settings.wp_app_password else 'None'}")
    log.debug(f"  cache_dir: {settings.cache_dir}")

    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file
    ctx.obj["debug"] = debug


@cli.command(name="post-types")
@_store_option
@click.option("--format", "output_format", type=click.Choice(["json", "table"]), default="table", help="Output format")
@click.pass_context
def post_types_cmd(ctx: click.Context, store_id: Optional[int], output_format: str) -> None:
    """List the post types integrated for a store."""
    store = _resolve_store(store_id)
    log.info("Loading post types for store %s", store)

    post_types = asyncio.run(_build_loader().get_post_types(store))
    if not post_types:
        raise click.ClickException(
            f"No post type data available for store {store}"
        )

    if output_format == "json":
        click.echo(
            json.dumps({k: v.model_dump() for k, v in post_types.items()}, indent=2)
        )
        return

    click.echo(f"Post types for store {store}:")
    for key, post_type in post_types.items():
        archive = post_type.archive_slug if post_type.has_archive_page() else "-"
        searchable = "no" if post_type.exclude_from_search == 1 else "yes"
        click.echo(
            f"  {key}: {post_type.display_title} "
            f"(archive: {archive}, rewrite: {post_type.rewrite_slug or '-'}, search: {searchable})"
        )


@cli.command(name="taxonomies")
@_store_option
@click.option("--format", "output_format", type=click.Choice(["json", "table"]), default="table", help="Output format")
@click.pass_context
def taxonomies_cmd(ctx: click.Context, store_id: Optional[int], output_format: str) -> None:
    """List the taxonomies integrated for a store."""
    store = _resolve_store(store_id)
    log.info("Loading taxonomies for store %s", store)

    taxonomies = asyncio.run(_build_loader().get_taxonomies(store))
    if not taxonomies:
        raise click.ClickException(f"No taxonomy data available for store {store}")

    if output_format == "json":
        click.echo(
            json.dumps({k: v.model_dump() for k, v in taxonomies.items()}, indent=2)
        )
        return

    click.echo(f"Taxonomies for store {store}:")
    for key, taxonomy in taxonomies.items():
        builtin = " [builtin]" if taxonomy.builtin else ""
        click.echo(f"  {key}: rewrite {taxonomy.rewrite_slug or '-'}{builtin}")


@cli.command(name="flush-cache")
@_store_option
@click.pass_context
def flush_cache_cmd(ctx: click.Context, store_id: Optional[int]) -> None:
    """Drop cached WordPress metadata (all stores unless --store-id is given)."""
    if not config_module.settings.cache_dir:
        click.echo("No CACHE_DIR configured; the in-memory cache needs no flush.")
        return

    _build_loader().flush(store_id)
    target = f"store {store_id}" if store_id is not None else "all stores"
    click.echo(f"✓ Cache flushed for {target}")


@cli.command(name="check-plugin")
@_store_option
@click.pass_context
def check_plugin_cmd(ctx: click.Context, store_id: Optional[int]) -> None:
    """Check that the companion WordPress plugin is installed and producing data."""
    store = _resolve_store(store_id)
    observer = Observer(_build_loader(), wordpress_path=config_module.settings.wp_path)
    helper = IntegrationTestHelper()

    async def _run():
        await observer.apply_integration_tests(
            Event(INTEGRATION_TESTS_EVENT, helper=helper, store_id=store)
        )

    asyncio.run(_run())

    if helper.warnings:
        for warning in helper.warnings:
            click.echo(f"⚠ {warning.title}: {warning.message}", err=True)
            if warning.link:
                click.echo(f"  More information: {warning.link}", err=True)
        raise click.ClickException("Integration check reported warnings")

    click.echo("✓ Custom Post Types plugin installed and data available")


@cli.command(name="wp-check")
@click.pass_context
def wp_check_cmd(ctx: click.Context) -> None:
    """Verify WordPress reachability and credentials."""

    log.info("Checking WordPress reachability and credentials")

    async def _check():
        ping_ok = False
        cred_ok = False
        ping_error = None
        cred_error = None

        try:
            ping_info = await wordpress_api.ping_wp_api()
            ping_ok = True
            click.echo("✓ WordPress reachable")
            click.echo(f"  Name: {ping_info.get('name', 'Unknown')}")
        except Exception as exc:  # pragma: no cover - logging path
            ping_error = str(exc)
            log.error("WordPress ping failed: %s", exc, exc_info=ctx.obj.get("debug", False))
            click.echo(f"✗ WordPress ping failed: {exc}", err=True)

        try:
            creds_info = await wordpress_api.check_wp_credentials()
            cred_ok = True
            click.echo("✓ WordPress credentials valid")
            click.echo(
                f"  Auth user: {creds_info.get('name', 'unknown')} (id={creds_info.get('id')})"
            )
        except Exception as exc:  # pragma: no cover - logging path
            cred_error = str(exc)
            log.error("WordPress credential check failed: %s", exc, exc_info=ctx.obj.get("debug", False))
            click.echo(f"✗ WordPress credential check failed: {exc}", err=True)

        if not (ping_ok and cred_ok):
            raise click.ClickException(
                "WordPress check failed: "
                + "; ".join(filter(None, [ping_error, cred_error]))
            )

    asyncio.run(_check())


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Display bridge configuration."""
    log.info("Displaying bridge status")
    settings = config_module.settings

    click.echo("WordPress Custom Post Type Bridge Status:")
    click.echo()

    click.echo("Configuration:")
    click.echo(f"  WordPress base URL: {settings.wp_base_url or 'Not configured'}")
    click.echo(f"  WordPress username: {settings.wp_username or 'Not configured'}")
    wp_password_status = "✓" if settings.wp_app_password else "✗"
    click.echo(f"  WordPress password configured: {wp_password_status}")
    click.echo(f"  WordPress path: {settings.wp_path or 'Not configured'}")
    click.echo(f"  Store ID: {settings.store_id}")
    click.echo(f"  Cache: {'file (' + settings.cache_dir + ')' if settings.cache_dir else 'memory'}")
    click.echo(f"  Ignored post types: {', '.join(settings.post_type_ignorelist)}")
    click.echo(f"  Ignored taxonomies: {', '.join(settings.taxonomy_ignorelist)}")

    target = plugin_target(settings.wp_path)
    if target is None:
        click.echo("  Companion plugin: unknown (WP_PATH not set)")
    else:
        installed = "✓" if target.is_file() else "✗"
        click.echo(f"  Companion plugin: {installed} ({target})")

    log.info("Configuration check completed")


if __name__ == "__main__":
    cli()
