"""
Command-line interface for Home Gallery.

Commands:
    serve: Run the web server together with the scheduled jobs
    index: Index the media root (or a single file) into the catalogue
    folders: List folders that directly contain images
    stats: Show catalogue statistics

Example:
    $ home-gallery --config config.yaml index
    $ home-gallery serve --port 5100
"""

import sys

import click

from home_gallery.config import load_config
from home_gallery.db import MediaCatalogue
from home_gallery.errors import GalleryError
from home_gallery.indexer import Indexer
from home_gallery.models import MediaKind
from home_gallery.scanner import list_folders_with_direct_images
from home_gallery.utils import format_file_size, setup_logging


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True, dir_okay=False), help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def main(ctx, config, verbose):
    """Home Gallery - slideshow, memories and media index for a photo folder.

    Examples:
        home-gallery index
        home-gallery serve
        home-gallery stats
    """
    ctx.ensure_object(dict)

    try:
        config_obj = load_config(config)
    except (FileNotFoundError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    log_level = 'DEBUG' if verbose else config_obj.logging.level
    setup_logging(log_level, config_obj.logging.file, config_obj.logging.format)

    ctx.obj['config'] = config_obj


def _open_catalogue(config) -> MediaCatalogue:
    catalogue = MediaCatalogue(config.database.uri)
    catalogue.create_schema()
    return catalogue


@main.command()
@click.option('--host', type=str, help='Interface to bind (default from config)')
@click.option('--port', '-p', type=int, help='Port to listen on (default from config)')
@click.option('--no-scheduler', is_flag=True, help='Do not run the auto-index and notification jobs')
@click.pass_context
def serve(ctx, host, port, no_scheduler):
    """Run the web server.

    The nightly auto-index and the daily memories notification run in the
    background unless --no-scheduler is given.
    """
    from home_gallery.scheduler import GalleryScheduler
    from home_gallery.web import create_app

    config = ctx.obj['config']
    catalogue = _open_catalogue(config)
    app = create_app(config, catalogue=catalogue)
    services = app.extensions["home_gallery"]

    scheduler = None
    if not no_scheduler:
        scheduler = GalleryScheduler(config, services.indexer, services.notifier)
        scheduler.start()

    try:
        app.run(host=host or config.web.host, port=port or config.web.port, threaded=True, debug=False)
    finally:
        if scheduler is not None:
            scheduler.shutdown()
        catalogue.dispose()


@main.command()
@click.option('--path', 'rel_path', type=str, help='Index a single file, relative to the media root')
@click.option('--force', '-f', is_flag=True, help='Re-probe a file that is already catalogued (with --path)')
@click.pass_context
def index(ctx, rel_path, force):
    """Index new photos and videos into the catalogue.

    Examples:
        home-gallery index
        home-gallery index --path 2019/christmas/IMG_0001.jpg --force
    """
    config = ctx.obj['config']
    catalogue = _open_catalogue(config)
    indexer = Indexer(config, catalogue)

    try:
        if rel_path:
            record = indexer.index_path(rel_path, force=force)
            if record is None:
                click.echo(f"Not a media file: {rel_path}", err=True)
                sys.exit(1)
            click.echo(f"Indexed {record.rel_path}: {record.capture_date} "
                       f"({record.date_source.value}, {format_file_size(record.file_size)})")
            return

        click.echo(f"Indexing media in: {config.media_root}")
        summary = indexer.index_all()

        click.echo("\nIndex complete:")
        click.echo(f"  Indexed: {summary.indexed:,}")
        click.echo(f"  Skipped: {summary.skipped:,}")
        click.echo(f"  Errors: {summary.errors:,}")
        click.echo(f"  Duration: {summary.duration_ms / 1000:.1f}s")
        click.echo(f"  Total in catalogue: {summary.total_in_db:,}")
        if summary.aborted:
            click.echo("Index run was aborted before finishing.", err=True)
            sys.exit(1)

    except GalleryError as e:
        click.echo(f"Error indexing: {e.message}", err=True)
        sys.exit(1)

    finally:
        catalogue.dispose()


@main.command()
@click.pass_context
def folders(ctx):
    """List folders that directly contain at least one image."""
    config = ctx.obj['config']
    try:
        for folder in list_folders_with_direct_images(config.media_root, config.thumbnails.hidden_dir):
            click.echo(folder)
    except FileNotFoundError as e:
        click.echo(f"Error listing folders: {e}", err=True)
        sys.exit(1)


@main.command()
@click.pass_context
def stats(ctx):
    """Show catalogue statistics."""
    config = ctx.obj['config']
    catalogue = _open_catalogue(config)

    try:
        total = catalogue.count()
        click.echo("Media Catalogue Statistics:")
        click.echo("=" * 40)
        click.echo(f"Total files: {total:,}")
        click.echo(f"  Images: {catalogue.count(MediaKind.IMAGE):,}")
        click.echo(f"  Videos: {catalogue.count(MediaKind.VIDEO):,}")
        click.echo(f"Database: {config.database.uri}")
    finally:
        catalogue.dispose()


if __name__ == '__main__':
    main()
