"""
Metrolog メインアプリケーション
Command-line host for the measurement log ingestion & query engine.

The host owns the store: it opens it once per invocation, hands it to the
services and closes it on exit. Results are printed as JSON.
"""
import functools
import json

import click

import config
from metrolog.db import StorageError, open_store
from metrolog.export import export_csv_content
from metrolog.filters import SORT_COLUMNS, SORT_ORDERS, STATUS_CHOICES, LogFilters
from metrolog.folders import FolderService
from metrolog.logging_config import setup_logging
from metrolog.queries import DISTRIBUTION_FIELDS, GRANULARITIES, QueryService
from metrolog.storage import IngestionService


def _echo_json(data):
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _storage_errors(f):
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except StorageError as e:
            raise click.ClickException(str(e))
    return wrapper


def _filter_params(f):
    """一覧・エクスポート共通のフィルタオプション"""
    options = [
        click.option("--status", type=click.Choice(STATUS_CHOICES), default="all", show_default=True),
        click.option("--date-from", default=None, help="inclusive, compared as text"),
        click.option("--date-to", default=None, help="inclusive, compared as text"),
        click.option("--error-search", default=None, help="case-sensitive substring of the error description"),
        click.option("--group", "measurement_group", default=None),
        click.option("--style", "measurement_style", default=None),
        click.option("--file", "file_source", default=None, help="exact file source"),
        click.option("--folder", "folder_id", type=int, default=None),
        click.option("--sort-by", type=click.Choice(SORT_COLUMNS), default="date", show_default=True),
        click.option("--sort-order", type=click.Choice(SORT_ORDERS), default="desc", show_default=True),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _file_scope_param(f):
    return click.option(
        "--file", "file_sources", multiple=True,
        help="restrict to this file source (repeatable)",
    )(f)


def _build_filters(kwargs) -> LogFilters:
    return LogFilters.from_dict(kwargs)


@click.group()
@click.option("--db", "db_uri", default=None, help="SQLAlchemy database URI (default: config)")
@click.pass_context
def main(ctx, db_uri):
    """Metrolog: import measurement logs and query them."""
    setup_logging()
    try:
        store = open_store(db_uri)
    except StorageError as e:
        raise click.ClickException(f"Cannot open database: {e}")
    ctx.obj = store
    ctx.call_on_close(store.close)


# ── 取り込み ──

@main.command(name="import")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def import_logs(store, paths):
    """Import one or more log files."""
    ingestion = IngestionService(store)
    results = []
    for path in paths:
        result = ingestion.import_file(path)
        results.append({"path": path, **result})
    _echo_json(results)
    if not all(r["success"] for r in results):
        raise SystemExit(1)


# ── 一覧・統計 ──

@main.command(name="logs")
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--page-size", type=int, default=config.DEFAULT_PAGE_SIZE, show_default=True)
@_filter_params
@click.pass_obj
def list_logs(store, page, page_size, **kwargs):
    """One page of records matching the filters."""
    try:
        result = QueryService(store).list_records(page, page_size, _build_filters(kwargs))
    except ValueError as e:
        raise click.BadParameter(str(e))
    _echo_json(result)


@main.command(name="export-csv")
@click.option("-o", "--output", type=click.Path(dir_okay=False, writable=True), default=None,
              help="write to this file instead of stdout")
@_filter_params
@click.pass_obj
@_storage_errors
def export_csv(store, output, **kwargs):
    """All records matching the filters, as CSV."""
    content = export_csv_content(QueryService(store), _build_filters(kwargs))
    if output:
        with open(output, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        click.echo(f"Exported to {output}")
    else:
        click.echo(content, nl=False)


@main.command()
@_file_scope_param
@click.pass_obj
def stats(store, file_sources):
    """Dashboard statistics."""
    _echo_json(QueryService(store).dashboard_stats(list(file_sources)))


@main.command()
@_file_scope_param
@click.option("--granularity", type=click.Choice(GRANULARITIES), default="day", show_default=True)
@click.pass_obj
def trend(store, file_sources, granularity):
    """Success/failure counts per day or hour."""
    _echo_json(QueryService(store).trend(list(file_sources), granularity))


@main.command(name="top-errors")
@_file_scope_param
@click.option("--limit", type=int, default=config.TOP_ERRORS_LIMIT, show_default=True)
@click.pass_obj
def top_errors(store, file_sources, limit):
    """Most frequent error descriptions."""
    _echo_json(QueryService(store).top_errors(list(file_sources), limit))


@main.command()
@click.argument("field", type=click.Choice(sorted(DISTRIBUTION_FIELDS)))
@_file_scope_param
@click.pass_obj
def distribution(store, field, file_sources):
    """Record counts per category of FIELD."""
    _echo_json(QueryService(store).distribution(field, list(file_sources)))


@main.command()
@click.pass_obj
def options(store):
    """Distinct values for the filter pickers."""
    _echo_json(QueryService(store).filter_options())


# ── ファイル・フォルダ ──

@main.command()
@click.pass_obj
def files(store):
    """Imported files, newest first."""
    _echo_json(FolderService(store).list_imported_files())


@main.command()
@click.pass_obj
def folders(store):
    """All folders."""
    _echo_json(FolderService(store).list_folders())


def _report_change(changed: bool):
    _echo_json({"success": changed})
    if not changed:
        raise SystemExit(1)


@main.command(name="folder-create")
@click.argument("name")
@click.pass_obj
@_storage_errors
def folder_create(store, name):
    _echo_json(FolderService(store).create_folder(name))


@main.command(name="folder-rename")
@click.argument("folder_id", type=int)
@click.argument("name")
@click.pass_obj
@_storage_errors
def folder_rename(store, folder_id, name):
    _report_change(FolderService(store).rename_folder(folder_id, name))


@main.command(name="folder-delete")
@click.argument("folder_id", type=int)
@click.pass_obj
@_storage_errors
def folder_delete(store, folder_id):
    """Delete a folder; its files stay, unassigned."""
    _report_change(FolderService(store).delete_folder(folder_id))


@main.command()
@click.argument("file_source")
@click.argument("folder_id", type=int, required=False)
@click.pass_obj
@_storage_errors
def assign(store, file_source, folder_id):
    """Put FILE_SOURCE into FOLDER_ID, or take it out of any folder if omitted."""
    _report_change(FolderService(store).assign_file_to_folder(file_source, folder_id))


@main.command(name="delete-file")
@click.argument("file_source")
@click.confirmation_option(prompt="Delete every record of this file?")
@click.pass_obj
@_storage_errors
def delete_file(store, file_source):
    """Delete every record imported from FILE_SOURCE."""
    _report_change(FolderService(store).delete_file(file_source))


if __name__ == "__main__":
    main()
