"""CLI entry point for api-workbench."""

import logging
import os
from pathlib import Path

import click
import yaml

from api_workbench.config import PASSPHRASE_ENV, load_settings
from api_workbench.errors import CredentialWriteError, WorkbenchError
from api_workbench.prompts import ClickPrompter
from api_workbench.storage.base import SavedRequest
from api_workbench.storage.detect import detect_format, load_request_spec
from api_workbench.transport.response import Response
from api_workbench.workbench import Workbench


class WorkbenchGroup(click.Group):
    """Click group that reports WorkbenchError as a plain CLI error."""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except WorkbenchError as e:
            raise click.ClickException(str(e)) from e


def _workbench(ctx: click.Context) -> Workbench:
    obj = ctx.ensure_object(dict)
    if "workbench" not in obj:
        settings = load_settings(obj.get("home"))
        passphrase = None
        if settings.vault_backend == "file":
            passphrase = os.getenv(PASSPHRASE_ENV) or click.prompt("Vault passphrase", hide_input=True)
        obj["workbench"] = Workbench.from_settings(settings, passphrase)
    return obj["workbench"]


def _prompter(ctx: click.Context) -> ClickPrompter:
    return ctx.ensure_object(dict).setdefault("prompter", ClickPrompter())


def _require_request(wb: Workbench, request_id: str) -> SavedRequest:
    request = wb.store.get_request(request_id)
    if request is None:
        raise click.ClickException(f"Request {request_id} not found")
    return request


@click.group(cls=WorkbenchGroup)
@click.option("--home", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Data directory (default: $API_WORKBENCH_HOME or ~/.api-workbench).")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, home: Path | None, verbose: bool):
    """API Workbench: compose, send and save HTTP requests."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)["home"] = home


@main.command("collections")
@click.pass_context
def list_collections(ctx: click.Context):
    """List collections and their requests."""
    wb = _workbench(ctx)
    collections = wb.store.list_collections()
    if not collections:
        click.echo("No collections yet.")
        return
    for collection in collections:
        click.echo(f"{collection.name}  [{collection.id}]")
        for request in wb.store.list_requests(collection.id):
            click.echo(f"  {request.method.upper():<7} {request.name}  [{request.id}]")


@main.command("create-collection")
@click.argument("name", required=False)
@click.option("-d", "--description", default=None, help="Collection description.")
@click.pass_context
def create_collection(ctx: click.Context, name: str | None, description: str | None):
    """Create an empty collection."""
    name = name or _prompter(ctx).ask_text("Enter collection name", "My Collection")
    if not name:
        return
    collection = _workbench(ctx).create_collection(name, description)
    click.echo(f"Collection \"{collection.name}\" created [{collection.id}]")


@main.command()
@click.argument("spec_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-c", "--collection", "collection_id", default=None, help="Target collection id.")
@click.option("-n", "--name", default=None, help="Request name.")
@click.pass_context
def save(ctx: click.Context, spec_path: Path, collection_id: str | None, name: str | None):
    """Save a request file (YAML or JSON) into a collection."""
    wb = _workbench(ctx)
    prompter = _prompter(ctx)
    spec = load_request_spec(spec_path)

    if collection_id is None:
        collections = wb.store.list_collections()
        if not collections:
            raise click.ClickException("No collections found. Create a collection first.")
        index = prompter.pick_one([c.name for c in collections], "Select a collection")
        if index is None:
            return
        collection_id = collections[index].id
    elif wb.store.get_collection(collection_id) is None:
        click.echo(f"Warning: collection {collection_id} not found, request saved unlinked", err=True)

    name = name or prompter.ask_text("Enter request name", "My Request", spec.name or None)
    if not name:
        return

    try:
        request_id = wb.save(spec, name, collection_id)
    except CredentialWriteError as e:
        click.echo(f"Warning: {e} [{e.request_id}]", err=True)
        return
    click.echo(f"Request \"{name}\" saved successfully! [{request_id}]")


@main.command()
@click.argument("request_id")
@click.option("--reveal", is_flag=True, help="Merge stored credentials into the output.")
@click.pass_context
def show(ctx: click.Context, request_id: str, reveal: bool):
    """Print a saved request as YAML."""
    wb = _workbench(ctx)
    request = wb.load(request_id) if reveal else wb.store.get_request(request_id)
    if request is None:
        raise click.ClickException(f"Request {request_id} not found")
    click.echo(yaml.safe_dump(request.to_json_dict(), sort_keys=False, allow_unicode=True))


@main.command()
@click.argument("item_id")
@click.option("--kind", type=click.Choice(["collection", "request"]), default="request",
              help="What the id refers to.")
@click.option("-n", "--name", "new_name", default=None, help="New name.")
@click.pass_context
def rename(ctx: click.Context, item_id: str, kind: str, new_name: str | None):
    """Rename a collection or a request."""
    wb = _workbench(ctx)
    item = wb.store.get_collection(item_id) if kind == "collection" else wb.store.get_request(item_id)
    if item is None:
        raise click.ClickException(f"{kind.title()} {item_id} not found")

    new_name = new_name or _prompter(ctx).ask_text(f"Rename {kind}", "", item.name)
    if new_name and new_name != item.name:
        wb.rename(item_id, kind, new_name)
        click.echo(f"Renamed to \"{new_name}\"")


@main.command("delete-request")
@click.argument("request_id")
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def delete_request(ctx: click.Context, request_id: str, yes: bool):
    """Delete a saved request and its credentials."""
    wb = _workbench(ctx)
    request = _require_request(wb, request_id)
    if yes or _prompter(ctx).confirm(f"Delete request \"{request.name}\"?"):
        wb.delete_request(request_id)
        click.echo(f"Deleted request \"{request.name}\"")


@main.command("delete-collection")
@click.argument("collection_id")
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def delete_collection(ctx: click.Context, collection_id: str, yes: bool):
    """Delete a collection, its requests and their credentials."""
    wb = _workbench(ctx)
    collection = wb.store.get_collection(collection_id)
    if collection is None:
        raise click.ClickException(f"Collection {collection_id} not found")
    message = f"Delete collection \"{collection.name}\" and all its requests?"
    if yes or _prompter(ctx).confirm(message):
        wb.delete_collection(collection_id)
        click.echo(f"Deleted collection \"{collection.name}\"")


@main.command()
@click.argument("spec_path", required=False, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--id", "request_id", default=None, help="Send a saved request instead of a file.")
@click.option("-k", "--insecure", is_flag=True, help="Skip TLS certificate verification.")
@click.option("-i", "--include", is_flag=True, help="Print response headers.")
@click.pass_context
def send(ctx: click.Context, spec_path: Path | None, request_id: str | None, insecure: bool, include: bool):
    """Send a request file or a saved request and print the response."""
    if (spec_path is None) == (request_id is None):
        raise click.UsageError("Give either SPEC_PATH or --id.")

    wb = _workbench(ctx)
    if request_id:
        spec = wb.load(request_id)
        if spec is None:
            raise click.ClickException(f"Request {request_id} not found")
    else:
        spec = load_request_spec(spec_path)

    response = wb.send(spec, strict_ssl=False if insecure else None)
    _print_response(response, include)
    if not response.ok:
        ctx.exit(1)


def _print_response(response: Response, include: bool) -> None:
    if not response.ok:
        click.echo(f"Error: {response.error}", err=True)
        return
    click.echo(f"HTTP {response.status} {response.status_text} ({response.duration_ms} ms)")
    if include:
        for header in response.headers:
            click.echo(f"{header.key}: {header.value}")
    click.echo("")
    click.echo(response.data)


@main.command("import")
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def import_collection(ctx: click.Context, file_path: Path):
    """Import a Postman Collection v2.1 export as a new collection."""
    if detect_format(file_path) != "postman":
        raise click.ClickException(f"{file_path} is not a Postman collection")
    collection, failed = _workbench(ctx).import_postman(file_path)
    click.echo(f"Imported {len(collection.request_ids)} requests into \"{collection.name}\" [{collection.id}]")
    for name, problem in failed:
        click.echo(f"Warning: {name}: {problem}", err=True)
