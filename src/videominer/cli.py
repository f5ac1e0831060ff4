"""CLI interface — thin wrapper over the resource services and the FastAPI server."""

import json
import logging
from enum import Enum

import typer

from videominer.config import settings
from videominer.pagination import InvalidPageRequestError
from videominer.service import CommentForbiddenError, ResourceNotFoundError, Services
from videominer.storage.sqlite import SQLiteDatabase


app = typer.Typer(
    name="videominer",
    help="Serve and inspect mined YouTube channels, videos, comments and captions.",
    no_args_is_help=True,
)


class Resource(str, Enum):
    channels = "channels"
    videos = "videos"
    comments = "comments"
    captions = "captions"


def _get_services() -> Services:
    """Create services backed by the configured database."""
    settings.ensure_dirs()
    return Services.from_database(SQLiteDatabase())


def _echo_json(data) -> None:
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


@app.command(name="list")
def list_resources(
    resource: Resource = typer.Argument(..., help="Resource to list."),
    page: int = typer.Option(0, "--page", "-p", help="Zero-based page number."),
    size: int = typer.Option(settings.default_page_size, "--size", "-n", help="Page size."),
    name: str | None = typer.Option(None, "--name", help="Exact name to match."),
    order: str | None = typer.Option(None, "--order", "-o", help="Sort field, '-' prefix for descending."),
    containing: str | None = typer.Option(None, "--containing", "-c", help="Text the name must contain."),
) -> None:
    """List one page of a resource as JSON."""
    svc = getattr(_get_services(), resource.value)
    try:
        items = svc.find_all(page=page, size=size, name=name, order=order, containing=containing)
    except ResourceNotFoundError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)
    except InvalidPageRequestError as e:
        typer.echo(f"⚠️  {e}", err=True)
        raise typer.Exit(code=1)
    _echo_json([item.model_dump(mode="json", by_alias=True) for item in items])


@app.command()
def show(
    resource: Resource = typer.Argument(..., help="Resource type."),
    entity_id: str = typer.Argument(..., help="ID of the record to show."),
) -> None:
    """Show a single record as JSON."""
    svc = getattr(_get_services(), resource.value)
    try:
        item = svc.get(entity_id)
    except (ResourceNotFoundError, CommentForbiddenError) as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)
    _echo_json(item.model_dump(mode="json", by_alias=True))


@app.command()
def delete(
    resource: Resource = typer.Argument(..., help="Resource type."),
    entity_id: str = typer.Argument(..., help="ID of the record to delete."),
) -> None:
    """Delete a record and everything it owns."""
    svc = getattr(_get_services(), resource.value)
    try:
        svc.delete(entity_id)
    except ResourceNotFoundError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"🗑️  Deleted {resource.value[:-1]}: {entity_id}")


@app.command()
def serve(
    host: str = typer.Option(settings.host, "--host", help="Host to bind to."),
    port: int = typer.Option(settings.port, "--port", help="Port to bind to."),
    reload: bool = typer.Option(False, "--reload", help="Enable hot-reload for development."),
) -> None:
    """Start the videominer REST API."""
    import uvicorn

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    typer.echo(f"Starting videominer API on http://{host}:{port}/videominer")
    uvicorn.run(
        "videominer.server:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )
