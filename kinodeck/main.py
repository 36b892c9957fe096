"""Application wiring and command line entry point."""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Annotated

import typer
from dotenv import load_dotenv

from kinodeck.core.config import Settings, get_settings
from kinodeck.core.database import make_engine
from kinodeck.core.errors import WatchlistPersistenceError
from kinodeck.models.media import MediaType, WatchlistEntry
from kinodeck.services.detail import DetailState, DetailViewModelBuilder
from kinodeck.services.source import MetadataSource
from kinodeck.services.storage import KeyValueStorage, SQLStorage
from kinodeck.services.tmdb import TMDBSource
from kinodeck.services.watchlist import WatchlistStore

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """The single store and builder the presentation layer is handed."""

    settings: Settings
    watchlist: WatchlistStore
    details: DetailViewModelBuilder


def build_watchlist(
    settings: Settings, storage: KeyValueStorage | None = None
) -> WatchlistStore:
    if storage is None:
        storage = SQLStorage(make_engine(settings.database_url))
    return WatchlistStore(storage, key=settings.watchlist_key)


def build_context(
    settings: Settings | None = None,
    source: MetadataSource | None = None,
    storage: KeyValueStorage | None = None,
) -> AppContext:
    """Wire services from settings; any piece can be swapped for tests."""
    settings = settings or get_settings()
    if source is None:
        source = TMDBSource(settings)
    return AppContext(
        settings=settings,
        watchlist=build_watchlist(settings, storage),
        details=DetailViewModelBuilder(source),
    )


def configure_logging(settings: Settings) -> None:
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level)
    logging.basicConfig(
        level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )


app = typer.Typer(help="Browse TMDB titles and keep a watchlist.", no_args_is_help=True)


@app.callback()
def startup() -> None:
    load_dotenv()
    configure_logging(get_settings())


@app.command()
def show(
    media_type: Annotated[MediaType, typer.Argument(help="movie or tv")],
    media_id: Annotated[int, typer.Argument(help="TMDB id")],
    toggle: Annotated[
        bool, typer.Option("--toggle", help="Add to / remove from the watchlist")
    ] = False,
) -> None:
    """Load a title and print its detail view model as JSON."""
    context = build_context()
    snapshot = asyncio.run(context.details.load(media_type, media_id))
    typer.echo(snapshot.model_dump_json(indent=2, exclude={"stale", "token"}))

    if snapshot.state != DetailState.READY:
        raise typer.Exit(code=1)

    entry = WatchlistEntry.from_detail(snapshot.detail)
    if toggle:
        try:
            listed = context.watchlist.toggle(entry)
        except WatchlistPersistenceError as exc:
            typer.echo(f"Could not update watchlist: {exc}", err=True)
            raise typer.Exit(code=1) from exc
    else:
        listed = context.watchlist.contains(entry.id, entry.media_type)
    typer.echo(f"In watchlist: {'yes' if listed else 'no'}")


@app.command()
def watchlist() -> None:
    """Print the watchlist as JSON."""
    store = build_watchlist(get_settings())
    entries = [
        entry.model_dump(mode="json", by_alias=True)
        for entry in store.entries()
    ]
    typer.echo(json.dumps(entries, indent=2, ensure_ascii=False))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
