"""Console entrypoint: bootstrap the store, seed it, then run the REPL."""

from __future__ import annotations

import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from moviecat.commands import CommandInterpreter
from moviecat.console import Console
from moviecat.core.config import Settings, get_settings
from moviecat.db import create_store_engine, init_models, make_session_factory
from moviecat.services.catalog import CatalogWriter
from moviecat.services.listing import MovieLister
from moviecat.services.seed import seed_catalog
from moviecat.services.tmdb import TMDbClient

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def main(console: Console | None = None) -> int:
    settings = get_settings()
    configure_logging(settings)
    console = console or Console()

    try:
        engine = create_store_engine(settings.database_url)
    except (SQLAlchemyError, ImportError) as exc:
        # ImportError: the URL names a DB driver that is not installed.
        logger.critical("Could not connect to the database: %s", exc)
        return 1

    try:
        init_models(engine, reset=settings.reset_schema)
        session_factory = make_session_factory(engine)
        writer = CatalogWriter()

        if settings.tmdb_api_key:
            added = seed_catalog(
                session_factory,
                TMDbClient(),
                writer,
                target=settings.seed_target,
            )
            console.say(f"Successfully added {added} movies to the database.")
        else:
            logger.warning("TMDB_API_KEY is not configured, skipping catalog seeding")
    except SQLAlchemyError as exc:
        logger.critical("Database setup failed: %s", exc)
        engine.dispose()
        return 1

    interpreter = CommandInterpreter(session_factory, console, writer=writer, lister=MovieLister())
    try:
        interpreter.run()
    except KeyboardInterrupt:
        console.say()
    finally:
        engine.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
