"""Top the catalog up with popular movies from TMDb."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from moviecat.db import session_scope
from moviecat.services.catalog import (
    MAX_BIRTH_YEAR,
    MIN_BIRTH_YEAR,
    CatalogError,
    CatalogWriter,
    InvalidRecord,
)
from moviecat.services.models import MovieDetails
from moviecat.services.tmdb import TMDbClient, TMDbError


logger = logging.getLogger(__name__)


def lookup_birth_year(client: TMDbClient, name: str) -> int | None:
    """Birth year for ``name``, or None when TMDb fails or does not know it."""
    try:
        year = client.person_birth_year(name)
    except TMDbError as exc:
        logger.warning("Birth year lookup for %r failed: %s", name, exc)
        return None
    if year is None or not MIN_BIRTH_YEAR <= year <= MAX_BIRTH_YEAR:
        return None
    return year


def save_movie(
    session_factory: sessionmaker[Session],
    client: TMDbClient,
    writer: CatalogWriter,
    details: MovieDetails,
) -> int:
    """Store one movie with its director and cast in a single transaction.

    Birth years are fetched before the transaction opens so no database work
    waits on the network.
    """
    if not details.director:
        raise InvalidRecord(f"TMDb lists no director for '{details.title}'")
    cast = [(name, lookup_birth_year(client, name)) for name in details.cast]

    with session_scope(session_factory) as session:
        director = writer.upsert_person(session, details.director)
        movie = writer.insert_movie(
            session,
            title=details.title,
            director_id=director.id,
            release_year=details.release_year,
            length_minutes=details.length_minutes,
        )
        for name, birth_year in cast:
            actor = writer.upsert_person(session, name, birth_year)
            writer.link_actor(session, movie.id, actor.id)
        movie_id = movie.id
    logger.info("Successfully added movie: %s", details.title)
    return movie_id


def seed_catalog(
    session_factory: sessionmaker[Session],
    client: TMDbClient,
    writer: CatalogWriter,
    *,
    target: int,
) -> int:
    """Add popular movies until the catalog holds ``target``; returns how many were added.

    A failed detail fetch or save skips that movie. A failed page fetch ends
    seeding early since no further candidates can be found.
    """
    with session_scope(session_factory) as session:
        current = writer.counts(session).movies
    if current >= target:
        logger.info("Catalog already has %d movies, skipping seeding", current)
        return 0

    wanted = target - current
    added = 0
    page = 1
    logger.info("Catalog has %d movies, adding %d more", current, wanted)
    while added < wanted:
        try:
            listing = client.popular_movies(page)
        except TMDbError as exc:
            logger.error("Fetching popular movies page %d failed: %s", page, exc)
            break

        for brief in listing.results:
            if added >= wanted:
                break
            try:
                details = client.movie_details(brief.id)
            except TMDbError as exc:
                logger.warning("Fetching details for %r failed: %s", brief.title, exc)
                continue
            try:
                save_movie(session_factory, client, writer, details)
            except (CatalogError, SQLAlchemyError) as exc:
                logger.warning("Saving %r failed: %s", details.title, exc)
                continue
            added += 1

        if listing.is_last or not listing.results:
            break
        page += 1

    logger.info("Seeded %d movies", added)
    return added
