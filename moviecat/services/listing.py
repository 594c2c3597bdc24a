"""Build and run the movie listing query, and render its rows.

Filters are regular expressions matched case-sensitively against titles and
names. They are always bound parameters: ``regexp_match`` renders ``~`` on
PostgreSQL and ``REGEXP`` on SQLite, where SQLAlchemy backs it with
:func:`re.search`.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Iterator

from sqlalchemy import Select, select
from sqlalchemy.orm import Session, aliased

from moviecat.models import Movie, MovieActor, Person


class Ordering(enum.Enum):
    TITLE = "title"
    LENGTH_ASC = "length_asc"
    LENGTH_DESC = "length_desc"


class InvalidPattern(ValueError):
    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid regular expression '{pattern}': {reason}")
        self.pattern = pattern


def check_pattern(pattern: str) -> str:
    """Reject patterns Python cannot compile before they reach the database."""
    try:
        re.compile(pattern)
    except re.error as exc:
        raise InvalidPattern(pattern, str(exc)) from exc
    return pattern


@dataclass(frozen=True, slots=True)
class MovieFilter:
    title: str | None = None
    director: str | None = None
    actor: str | None = None


@dataclass(frozen=True, slots=True)
class MovieRow:
    id: int
    title: str
    director: str
    release_year: int | None
    length_minutes: int


@dataclass(frozen=True, slots=True)
class CastRow:
    name: str
    birth_year: int | None
    age: int | None


Director = aliased(Person, name="director")
CastMember = aliased(Person, name="cast_member")


def _actor_exists(pattern: str):
    return (
        select(MovieActor.movie_id)
        .join(CastMember, MovieActor.actor_id == CastMember.id)
        .where(MovieActor.movie_id == Movie.id, CastMember.name.regexp_match(pattern))
        .exists()
    )


def build_movie_query(filters: MovieFilter | None = None, ordering: Ordering = Ordering.TITLE) -> Select:
    """Compose the listing statement: base join, optional filters, one ordering."""

    filters = filters or MovieFilter()
    query = select(
        Movie.id,
        Movie.title,
        Director.name.label("director"),
        Movie.release_year,
        Movie.length_minutes,
    ).join(Director, Movie.director_id == Director.id)

    if filters.title is not None:
        query = query.where(Movie.title.regexp_match(filters.title))
    if filters.director is not None:
        query = query.where(Director.name.regexp_match(filters.director))
    if filters.actor is not None:
        query = query.where(_actor_exists(filters.actor))

    if ordering is Ordering.LENGTH_ASC:
        query = query.order_by(Movie.length_minutes.asc(), Movie.title)
    elif ordering is Ordering.LENGTH_DESC:
        query = query.order_by(Movie.length_minutes.desc(), Movie.title)
    else:
        query = query.order_by(Movie.title)
    return query


def build_cast_query(movie_id: int, actor_pattern: str | None = None) -> Select:
    """Cast of one movie with each actor's age in the film's release year."""

    query = (
        select(
            CastMember.name,
            CastMember.birth_year,
            (Movie.release_year - CastMember.birth_year).label("age"),
        )
        .select_from(MovieActor)
        .join(CastMember, MovieActor.actor_id == CastMember.id)
        .join(Movie, MovieActor.movie_id == Movie.id)
        .where(MovieActor.movie_id == movie_id)
    )
    if actor_pattern is not None:
        query = query.where(CastMember.name.regexp_match(actor_pattern))
    return query.order_by(CastMember.name)


class MovieLister:
    """Runs listing queries against a session."""

    def movies(
        self,
        session: Session,
        filters: MovieFilter | None = None,
        ordering: Ordering = Ordering.TITLE,
    ) -> list[MovieRow]:
        rows = session.execute(build_movie_query(filters, ordering)).all()
        return [
            MovieRow(
                id=row.id,
                title=row.title,
                director=row.director,
                release_year=row.release_year,
                length_minutes=row.length_minutes,
            )
            for row in rows
        ]

    def cast(self, session: Session, movie_id: int, actor_pattern: str | None = None) -> list[CastRow]:
        rows = session.execute(build_cast_query(movie_id, actor_pattern)).all()
        return [CastRow(name=row.name, birth_year=row.birth_year, age=row.age) for row in rows]

    def render(
        self,
        session: Session,
        filters: MovieFilter | None = None,
        ordering: Ordering = Ordering.TITLE,
        *,
        verbose: bool = False,
    ) -> Iterator[str]:
        """Yield the output lines for a listing, cast included when ``verbose``."""

        filters = filters or MovieFilter()
        for movie in self.movies(session, filters, ordering):
            yield format_movie(movie)
            if not verbose:
                continue
            yield "    Starring:"
            for member in self.cast(session, movie.id, filters.actor):
                yield format_cast_member(member)


def format_runtime(length_minutes: int) -> str:
    hours, minutes = divmod(length_minutes, 60)
    return f"{hours:02d}:{minutes:02d}"


def format_movie(movie: MovieRow) -> str:
    year = movie.release_year if movie.release_year is not None else "unknown year"
    return f"{movie.title} by {movie.director} in {year}, {format_runtime(movie.length_minutes)}"


def format_cast_member(member: CastRow) -> str:
    if member.birth_year is None:
        return f"        - {member.name} (birth year missing)"
    if member.age is None:
        return f"        - {member.name} (age unknown)"
    return f"        - {member.name} at age {member.age}"
