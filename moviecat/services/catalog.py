"""Writes to the catalog: people, movies, cast links and guarded deletion.

Every operation takes the session it runs in. Callers own the transaction
(see :func:`moviecat.db.session_scope`), so a failure anywhere in a unit of
work rolls back all of it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from moviecat.models import Movie, MovieActor, Person


logger = logging.getLogger(__name__)

MIN_BIRTH_YEAR = 1000
MAX_BIRTH_YEAR = 9999


class CatalogError(Exception):
    """Base exception for catalog integrity failures."""


class PersonNotFound(CatalogError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Person '{name}' not found in the database.")
        self.name = name


class DirectorConflict(CatalogError):
    """Raised when deleting someone who still directs a movie."""

    def __init__(self, name: str, movie_count: int) -> None:
        super().__init__(
            f"Cannot delete '{name}' as they are a director of one or more movies."
        )
        self.name = name
        self.movie_count = movie_count


class DuplicateMovie(CatalogError):
    def __init__(self, title: str, director: str) -> None:
        super().__init__(f"Movie '{title}' by {director} already exists.")
        self.title = title
        self.director = director


class InvalidRecord(CatalogError):
    """Raised for values the schema would accept but the catalog does not."""


@dataclass(slots=True)
class AddPersonResult:
    person: Person
    created: bool


@dataclass(slots=True)
class DeletionReport:
    """What a successful person deletion removed."""

    name: str
    memberships: list[str] = field(default_factory=list)


@dataclass(slots=True)
class CatalogCounts:
    people: int
    movies: int
    cast_links: int


def validate_birth_year(birth_year: int | None) -> int | None:
    if birth_year is None:
        return None
    if not MIN_BIRTH_YEAR <= birth_year <= MAX_BIRTH_YEAR:
        raise InvalidRecord(f"Birth year must be a 4-digit year, got {birth_year}.")
    return birth_year


def _clean_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise InvalidRecord("Name cannot be empty.")
    return cleaned


class CatalogWriter:
    """High level write helpers for the movie catalog."""

    def find_person(self, session: Session, name: str) -> Person | None:
        query = select(Person).where(Person.name == name)
        return session.execute(query).scalar_one_or_none()

    def find_movie(self, session: Session, title: str, director_id: int) -> Movie | None:
        query = select(Movie).where(Movie.title == title, Movie.director_id == director_id)
        return session.execute(query).scalar_one_or_none()

    def upsert_person(self, session: Session, name: str, birth_year: int | None = None) -> Person:
        """Insert a person, or enrich an existing one with a newly known birth year.

        An unknown year never erases a year that is already stored.
        """
        name = _clean_name(name)
        birth_year = validate_birth_year(birth_year)
        person = self.find_person(session, name)
        if person is None:
            person = Person(name=name, birth_year=birth_year)
            session.add(person)
            session.flush()
        elif birth_year is not None and person.birth_year != birth_year:
            person.birth_year = birth_year
            session.flush()
        return person

    def add_person(self, session: Session, name: str, birth_year: int | None = None) -> AddPersonResult:
        """Interactive add: create the person, never touch an existing one."""

        name = _clean_name(name)
        birth_year = validate_birth_year(birth_year)
        existing = self.find_person(session, name)
        if existing is not None:
            return AddPersonResult(person=existing, created=False)
        person = Person(name=name, birth_year=birth_year)
        session.add(person)
        session.flush()
        return AddPersonResult(person=person, created=True)

    def insert_movie(
        self,
        session: Session,
        *,
        title: str,
        director_id: int,
        release_year: int | None,
        length_minutes: int,
    ) -> Movie:
        title = title.strip()
        if not title:
            raise InvalidRecord("Title cannot be empty.")
        if length_minutes < 0:
            raise InvalidRecord("Length cannot be negative.")
        director = session.get(Person, director_id)
        if director is None:
            raise InvalidRecord(f"No person with id {director_id} to direct '{title}'.")
        if self.find_movie(session, title, director_id) is not None:
            raise DuplicateMovie(title, director.name)

        movie = Movie(
            title=title,
            director_id=director_id,
            release_year=release_year,
            length_minutes=length_minutes,
        )
        session.add(movie)
        try:
            session.flush()
        except IntegrityError as exc:
            raise DuplicateMovie(title, director.name) from exc
        return movie

    def link_actor(self, session: Session, movie_id: int, actor_id: int) -> bool:
        """Attach an actor to a movie; returns False when the link already existed."""

        if session.get(MovieActor, (movie_id, actor_id)) is not None:
            return False
        session.add(MovieActor(movie_id=movie_id, actor_id=actor_id))
        session.flush()
        return True

    def delete_person(self, session: Session, name: str) -> DeletionReport:
        """Remove a person who directs nothing, along with their cast links."""

        name = _clean_name(name)
        person = self.find_person(session, name)
        if person is None:
            raise PersonNotFound(name)

        directed = session.execute(
            select(func.count()).select_from(Movie).where(Movie.director_id == person.id)
        ).scalar_one()
        if directed > 0:
            raise DirectorConflict(name, directed)

        rows = session.execute(
            select(Movie.title, Movie.release_year)
            .join(MovieActor, MovieActor.movie_id == Movie.id)
            .where(MovieActor.actor_id == person.id)
            .order_by(Movie.title)
        ).all()
        memberships = [_describe_membership(title, year) for title, year in rows]

        session.execute(delete(MovieActor).where(MovieActor.actor_id == person.id))
        session.execute(delete(Person).where(Person.id == person.id))
        session.flush()
        logger.info("Deleted person %r and %d cast link(s)", name, len(memberships))
        return DeletionReport(name=name, memberships=memberships)

    def counts(self, session: Session) -> CatalogCounts:
        def _count(model) -> int:
            return session.execute(select(func.count()).select_from(model)).scalar_one()

        return CatalogCounts(
            people=_count(Person),
            movies=_count(Movie),
            cast_links=_count(MovieActor),
        )


def _describe_membership(title: str, year: int | None) -> str:
    return f"{title} ({year})" if year is not None else title
