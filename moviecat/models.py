"""SQLAlchemy ORM models.

Three tables make up the catalog: ``people`` (directors and actors alike),
``movies`` (each with exactly one director) and ``movie_actors`` (the cast
links between them). Uniqueness and foreign keys are declared here so the
database enforces them as well as the writer.
"""

from __future__ import annotations

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class Person(Base):
    """A director, an actor, or both."""

    __tablename__ = "people"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    birth_year: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"Person(id={self.id}, name={self.name!r}, birth_year={self.birth_year})"


class Movie(Base):
    __tablename__ = "movies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    director_id: Mapped[int] = mapped_column(ForeignKey("people.id"), nullable=False)
    release_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    length_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("title", "director_id", name="uq_movies_title_director"),
        CheckConstraint("length_minutes >= 0", name="ck_movies_length_non_negative"),
    )

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"Movie(id={self.id}, title={self.title!r}, release_year={self.release_year})"


class MovieActor(Base):
    """Cast link between a movie and one of its actors."""

    __tablename__ = "movie_actors"

    movie_id: Mapped[int] = mapped_column(ForeignKey("movies.id"), primary_key=True)
    actor_id: Mapped[int] = mapped_column(ForeignKey("people.id"), primary_key=True)
