"""Shared dataclasses for service layer."""

from __future__ import annotations

from dataclasses import dataclass, field


def year_from_date(raw: str | None) -> int | None:
    """Pull the calendar year out of a TMDb ``YYYY-MM-DD`` string."""
    if not raw or len(raw) < 4 or not raw[:4].isdigit():
        return None
    return int(raw[:4])


@dataclass(slots=True)
class PopularMovie:
    """One entry of TMDb's popular listing."""

    id: int
    title: str
    release_date: str | None = None


@dataclass(slots=True)
class PopularPage:
    page: int
    total_pages: int
    total_results: int
    results: list[PopularMovie] = field(default_factory=list)

    @property
    def is_last(self) -> bool:
        return self.page >= self.total_pages


@dataclass(slots=True)
class MovieDetails:
    """Movie metadata as needed to seed the catalog."""

    title: str
    release_date: str | None = None
    runtime: int | None = None
    director: str | None = None
    cast: list[str] = field(default_factory=list)

    @property
    def release_year(self) -> int | None:
        return year_from_date(self.release_date)

    @property
    def length_minutes(self) -> int:
        return max(self.runtime or 0, 0)
