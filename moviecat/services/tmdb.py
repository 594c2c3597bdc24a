"""Thin wrapper around the TMDb API to fetch movie metadata."""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from moviecat.core.config import get_settings
from moviecat.services.models import MovieDetails, PopularMovie, PopularPage, year_from_date


logger = logging.getLogger(__name__)


class TMDbError(Exception):
    """Base exception for TMDb-related failures."""


class TMDbNotFound(TMDbError):
    """Raised when TMDb has no record for the requested item."""


# Response shapes. Every field TMDb may omit is optional; wrong types are
# rejected so a malformed payload surfaces as TMDbError.
class _PopularItem(BaseModel):
    id: int | None = None
    title: str | None = None
    release_date: str | None = None


class _PopularPayload(BaseModel):
    page: int | None = None
    total_pages: int | None = None
    total_results: int | None = None
    results: list[_PopularItem] | None = None


class _CrewMember(BaseModel):
    name: str | None = None
    job: str | None = None


class _CastMember(BaseModel):
    name: str | None = None


class _Credits(BaseModel):
    crew: list[_CrewMember] | None = None
    cast: list[_CastMember] | None = None


class _DetailsPayload(BaseModel):
    title: str | None = None
    release_date: str | None = None
    runtime: int | None = None
    credits: _Credits | None = None


class _SearchHit(BaseModel):
    id: int


class _SearchPayload(BaseModel):
    results: list[_SearchHit] | None = None


class _PersonPayload(BaseModel):
    birthday: str | None = None


_Payload = TypeVar("_Payload", bound=BaseModel)


class TMDbClient:
    """Simple TMDb HTTP client using API key auth."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        cast_limit: int | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key or settings.tmdb_api_key
        self.base_url = (base_url or settings.tmdb_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.tmdb_timeout
        self.cast_limit = cast_limit if cast_limit is not None else settings.seed_cast_limit
        self._transport = transport

    def _request(self, method: str, path: str, *, params: dict[str, Any] | None = None) -> Any:
        if not self.api_key:
            raise TMDbError("TMDB_API_KEY is not configured")
        url = f"{self.base_url}{path}"
        query = {"api_key": self.api_key}
        if params:
            query.update({k: v for k, v in params.items() if v is not None})
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.request(method, url, params=query)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                raise TMDbNotFound(f"TMDb has no resource at {path}") from exc
            raise TMDbError(str(exc)) from exc
        except httpx.HTTPError as exc:
            raise TMDbError(f"TMDb request to {path} failed: {exc}") from exc
        except ValueError as exc:
            raise TMDbError(f"TMDb returned malformed JSON for {path}") from exc

    def _decode(self, model: type[_Payload], payload: Any, path: str) -> _Payload:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise TMDbError(f"TMDb returned an unexpected payload for {path}: {exc}") from exc

    def popular_movies(self, page: int = 1) -> PopularPage:
        """Return one page of TMDb's popular movie listing."""

        path = "/movie/popular"
        payload = self._decode(
            _PopularPayload, self._request("GET", path, params={"page": page}), path
        )
        results = [
            PopularMovie(id=item.id, title=item.title or "", release_date=item.release_date or None)
            for item in payload.results or []
            if item.id is not None
        ]
        return PopularPage(
            page=payload.page if payload.page is not None else page,
            total_pages=payload.total_pages if payload.total_pages is not None else page,
            total_results=(
                payload.total_results if payload.total_results is not None else len(results)
            ),
            results=results,
        )

    def movie_details(self, movie_id: int) -> MovieDetails:
        """Fetch title, release date, runtime, director and ordered cast."""

        path = f"/movie/{movie_id}"
        raw = self._request("GET", path, params={"append_to_response": "credits"})
        logger.debug("TMDb details payload: %s", raw)
        details = self._decode(_DetailsPayload, raw, path)
        credits = details.credits or _Credits()
        return MovieDetails(
            title=details.title or "",
            release_date=details.release_date or None,
            runtime=details.runtime,
            director=self._extract_director(credits),
            cast=self._extract_cast(credits, limit=self.cast_limit),
        )

    def person_birth_year(self, name: str) -> int | None:
        """Look a person up by name; None when TMDb does not know the year."""

        search = self._decode(
            _SearchPayload,
            self._request("GET", "/search/person", params={"query": name}),
            "/search/person",
        )
        if not search.results:
            return None
        path = f"/person/{search.results[0].id}"
        person = self._decode(_PersonPayload, self._request("GET", path), path)
        return year_from_date(person.birthday)

    @staticmethod
    def _extract_director(credits: _Credits) -> str | None:
        for member in credits.crew or []:
            if member.job == "Director" and member.name:
                return member.name
        return None

    @staticmethod
    def _extract_cast(credits: _Credits, *, limit: int | None = None) -> list[str]:
        names = [member.name for member in credits.cast or [] if member.name]
        return names[:limit] if limit else names
