from __future__ import annotations

import logging
import uuid
from datetime import date, timedelta
from typing import Any

from feedhub.models.types import MovieItem, PageParams
from feedhub.sources.base import SourceAdapter, optional_text, text_or_empty

logger = logging.getLogger(__name__)

TMDB_BASE_URL = "https://api.themoviedb.org/3"
POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"

MOCK_TOTAL_PAGES = 100
MOCK_EPOCH = date(2024, 1, 1)


def normalize_movie(movie: dict[str, Any]) -> MovieItem:
    provider_id = movie.get("id")
    if provider_id is None or provider_id == "":
        provider_id = uuid.uuid4()
    poster_path = optional_text(movie.get("poster_path"))
    return MovieItem(
        id=f"movie-{provider_id}",
        title=text_or_empty(movie.get("title") or movie.get("name")),
        description=text_or_empty(movie.get("overview")),
        image=f"{POSTER_BASE_URL}{poster_path}" if poster_path else None,
        published_at=optional_text(movie.get("release_date") or movie.get("first_air_date")),
        category="entertainment",
        raw=movie,
    )


class MovieAdapter(SourceAdapter):
    """TMDB listings; ``params.filter`` is the list type (popular, top_rated, ...)."""

    kind = "movie"
    _items_key = "results"

    def _has_credential(self) -> bool:
        return bool(self._settings.tmdb_api_key)

    def _list_type(self, params: PageParams) -> str:
        return params.filter or self._settings.movie_list_type

    def _request_payload(self, params: PageParams) -> Any:
        query: dict[str, Any] = {"api_key": self._settings.tmdb_api_key, "page": params.page}
        if params.query:
            url = f"{TMDB_BASE_URL}/search/movie"
            query["query"] = params.query
        else:
            url = f"{TMDB_BASE_URL}/movie/{self._list_type(params)}"
        return self._get_json(url, query)

    def _mock_payload(self, params: PageParams) -> dict[str, Any]:
        prefix = f"{params.query} - " if params.query else ""
        offset = (params.page - 1) * self.page_size
        results = []
        for i in range(self.page_size):
            n = offset + i + 1
            results.append(
                {
                    "id": n,
                    "title": f"{prefix}Movie Title {n}",
                    "overview": (
                        "This is a mock movie description. "
                        "Lorem ipsum dolor sit amet, consectetur adipiscing elit."
                    ),
                    "poster_path": f"/mock-poster-{n}.jpg",
                    "backdrop_path": f"/mock-backdrop-{n}.jpg",
                    "release_date": (MOCK_EPOCH - timedelta(days=n * 7)).isoformat(),
                    "vote_average": round(6 + (n % 40) / 10, 1),
                    "vote_count": n * 37 % 10000,
                    "genre_ids": [28, 12, 16],
                    "adult": False,
                    "original_language": "en",
                    "mock": True,
                }
            )
        return {
            "page": params.page,
            "results": results,
            "total_pages": MOCK_TOTAL_PAGES,
            "total_results": MOCK_TOTAL_PAGES * self.page_size,
        }

    def _provider_has_more(self, payload: dict[str, Any], params: PageParams) -> bool:
        total_pages = payload.get("total_pages")
        if not isinstance(total_pages, int):
            return False
        return params.page < total_pages

    def normalize(self, raw: dict[str, Any]) -> MovieItem:
        return normalize_movie(raw)
