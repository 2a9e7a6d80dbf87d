"""Book metadata lookup: Google Books volumes API, Open Library covers."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, Field

from goaltracker.config import settings
from goaltracker.errors import InvalidInput, NetworkError, ParsingFailed

logger = logging.getLogger(__name__)

MAX_SEARCH_RESULTS = 20


class BookSearchResult(BaseModel):
    id: str
    title: str
    authors: list[str] = Field(default_factory=list)
    isbn10: str | None = None
    isbn13: str | None = None
    cover_url: str | None = None
    page_count: int | None = None
    description: str | None = None
    published_date: str | None = None
    publisher: str | None = None

    @property
    def authors_string(self) -> str:
        return ", ".join(self.authors)

    @property
    def best_isbn(self) -> str | None:
        return self.isbn13 or self.isbn10


class BookMetadataProvider(Protocol):
    async def search(self, query: str) -> list[BookSearchResult]: ...

    async def search_by_isbn(self, isbn: str) -> BookSearchResult | None: ...


def open_library_cover_url(isbn: str, size: str = "M") -> str:
    """Size is one of S, M, L."""
    return f"{settings.open_library_covers_url.rstrip('/')}/{isbn}-{size}.jpg"


def _identifier(info: dict[str, Any], kind: str) -> str | None:
    for ident in info.get("industryIdentifiers") or []:
        if ident.get("type") == kind:
            return ident.get("identifier")
    return None


def parse_volume(item: dict[str, Any]) -> BookSearchResult:
    """Map one Google Books volume onto a search result."""
    info = item.get("volumeInfo") or {}
    isbn10 = _identifier(info, "ISBN_10")
    isbn13 = _identifier(info, "ISBN_13")

    cover = (info.get("imageLinks") or {}).get("thumbnail")
    if cover:
        cover = cover.replace("http://", "https://", 1)
    elif isbn13 or isbn10:
        cover = open_library_cover_url(isbn13 or isbn10)

    return BookSearchResult(
        id=item["id"],
        title=info.get("title") or "Untitled",
        authors=info.get("authors") or [],
        isbn10=isbn10,
        isbn13=isbn13,
        cover_url=cover,
        page_count=info.get("pageCount"),
        description=info.get("description"),
        published_date=info.get("publishedDate"),
        publisher=info.get("publisher"),
    )


class GoogleBooksClient:
    def __init__(self, client: httpx.AsyncClient | None = None, base_url: str | None = None):
        self._client = client or httpx.AsyncClient(timeout=settings.http_timeout_s)
        self._base_url = base_url or settings.google_books_base_url

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _volumes(self, params: dict[str, Any]) -> list[BookSearchResult]:
        try:
            response = await self._client.get(self._base_url, params=params)
        except httpx.HTTPError as exc:
            raise NetworkError(f"Network error: {exc}") from exc
        if response.status_code != 200:
            raise NetworkError(f"Book search returned HTTP {response.status_code}")
        try:
            items = response.json().get("items") or []
            return [parse_volume(item) for item in items]
        except (ValueError, KeyError, AttributeError) as exc:
            raise ParsingFailed("Failed to parse book data") from exc

    async def search(self, query: str) -> list[BookSearchResult]:
        query = query.strip()
        if not query:
            return []
        return await self._volumes({"q": query, "maxResults": MAX_SEARCH_RESULTS})

    async def search_by_isbn(self, isbn: str) -> BookSearchResult | None:
        clean = isbn.replace("-", "").strip()
        if not clean:
            raise InvalidInput("Invalid ISBN format")
        results = await self._volumes({"q": f"isbn:{clean}"})
        if not results:
            logger.debug("No volume found for ISBN %s", clean)
            return None
        return results[0]
