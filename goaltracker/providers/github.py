"""GitHub REST adapter: repository metadata and weekly commit statistics.

Statistics endpoints answer 202 while GitHub computes them in the
background. This client reports that as ``STATISTICS_PENDING`` and leaves
retrying to the reconciler.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Final, Protocol

import httpx
from pydantic import BaseModel, Field, ValidationError

from goaltracker.config import settings
from goaltracker.errors import (
    NetworkError,
    NotFound,
    ParsingFailed,
    RateLimited,
    Unauthenticated,
)
from goaltracker.kernel.dates import start_of_week, utcnow

logger = logging.getLogger(__name__)


class _Pending:
    def __repr__(self) -> str:
        return "STATISTICS_PENDING"


STATISTICS_PENDING: Final = _Pending()


class RepositoryMetadata(BaseModel):
    id: int
    name: str = ""
    full_name: str
    description: str | None = None
    html_url: str = ""
    language: str | None = None
    stars: int = Field(default=0, alias="stargazers_count")
    forks: int = Field(default=0, alias="forks_count")
    watchers: int = Field(default=0, alias="watchers_count")
    open_issues: int = Field(default=0, alias="open_issues_count")
    is_private: bool = Field(default=False, alias="private")
    default_branch: str = "main"

    model_config = {"populate_by_name": True}


@dataclass(frozen=True, slots=True)
class CommitWeek:
    week_start: datetime
    commit_count: int
    additions: int = 0
    deletions: int = 0


class RepositoryProvider(Protocol):
    async def fetch_repository(self, owner: str, repo: str, token: str | None) -> RepositoryMetadata: ...

    async def fetch_commit_activity(
        self, owner: str, repo: str, token: str | None
    ) -> list[CommitWeek] | _Pending: ...


def participation_to_weeks(counts: list[int], now: datetime | None = None) -> list[CommitWeek]:
    """Map GitHub's oldest-first weekly counts onto week-start dates.

    The last entry is the current week.
    """
    current = start_of_week(now or utcnow())
    last = len(counts) - 1
    return [
        CommitWeek(week_start=current - timedelta(weeks=last - i), commit_count=count)
        for i, count in enumerate(counts)
    ]


def raise_for_status(response: httpx.Response) -> None:
    """Translate an HTTP status into the provider error taxonomy."""
    code = response.status_code
    if 200 <= code < 300:
        return
    if code == 401:
        raise Unauthenticated()
    if code == 403 or code == 429:
        raise RateLimited()
    if code == 404:
        raise NotFound()
    raise NetworkError(f"GitHub returned HTTP {code}")


class GitHubClient:
    """Thin async client over ``httpx.AsyncClient``."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
    ):
        self._client = client or httpx.AsyncClient(timeout=settings.http_timeout_s)
        self._base_url = (base_url or settings.github_base_url).rstrip("/")

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, token: str | None, params: dict[str, Any] | None = None) -> httpx.Response:
        headers = {"Accept": "application/vnd.github+json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            return await self._client.get(f"{self._base_url}{path}", headers=headers, params=params)
        except httpx.HTTPError as exc:
            raise NetworkError(f"Network error: {exc}") from exc

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise ParsingFailed() from exc

    async def fetch_repository(self, owner: str, repo: str, token: str | None) -> RepositoryMetadata:
        response = await self._get(f"/repos/{owner}/{repo}", token)
        raise_for_status(response)
        try:
            return RepositoryMetadata.model_validate(self._json(response))
        except ValidationError as exc:
            raise ParsingFailed() from exc

    async def fetch_commit_activity(self, owner: str, repo: str, token: str | None) -> list[CommitWeek] | _Pending:
        """Owner's weekly commit counts for the last year, or the pending marker."""
        response = await self._get(f"/repos/{owner}/{repo}/stats/participation", token)
        if response.status_code == 202:
            logger.debug("Statistics for %s/%s still computing", owner, repo)
            return STATISTICS_PENDING
        if response.status_code == 204:
            return []
        raise_for_status(response)

        body = self._json(response)
        counts = body.get("owner") if isinstance(body, dict) else None
        if not isinstance(counts, list) or not all(isinstance(c, int) for c in counts):
            raise ParsingFailed()
        return participation_to_weeks(counts)

    async def list_user_repositories(self, token: str | None) -> list[RepositoryMetadata]:
        response = await self._get("/user/repos", token, {"per_page": 100, "sort": "updated", "type": "owner"})
        raise_for_status(response)
        try:
            return [RepositoryMetadata.model_validate(item) for item in self._json(response)]
        except (ValidationError, TypeError) as exc:
            raise ParsingFailed() from exc

