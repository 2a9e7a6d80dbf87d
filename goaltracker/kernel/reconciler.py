"""GitHub reconciler: pulls repository metadata and weekly commit statistics
into the event store.

Per repository the sync walks ``idle -> fetching -> (pending_retry | applying)
-> idle``. GitHub answers 202 while it computes statistics; that is retried a
bounded number of times with a fixed, injectable delay. Commit buckets are
replaced wholesale, so running the same sync twice leaves one bucket per week.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable

from pydantic import BaseModel

from goaltracker.config import settings
from goaltracker.errors import MissingRecord, ProviderError, StatisticsNotReady
from goaltracker.kernel.dates import start_of_week, utcnow
from goaltracker.kernel.models import CommitActivity, GitHubRepository, StarHistory
from goaltracker.kernel.programming import needs_sync
from goaltracker.kernel.progress import refresh_goal_progress
from goaltracker.kernel.store import EventStore
from goaltracker.providers.github import (
    STATISTICS_PENDING,
    CommitWeek,
    RepositoryMetadata,
    RepositoryProvider,
)

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class SyncState(str, Enum):
    idle = "idle"
    fetching = "fetching"
    pending_retry = "pending_retry"
    applying = "applying"


class SyncStatus(str, Enum):
    ok = "ok"
    statistics_not_ready = "statistics_not_ready"
    failed = "failed"
    abandoned = "abandoned"  # repository or goal deleted mid-sync
    already_running = "already_running"


class SyncResult(BaseModel):
    repository_id: str
    status: SyncStatus
    retries: int = 0
    commit_weeks: int = 0
    error: str | None = None


def merge_commit_weeks(repository_id: str, weeks: list[CommitWeek]) -> list[CommitActivity]:
    """One bucket per Monday-aligned week, zero weeks dropped, oldest first."""
    merged: dict = {}
    for week in weeks:
        key = start_of_week(week.week_start)
        count, adds, dels = merged.get(key, (0, 0, 0))
        merged[key] = (count + week.commit_count, adds + week.additions, dels + week.deletions)

    return [
        CommitActivity(
            repository_id=repository_id,
            week_start_date=key,
            commit_count=count,
            additions=adds,
            deletions=dels,
        )
        for key, (count, adds, dels) in sorted(merged.items())
        if count or adds or dels
    ]


def apply_metadata(repo: GitHubRepository, meta: RepositoryMetadata) -> None:
    repo.repo_id = meta.id
    repo.name = meta.name or repo.name
    repo.full_name = meta.full_name
    repo.description = meta.description
    repo.html_url = meta.html_url
    repo.language = meta.language
    repo.star_count = meta.stars
    repo.fork_count = meta.forks
    repo.open_issues_count = meta.open_issues
    repo.is_private = meta.is_private
    repo.default_branch = meta.default_branch


class GitHubReconciler:
    """Synchronizes stored repositories with GitHub.

    ``sleep`` is awaited between statistics retries; tests pass a recorder so
    no real time passes. Cancelling a sync while it waits leaves the store as
    it was after the metadata step.
    """

    def __init__(
        self,
        store: EventStore,
        provider: RepositoryProvider,
        token: str | None = None,
        sleep: Sleep = asyncio.sleep,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        concurrency: int | None = None,
    ):
        self._store = store
        self._provider = provider
        self._token = token if token is not None else settings.github_token
        self._sleep = sleep
        self.max_retries = settings.stats_max_retries if max_retries is None else max_retries
        self.retry_delay = settings.stats_retry_delay_s if retry_delay is None else retry_delay
        self._semaphore = asyncio.Semaphore(concurrency or settings.sync_concurrency)
        self._locks: dict[str, asyncio.Lock] = {}
        self._states: dict[str, SyncState] = {}

    def state(self, repository_id: str) -> SyncState:
        return self._states.get(repository_id, SyncState.idle)

    def _set_state(self, repository_id: str, state: SyncState) -> None:
        if state is SyncState.idle:
            self._states.pop(repository_id, None)
        else:
            self._states[repository_id] = state

    async def _still_present(self, repository_id: str) -> GitHubRepository | None:
        """Fresh copy of the repository, or None if it or its goal is gone."""
        repo = await self._store.get_repository(repository_id)
        if repo is None or await self._store.get_goal(repo.goal_id) is None:
            return None
        return repo

    # -- public -------------------------------------------------------------

    async def sync_repository(self, repository_id: str) -> SyncResult:
        """Run one reconciliation. Raises MissingRecord for an unknown repository."""
        if await self._store.get_repository(repository_id) is None:
            raise MissingRecord(f"Repository {repository_id} not found")

        lock = self._locks.setdefault(repository_id, asyncio.Lock())
        if lock.locked():
            return SyncResult(repository_id=repository_id, status=SyncStatus.already_running)

        try:
            async with lock:
                try:
                    return await self._sync(repository_id)
                finally:
                    self._set_state(repository_id, SyncState.idle)
        finally:
            # nobody queues on a held lock, so a released one can go
            if not lock.locked() and self._locks.get(repository_id) is lock:
                del self._locks[repository_id]

    async def sync_goal(self, goal_id: str, only_stale: bool = False) -> list[SyncResult]:
        """Sync every repository of a goal, a bounded number at a time."""
        if await self._store.get_goal(goal_id) is None:
            raise MissingRecord(f"Goal {goal_id} not found")

        repos = await self._store.list_repositories(goal_id)
        if only_stale:
            now = utcnow()
            repos = [r for r in repos if needs_sync(r, now)]

        async def _bounded(repo: GitHubRepository) -> SyncResult:
            async with self._semaphore:
                try:
                    return await self.sync_repository(repo.id)
                except MissingRecord:
                    return SyncResult(repository_id=repo.id, status=SyncStatus.abandoned)

        return list(await asyncio.gather(*(_bounded(r) for r in repos)))

    # -- internals ----------------------------------------------------------

    async def _sync(self, repository_id: str) -> SyncResult:
        repo = await self._store.get_repository(repository_id)
        if repo is None:
            return SyncResult(repository_id=repository_id, status=SyncStatus.abandoned)
        owner, name = repo.owner_name, repo.repo_name

        # Metadata
        self._set_state(repository_id, SyncState.fetching)
        try:
            meta = await self._provider.fetch_repository(owner, name, self._token)
        except ProviderError as exc:
            logger.warning("Metadata fetch failed for %s: %s", repo.full_name, exc)
            return SyncResult(repository_id=repository_id, status=SyncStatus.failed, error=exc.user_message)

        self._set_state(repository_id, SyncState.applying)
        repo = await self._still_present(repository_id)
        if repo is None:
            logger.info("Repository %s removed during sync; dropping results", repository_id)
            return SyncResult(repository_id=repository_id, status=SyncStatus.abandoned)
        apply_metadata(repo, meta)
        repo.last_synced_at = utcnow()
        await self._store.save_repository(repo)
        await self._store.add_star_snapshot(
            repo,
            StarHistory(
                repository_id=repo.id,
                star_count=meta.stars,
                fork_count=meta.forks,
                watcher_count=meta.watchers,
                open_issues_count=meta.open_issues,
            ),
        )

        # Commit statistics
        retries = 0
        while True:
            self._set_state(repository_id, SyncState.fetching)
            try:
                weeks = await self._provider.fetch_commit_activity(owner, name, self._token)
            except ProviderError as exc:
                logger.warning("Commit statistics fetch failed for %s: %s", repo.full_name, exc)
                return SyncResult(
                    repository_id=repository_id,
                    status=SyncStatus.failed,
                    retries=retries,
                    error=exc.user_message,
                )
            if weeks is not STATISTICS_PENDING:
                break
            if retries >= self.max_retries:
                logger.info("Statistics for %s not ready after %d retries", repo.full_name, retries)
                return SyncResult(
                    repository_id=repository_id,
                    status=SyncStatus.statistics_not_ready,
                    retries=retries,
                    error=StatisticsNotReady().user_message,
                )
            retries += 1
            self._set_state(repository_id, SyncState.pending_retry)
            await self._sleep(self.retry_delay)

        self._set_state(repository_id, SyncState.applying)
        repo = await self._still_present(repository_id)
        if repo is None:
            logger.info("Repository %s removed during sync; dropping results", repository_id)
            return SyncResult(repository_id=repository_id, status=SyncStatus.abandoned, retries=retries)

        buckets = merge_commit_weeks(repo.id, weeks)  # type: ignore[arg-type]
        await self._store.replace_commit_activity(repo, buckets)
        await refresh_goal_progress(self._store, repo.goal_id)

        repo.last_synced_at = utcnow()
        await self._store.save_repository(repo)
        logger.info("Synced %s: %d active weeks, %d retries", repo.full_name, len(buckets), retries)
        return SyncResult(
            repository_id=repository_id,
            status=SyncStatus.ok,
            retries=retries,
            commit_weeks=len(buckets),
        )
