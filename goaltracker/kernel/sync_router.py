"""Programming goal endpoints: repositories, statistics and GitHub sync."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from goaltracker.auth import verify_api_key
from goaltracker.clients import get_reconciler
from goaltracker.db import get_store
from goaltracker.errors import MissingRecord
from goaltracker.kernel.models import GitHubRepository, GoalType, RepositoryStats
from goaltracker.kernel.programming import repository_stats
from goaltracker.kernel.progress import remove_repository
from goaltracker.kernel.reconciler import GitHubReconciler, SyncResult
from goaltracker.kernel.store import EventStore

router = APIRouter(tags=["programming"])


class RepositoryCreate(BaseModel):
    full_name: str = Field(pattern=r"^[\w.-]+/[\w.-]+$", description="owner/repo")


@router.post("/goals/{goal_id}/repositories", response_model=GitHubRepository, status_code=201)
async def repository_add(
    goal_id: str,
    body: RepositoryCreate,
    store: EventStore = Depends(get_store),
    _: str = Depends(verify_api_key),
) -> GitHubRepository:
    goal = await store.get_goal(goal_id)
    if goal is None:
        raise HTTPException(status_code=404, detail=f"Goal not found: {goal_id}")
    if goal.goal_type != GoalType.programming:
        raise HTTPException(status_code=422, detail=f"Goal {goal_id} is not a programming goal")
    repo = GitHubRepository(goal_id=goal_id, name=body.full_name.split("/")[1], full_name=body.full_name)
    return await store.add_repository(repo)


@router.get("/repositories/{repository_id}/stats", response_model=RepositoryStats)
async def repository_overview(
    repository_id: str,
    store: EventStore = Depends(get_store),
    _: str = Depends(verify_api_key),
) -> RepositoryStats:
    repo = await store.get_repository(repository_id)
    if repo is None:
        raise HTTPException(status_code=404, detail=f"Repository not found: {repository_id}")
    activity = await store.list_commit_activity(repository_id)
    history = await store.list_star_history(repository_id)
    return repository_stats(repo, activity, history)


@router.delete("/repositories/{repository_id}", status_code=204)
async def repository_delete(
    repository_id: str,
    store: EventStore = Depends(get_store),
    _: str = Depends(verify_api_key),
) -> None:
    if not await remove_repository(store, repository_id):
        raise HTTPException(status_code=404, detail=f"Repository not found: {repository_id}")


@router.post("/repositories/{repository_id}/sync", response_model=SyncResult)
async def repository_sync(
    repository_id: str,
    reconciler: GitHubReconciler = Depends(get_reconciler),
    _: str = Depends(verify_api_key),
) -> SyncResult:
    try:
        return await reconciler.sync_repository(repository_id)
    except MissingRecord as exc:
        raise HTTPException(status_code=404, detail=exc.user_message)


@router.post("/goals/{goal_id}/sync", response_model=list[SyncResult])
async def goal_sync(
    goal_id: str,
    reconciler: GitHubReconciler = Depends(get_reconciler),
    _: str = Depends(verify_api_key),
    only_stale: bool = Query(default=False, description="Skip repositories synced within the interval"),
) -> list[SyncResult]:
    try:
        return await reconciler.sync_goal(goal_id, only_stale=only_stale)
    except MissingRecord as exc:
        raise HTTPException(status_code=404, detail=exc.user_message)
