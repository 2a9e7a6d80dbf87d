import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from goaltracker.clients import close_clients
from goaltracker.config import settings
from goaltracker.db import engine
from goaltracker.kernel.router import router as goals_router
from goaltracker.kernel.store import init_schema
from goaltracker.kernel.sync_router import router as sync_router

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_schema(engine)
    logger.info("Goal tracker ready")
    yield
    await close_clients()
    await engine.dispose()


app = FastAPI(title="GoalTracker", version="0.1.0", lifespan=lifespan)
app.include_router(goals_router)
app.include_router(sync_router)


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "goals": {
            "list": "/goals",
            "progress": "/goals/{id}/progress",
            "recompute": "/goals/{id}/recompute",
            "fitness": "/goals/{id}/fitness",
            "sync": "/goals/{id}/sync",
            "suggestions": "/goals/suggestions",
            "book_stats": "/books/{id}/stats",
            "repository_stats": "/repositories/{id}/stats",
            "revenue": "/projects/{id}/revenue",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
