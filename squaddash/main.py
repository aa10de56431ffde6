"""SquadDash FastAPI backend: main application entry point."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from squaddash import config
from squaddash.file_watcher import SquadFileWatcher
from squaddash.observability import initialize as initialize_observability, shutdown as shutdown_observability
from squaddash.routers.squad import squad_router
from squaddash.services.squad_data import SquadDataProvider
from squaddash.squad_folder import has_squad_team

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("squaddash")

file_watcher = SquadFileWatcher()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("SquadDash backend starting up")
    initialize_observability(app)

    provider = SquadDataProvider(
        config.TEAM_ROOT,
        squad_folder=config.SQUAD_FOLDER or None,
        retry_delay_seconds=config.ROSTER_RETRY_DELAY_SECONDS,
    )
    app.state.squad_provider = provider

    if not has_squad_team(config.TEAM_ROOT):
        logger.warning(f"No squad folder found under {config.TEAM_ROOT}; serving empty data")

    if config.WATCH_ENABLED:
        await file_watcher.start(provider, provider.squad_dir)

    yield

    logger.info("SquadDash backend shutting down")
    await file_watcher.stop()
    shutdown_observability(app)


app = FastAPI(
    title="SquadDash API",
    description="Backend API for the squad team dashboard",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS for the dashboard dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        config.FRONTEND_ORIGIN,
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(squad_router)


@app.get("/api/health")
def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "teamRoot": str(config.TEAM_ROOT),
        "squadTeam": has_squad_team(config.TEAM_ROOT),
        "watcher": "running" if file_watcher.is_running else "stopped",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("squaddash.main:app", host=config.HOST, port=config.PORT, reload=False)
