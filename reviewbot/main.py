from fastapi import FastAPI
from contextlib import asynccontextmanager
import logging

from reviewbot.agents import BoundedRetry, ReviewClient
from reviewbot.config import Settings, get_settings
from reviewbot.integrations.github_auth import GitHubAppAuth
from reviewbot.integrations.greptile import GreptileClient
from reviewbot.integrations.mongodb import SettingsStore, close_db, connect_db
from reviewbot.orchestrator import EventRouter, GitHubReviewPipeline, GitLabReviewPipeline
from reviewbot.api import health, webhook

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def build_router(settings: Settings, store: SettingsStore) -> EventRouter:
    """Wire every component from one Settings instance."""
    reviewer = ReviewClient(GreptileClient(settings), BoundedRetry())
    return EventRouter(
        settings=settings,
        store=store,
        github_pipeline=GitHubReviewPipeline(settings, reviewer),
        gitlab_pipeline=GitLabReviewPipeline(settings, reviewer),
        github_auth=GitHubAppAuth(settings),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup; a missing required setting is fatal here
    settings = get_settings()
    configure_logging(settings)
    logger.info(f"Starting review bot ({settings.app_env})...")

    client = await connect_db(settings)
    store = SettingsStore.from_client(client, settings)
    app.state.settings = settings
    app.state.store = store
    app.state.event_router = build_router(settings, store)
    logger.info("Review bot started successfully")

    yield

    # Shutdown
    logger.info("Shutting down review bot...")
    close_db(client)
    logger.info("Review bot shutdown complete")


def create_app() -> FastAPI:
    app = FastAPI(
        title="PR Review Bot",
        description="AI review of GitHub pull requests and GitLab merge requests",
        version="0.1.0",
        lifespan=lifespan
    )

    # Include routers
    app.include_router(health.router, tags=["health"])
    app.include_router(webhook.router, tags=["webhook"])
    return app


app = create_app()
