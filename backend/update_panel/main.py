"""
FastAPI application for the bot update panel.

Run with ``python -m update_panel.main`` or
``uvicorn update_panel.main:create_app --factory``.
"""

import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from update_panel import auth, bot_routes, release_routes
from update_panel.artifacts import ArtifactStorage
from update_panel.config import Settings, load_settings
from update_panel.errors import register_error_handlers
from update_panel.mongodb import close_mongo_client
from update_panel.notifier import WebhookNotifier
from update_panel.registry import ReleaseRegistry
from update_panel.store import MongoStore, Store, create_store
from update_panel.telemetry import BotTelemetry
from update_panel.token_crypto import TokenCipher
from update_panel.upload_service import UploadService

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[Store] = None,
    notifier: Optional[WebhookNotifier] = None,
    authorizer: Optional[Callable] = None,
) -> FastAPI:
    """Wire the store, services and routers into an app.

    Collaborators can be injected; anything left out is built from settings.
    """
    settings = settings or load_settings()
    store = store or create_store(settings)
    notifier = notifier or WebhookNotifier(settings.webhook_url, settings.webhook_timeout)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if isinstance(store, MongoStore):
            try:
                await store.ensure_indexes()
            except Exception as e:
                logger.warning(f"Could not create MongoDB indexes: {e}")
        logger.info(f"Update panel ready (store={settings.store_backend}, owners={len(settings.owner_ids)})")
        yield
        await notifier.aclose()
        await store.close()
        if isinstance(store, MongoStore):
            close_mongo_client()

    app = FastAPI(title="Bot Update Panel", lifespan=lifespan)
    app.add_middleware(SessionMiddleware, secret_key=settings.session_secret, same_site="lax", https_only=False)

    registry = ReleaseRegistry(store)
    artifacts = ArtifactStorage(settings.upload_dir)

    app.state.settings = settings
    app.state.store = store
    app.state.registry = registry
    app.state.artifacts = artifacts
    app.state.telemetry = BotTelemetry(store)
    app.state.notifier = notifier
    app.state.uploads = UploadService(registry, artifacts, notifier)
    app.state.authorizer = authorizer or auth.OwnerAuthorizer(settings.owner_ids)
    app.state.cipher = TokenCipher(settings.token_encryption_secret or settings.session_secret)

    register_error_handlers(app)
    app.include_router(auth.router)
    app.include_router(release_routes.router)
    app.include_router(bot_routes.router)
    return app


if __name__ == "__main__":
    import uvicorn

    settings = load_settings()
    logging.basicConfig(level=settings.log_level, format="%(levelname)s  %(message)s")
    logger.info(f"Update site listening on port {settings.port}")
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)
