"""Application factory wiring settings, storage and the API together."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI

from .api import create_app
from .config import Settings, load_settings
from .database import Database
from .sessions import SessionRegistry
from .storage import Storage

logger = logging.getLogger("storefront.service")


def create_storage(settings: Settings) -> Storage:
    """Instantiate and initialise the storage backend selected by ``settings``."""

    storage: Storage
    if settings.backend == "firestore":
        from .firestore import FirestoreStorage

        storage = FirestoreStorage.from_credentials(settings.firebase_credentials)
        logger.info("Using Firestore storage backend")
    else:
        storage = Database(settings.database_path)
        logger.info("Using SQLite storage backend at %s", settings.database_path)
    storage.initialize()
    return storage


def create_application(
    *,
    settings: Optional[Settings] = None,
    storage: Optional[Storage] = None,
) -> FastAPI:
    """Create the ASGI application from the environment (or explicit overrides)."""

    resolved = settings or load_settings()
    backend = storage if storage is not None else create_storage(resolved)
    app = create_app(
        storage=backend,
        sessions=SessionRegistry(),
        master_code=resolved.master_code,
        cors_origins=resolved.cors_origins,
    )
    app.state.settings = resolved
    return app


__all__ = ["create_application", "create_storage"]
