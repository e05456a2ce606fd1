"""FastAPI application for the store revision endpoints."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from openstore_api.api import apps_router, manage_router, revisions_router
from openstore_api.db.migrations import upgrade_database
from openstore_api.http.errors import install_error_handlers


def create_app(*, migrate: bool = True) -> FastAPI:
    app = FastAPI(title="OpenStore API", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_error_handlers(app)
    app.include_router(manage_router)
    app.include_router(apps_router)
    app.include_router(revisions_router)

    if migrate:

        @app.on_event("startup")
        def _startup() -> None:
            upgrade_database()

    return app


app = create_app()
