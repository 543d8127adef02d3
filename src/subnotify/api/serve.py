"""API server for ``subnotify serve``.

Starts the versioned ``/api/v1/`` routers. The app (or a small script on the
device) posts saved subscriptions and the push subscriber id here; passes run
on demand through ``POST /api/v1/reminders/reconcile``.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def create_api_app():
    """Build the FastAPI application with the v1 API routers."""
    from fastapi import FastAPI

    from subnotify.api.v1 import mount_v1_routers

    app = FastAPI(
        title="subnotify API",
        description="Subscription payment reminders scheduled through OneSignal.",
        version="1.0.0",
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )

    mount_v1_routers(app)

    return app


def run_api_server(host: str = "127.0.0.1", port: int = 8890, dev: bool = False) -> None:
    """Start the API server."""
    import uvicorn

    logger.info("API docs: http://%s:%d/api/v1/docs", host, port)

    if dev:
        import pathlib

        src_dir = str(pathlib.Path(__file__).resolve().parent.parent)
        uvicorn.run(
            "subnotify.api.serve:create_api_app",
            factory=True,
            host=host,
            port=port,
            reload=True,
            reload_dirs=[src_dir],
            reload_includes=["*.py"],
            log_level="debug",
        )
    else:
        app = create_api_app()
        uvicorn.run(app, host=host, port=port)
