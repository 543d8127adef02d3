# API v1 router aggregation.
# Created: 2026-03-03
#
# mount_v1_routers(app) registers all domain routers at /api/v1/.

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)

# Routers as (module, attribute, tag); mount_v1_routers() imports each one and
# skips any that fail to import.
_V1_ROUTERS: list[tuple[str, str, str]] = [
    ("subnotify.api.v1.reminders", "router", "Reminders"),
    ("subnotify.api.v1.push", "router", "Push"),
]


def mount_v1_routers(app: FastAPI) -> None:
    """Mount all v1 domain routers on *app* at ``/api/v1``."""
    import importlib

    from fastapi import APIRouter

    for module_path, attr_name, tag in _V1_ROUTERS:
        try:
            mod = importlib.import_module(module_path)
            router: APIRouter = getattr(mod, attr_name)

            app.include_router(router, prefix="/api/v1")

            logger.debug("Mounted v1 router: %s (%s)", module_path, tag)
        except Exception:
            logger.warning("Failed to mount v1 router %s", module_path, exc_info=True)
