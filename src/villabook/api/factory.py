"""FastAPI application factory.

One image serves two roles: "public" (booking + admin API) and "worker"
(public routes plus /tasks/* for the scheduler). APP_ROLE picks the role.
"""

import os
from typing import Literal

from fastapi import APIRouter, FastAPI, Request, Response

from villabook.observability.correlation import (
    CORRELATION_ID_HEADER,
    correlation_scope,
    new_correlation_id,
)

from .routers import public, worker

AppRole = Literal["public", "worker"]

ROLE_ROUTERS: dict[str, tuple[APIRouter, ...]] = {
    "public": (public.router,),
    "worker": (public.router, worker.router),
}


def create_app(role: AppRole | None = None) -> FastAPI:
    """Build the app for `role` (default: APP_ROLE env var, else "public").

    Raises:
        ValueError: Unknown role.
    """
    role = role or os.environ.get("APP_ROLE") or "public"
    if role not in ROLE_ROUTERS:
        raise ValueError(f"unknown APP_ROLE: {role!r}")

    app = FastAPI(title="Villabook", docs_url=None, redoc_url=None)

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = request.headers.get(CORRELATION_ID_HEADER) or new_correlation_id()
        with correlation_scope(cid):
            response = await call_next(request)
        response.headers[CORRELATION_ID_HEADER] = cid
        return response

    for router in ROLE_ROUTERS[role]:
        app.include_router(router)
    return app
