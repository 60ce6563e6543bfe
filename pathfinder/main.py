# pathfinder/main.py

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from skill_engine.errors import (
    BadOracleResponse,
    LockedNode,
    NotFound,
    SkillGraphError,
    StoreError,
    UpstreamUnavailable,
)

from . import config
import pathfinder.database  # To re-assign pathfinder.database.engine
from .routers import auth, goals, graphs, nodes, onboarding, users

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 30


def _error_body(exc: SkillGraphError, context: bool = False) -> dict:
    body = {"detail": exc.message}
    if context and exc.context:
        body["context"] = exc.context
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """Maps engine errors to HTTP responses with bounded messages."""

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):
        return JSONResponse(status_code=404, content=_error_body(exc, context=True))

    @app.exception_handler(LockedNode)
    async def locked_node_handler(request: Request, exc: LockedNode):
        return JSONResponse(status_code=409, content=_error_body(exc, context=True))

    @app.exception_handler(BadOracleResponse)
    async def bad_oracle_handler(request: Request, exc: BadOracleResponse):
        return JSONResponse(status_code=502, content=_error_body(exc))

    @app.exception_handler(UpstreamUnavailable)
    async def upstream_handler(request: Request, exc: UpstreamUnavailable):
        return JSONResponse(
            status_code=503,
            content={"detail": "The service is busy, please retry later"},
            headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
        )

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.error("Store error on %s: %s", request.url.path, exc.message)
        return JSONResponse(status_code=500, content={"detail": "Storage operation failed"})

    @app.exception_handler(SkillGraphError)
    async def skill_graph_error_handler(request: Request, exc: SkillGraphError):
        return JSONResponse(status_code=400, content=_error_body(exc, context=True))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app():
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Re-create the engine so tests pick up the DATABASE_URL set in pytest_configure.
    database_url = config.DATABASE_URL
    if not database_url:
        raise RuntimeError("DATABASE_URL environment variable not set at app creation time.")
    pathfinder.database.engine = pathfinder.database.make_engine(database_url)

    app = FastAPI(
        title="Pathfinder API",
        description="Skill tree growth, goal paths and radial layout.",
        version="0.1.0",
    )
    register_exception_handlers(app)

    routers = [auth.router, users.router, onboarding.router, graphs.router, nodes.router, goals.router]

    for router in routers:
        app.include_router(router)

    # Also expose the same routes under /api for the frontend
    for router in routers:
        app.include_router(router, prefix="/api")

    return app


# uvicorn pathfinder.main:app, or uvicorn pathfinder.main:create_app --factory
app = create_app()
