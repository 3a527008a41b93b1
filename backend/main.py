"""
Main application entry point for the LearnQuest gamification backend.

This module builds the FastAPI application: database lifecycle,
the gamification service, CORS and error handlers.

Usage:
    - Direct: python -m backend.main
    - ASGI server: uvicorn backend.main:app
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.common.config import get_config
from backend.common.db import close_database, create_schema, initialize_database
from backend.common.error_handling import LearnQuestError, error_response, log_error
from backend.common.logger import app_logger
from backend.common.redis import reset_redis_client
from backend.gamification.controllers import router as gamification_router
from backend.gamification.service import initialize_gamification_service, reset_gamification_service

# Setup module logger
logger = app_logger.getChild("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI application lifespan context manager.

    Handles initialization and cleanup of database connections
    and the gamification service on application startup and shutdown.
    """
    config = get_config()
    logger.info("Application startup sequence initiated.")

    try:
        await initialize_database(
            database_url=config.database.database_url,
            echo=config.database.echo,
            pool_size=config.database.pool_size,
            max_overflow=config.database.max_overflow,
            pool_timeout=config.database.pool_timeout
        )
        if config.is_development or config.is_testing:
            await create_schema()
        await initialize_gamification_service()
    except Exception as e:
        logger.error(f"Failed to initialize application: {str(e)}")
        raise

    logger.info("Application startup complete")
    yield

    logger.info("Application shutdown sequence initiated.")
    reset_gamification_service()
    await close_database()
    await reset_redis_client()
    logger.info("Application shutdown complete")


async def learnquest_error_handler(request: Request, exc: LearnQuestError) -> JSONResponse:
    """Render LearnQuest errors as the standard error body."""
    if exc.http_status >= 500:
        log_error(exc, context={"path": request.url.path}, log=logger)
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=error_response(exc))


def create_app(with_lifespan: bool = True) -> FastAPI:
    """
    Create and configure a FastAPI application instance.

    Args:
        with_lifespan: Whether startup initializes the database and service.
            Tests that install their own service pass False.

    Returns:
        Configured FastAPI application
    """
    config = get_config()

    app = FastAPI(
        title=f"{config.app_name} API",
        description="Points, streaks, achievements and leaderboards for learners",
        version=config.version,
        docs_url=config.api.docs_url,
        lifespan=lifespan if with_lifespan else None
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.security.allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LearnQuestError, learnquest_error_handler)
    app.include_router(gamification_router, prefix=config.api.prefix)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"message": f"Welcome to {config.app_name} API"}

    logger.info(f"Application created with {len(app.routes)} routes")
    return app


app = create_app()


# Entry point for running the application directly
if __name__ == "__main__":
    import uvicorn

    api_config = get_config().api
    logger.info(f"Starting server on {api_config.host}:{api_config.port} (reload: {api_config.reload})")

    uvicorn.run(
        "backend.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=api_config.reload,
        log_level="info"
    )
