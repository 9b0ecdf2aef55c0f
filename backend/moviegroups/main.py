import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from moviegroups.config import AppConfig, VERSION, API_TITLE, API_DESCRIPTION
from moviegroups.config.logging import setup_logging
from moviegroups.db.database import Database
from moviegroups.clients.tmdb_client import TMDBClient
from moviegroups.controllers.auth_controller import router as auth_router
from moviegroups.controllers.user_controller import router as user_router
from moviegroups.controllers.group_controller import router as group_router
from moviegroups.controllers.favorites_controller import router as favorites_router
from moviegroups.controllers.review_controller import router as review_router
from moviegroups.controllers.movie_controller import router as movie_router
from moviegroups.controllers.genre_controller import router as genre_router
from moviegroups.exceptions.service import ServiceException
from moviegroups.exceptions.repository import RepositoryException, EntityNotFoundException

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal server error"


def _error(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers,
    )


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
        message = error.get("msg", "Invalid value").removeprefix("Value error, ")
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages) or "Invalid request"


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(ServiceException)
    async def service_exception_handler(request: Request, exc: ServiceException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
            message = "Movie metadata provider is unavailable" if exc.status_code == 502 else INTERNAL_ERROR
            return _error(exc.status_code, message)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RepositoryException)
    async def repository_exception_handler(request: Request, exc: RepositoryException) -> JSONResponse:
        if exc.client_error:
            code = status.HTTP_404_NOT_FOUND if isinstance(exc, EntityNotFoundException) else status.HTTP_409_CONFLICT
            return _error(code, exc.message)
        logger.error(f"{request.method} {request.url.path} storage failure: {exc}", exc_info=exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, _validation_message(exc))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR)


def create_app(
    config: Optional[AppConfig] = None,
    database: Optional[Database] = None,
    tmdb_client: Optional[TMDBClient] = None,
) -> FastAPI:
    """Build the application. Serve with ``uvicorn moviegroups.main:create_app --factory``."""
    config = config or AppConfig.from_env()
    setup_logging(config.log_dir, config.log_level)

    database = database or Database(config.database_url)
    database.create_all()

    tmdb_client = tmdb_client or TMDBClient(
        api_key=config.tmdb_api_key,
        base_url=config.tmdb_base_url,
        timeout=config.upstream_timeout_seconds,
        retries=config.upstream_retries,
    )

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=VERSION
    )
    app.state.config = config
    app.state.database = database
    app.state.tmdb_client = tmdb_client

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # include controllers
    app.include_router(auth_router)
    app.include_router(user_router)
    app.include_router(group_router)
    app.include_router(favorites_router)
    app.include_router(review_router)
    app.include_router(movie_router)
    app.include_router(genre_router)

    register_exception_handlers(app)

    @app.on_event("shutdown")
    def shutdown_event():
        tmdb_client.close()
        database.dispose()
        logger.info("Closed metadata client and database engine")

    @app.get("/health")
    def health_check():
        return {"success": True, "status": "healthy"}

    logger.info(f"{API_TITLE} {VERSION} ready ({database.engine.dialect.name})")
    return app
