import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from webauth.clock import Clock, utcnow
from webauth.config import Settings, get_settings
from webauth.container import Container
from webauth.database import init_db
from webauth.errors import AuthSystemError, StoreError
from webauth.logger import setup_logging
from webauth.routers import auth_router, captcha_router, pages, profile_router

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Creates the schema and runs the expiry sweeper while the app is up.
    """
    container: Container = app.state.container
    init_db(container.engine)
    # Build the service graph before the first request, not inside a worker thread
    container.auth_service
    container.captcha_service
    if container.settings.sweep_enabled:
        container.sweeper.start()
    yield
    await container.sweeper.stop()
    container.close()


def create_app(settings: Optional[Settings] = None, clock: Clock = utcnow) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(
        title="Session Auth",
        description="Session-based registration and login with an arithmetic captcha",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.container = Container(settings, clock=clock)

    # CORS configuration
    # In production, restrict origins to your frontend domain
    if settings.debug:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_request_logging(app)
    register_error_handlers(app)

    app.include_router(pages.router)
    app.include_router(captcha_router.router)
    app.include_router(auth_router.router)
    app.include_router(profile_router.router)

    @app.get("/health")
    async def health():
        return {
            "status": "running",
            "version": VERSION,
        }

    return app


def register_request_logging(app: FastAPI) -> None:
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} in {elapsed_ms:.1f} ms")
        return response


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthSystemError)
    async def handle_auth_system_error(request: Request, exc: AuthSystemError):
        if isinstance(exc, StoreError):
            logger.error(f"Store failure on {request.method} {request.url.path}")
        else:
            logger.info(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status, content={"detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": "Invalid request payload"})

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "webauth.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().debug,
    )
