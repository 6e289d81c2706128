"""
Main FastAPI application entry point
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException as FastAPIHTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from focuslane import __version__
from focuslane.api.routes import auth, dashboard, focusbot, health, lanes
from focuslane.core.config import get_settings
from focuslane.core.database import init_db
from focuslane.core.logging_config import LoggingConfig
from focuslane.core.middleware import LoggingContextMiddleware
from focuslane.services.dashboard_controller import ActionUnavailableError
from focuslane.services.dashboard_sessions import get_dashboard_manager

LoggingConfig.configure()

logger = LoggingConfig.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for FastAPI app"""
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} in {settings.app_env} mode...")

    if settings.database_url.startswith("sqlite"):
        # No migrations for throwaway local databases
        init_db()

    yield

    logger.info(f"Shutting down {settings.app_name}...")
    await get_dashboard_manager().close_all()


_settings = get_settings()
app = FastAPI(
    title=_settings.app_name,
    description="Personal focus dashboard with a gentle assistant relay",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(LoggingContextMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ActionUnavailableError)
async def action_unavailable_handler(request: Request, exc: ActionUnavailableError):
    return JSONResponse(status_code=401, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler to log all unhandled errors"""
    if isinstance(exc, FastAPIHTTPException):
        raise exc

    logger.error(
        "Unhandled exception",
        exc_info=True,
        extra={
            "error": str(exc),
            "error_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        }
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "type": type(exc).__name__,
        }
    )


app.include_router(health.router)
app.include_router(focusbot.router)
app.include_router(lanes.router)
app.include_router(auth.router)
app.include_router(dashboard.router)


@app.get("/api")
async def root():
    """Root API endpoint"""
    settings = get_settings()
    return {
        "name": settings.app_name,
        "version": __version__,
        "status": "running",
        "environment": settings.app_env,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "focuslane.main:app",
        host=_settings.api_host,
        port=_settings.api_port,
        reload=_settings.app_env == "development",
    )
