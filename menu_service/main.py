import logging
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from prometheus_client import make_asgi_app

from menu_service.config import settings
from menu_service.database import CassandraStore
from menu_service.dependencies import get_connection_manager
from menu_service.errors import MenuServiceError
from menu_service.middleware.metrics import MetricsMiddleware
from menu_service.middleware.request_id import RequestIDMiddleware
from menu_service.routers import menu_items
from menu_service.services.connection_manager import ConnectionManager
from menu_service.utils.logging import setup_logging
from shared.tracing import setup_tracing

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

tracing_enabled = setup_tracing("menu-service", settings.otlp_endpoint)

STATIC_DIR = Path(__file__).parent / "static"


async def menu_service_error_handler(request: Request, exc: MenuServiceError) -> JSONResponse:
    content = {"error": exc.message}
    if exc.details is not None:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    missing = any(error.get("type") == "missing" for error in errors)
    details = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in errors
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Missing required fields" if missing else "Invalid menu item",
            "details": details,
        },
    )


def create_app(connection_manager: ConnectionManager | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        manager = connection_manager or ConnectionManager(CassandraStore(settings), settings)
        app.state.connection_manager = manager
        # Provisioning retries forever in the background; startup never waits on Cassandra.
        manager.start()
        logger.info("Startup complete, connecting to Cassandra in the background")

        yield

        logger.info("Shutting down gracefully")
        await manager.shutdown()
        logger.info("Cassandra client shut down")

    app = FastAPI(
        title="Food Menu Service",
        description="CRUD API for a restaurant menu backed by Cassandra",
        version="1.0.0",
        lifespan=lifespan,
    )

    if tracing_enabled:
        FastAPIInstrumentor.instrument_app(app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(MenuServiceError, menu_service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(menu_items.router, prefix="/api", tags=["menu-items"])

    # Expose Prometheus metrics at /metrics
    app.mount("/metrics", make_asgi_app())
    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    @app.get("/health", tags=["health"])
    async def health(request: Request):
        state = get_connection_manager(request).state
        return {
            "status": "UP",
            "database": "Connected" if state.connected else "Disconnected",
            "initialized": "Yes" if state.schema_ready else "No",
        }

    @app.get("/debug/db", tags=["health"])
    async def debug_db(request: Request):
        manager = get_connection_manager(request)
        state = manager.state
        return {
            "connected": state.connected,
            "initialized": state.schema_ready,
            "phase": state.phase.value,
            "attempts": state.attempts,
            "contact_points": manager.settings.contact_points,
            "datacenter": manager.settings.cassandra_dc,
            "keyspace": manager.settings.cassandra_keyspace,
            "session_open": manager.store.connected,
        }

    @app.get("/", include_in_schema=False)
    async def index():
        return FileResponse(STATIC_DIR / "index.html")

    return app


app = create_app()


def run() -> None:
    logger.info("Server running on port %d", settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
