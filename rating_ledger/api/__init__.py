"""
Rating Ledger API Application Factory
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from .. import __version__
from ..errors import AuthenticationError, StorageUnavailable
from ..logging_config import setup_logging, log_action
from .deps import LedgerSystem
from .public import router as public_router
from .admin import router as admin_router


def create_app(system: Optional[LedgerSystem] = None) -> FastAPI:
    """Create and configure the FastAPI application around a ledger system"""
    system = system or LedgerSystem()
    logger = setup_logging(system.config.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log_action(logger, "info", "Rating ledger started", action="startup",
                   details={"storage": type(system.storage).__name__})
        yield
        system.close()

    app = FastAPI(
        title="Rating Ledger API",
        description="Commission ledger for the hotel rating-task platform",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.ledger_system = system

    app.add_middleware(
        CORSMiddleware,
        allow_origins=system.config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(request: Request, exc: AuthenticationError):
        return JSONResponse(status_code=401, content={"success": False, "message": str(exc)})

    @app.exception_handler(StorageUnavailable)
    async def storage_error_handler(request: Request, exc: StorageUnavailable):
        log_action(logger, "error", f"Storage unavailable: {exc}",
                   action="storage_error", resource=request.url.path)
        return JSONResponse(
            status_code=503,
            content={"success": False, "message": "Storage unavailable"}
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "message": "Missing params",
                "errors": [
                    {"field": ".".join(str(part) for part in error["loc"]), "error": error["msg"]}
                    for error in exc.errors()
                ]
            }
        )

    app.include_router(public_router, prefix="/api", tags=["Public"])
    app.include_router(admin_router, prefix="/admin", tags=["Admin"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "rating_ledger_api",
            "version": __version__
        }

    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "Rating Ledger API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "users": "/api/users/{user_id}",
                "ratings": "/api/ratings",
                "withdrawals": "/api/withdrawals",
                "bank": "/api/bank",
                "admin": "/admin",
            }
        }

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None):
    """Build the app from environment configuration and serve it"""
    system = LedgerSystem()
    uvicorn.run(
        create_app(system),
        host=host or system.config.api_host,
        port=port or system.config.api_port,
    )
