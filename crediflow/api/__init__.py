"""
CrediFlow API Application Factory
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .clients import router as clients_router
from .loans import router as loans_router
from .collections import router as collections_router
from .advisory import router as advisory_router
from .portfolio import router as portfolio_router
from .. import __version__
from ..logging_config import get_logger
from ..exceptions import (
    CrediflowError, EntityNotFoundError, InvalidClientData, InvalidLoanTerms, LoanStateError
)
from ..system import MicrofinanceSystem

logger = get_logger("crediflow.api")


def _status_for(error: CrediflowError) -> int:
    if isinstance(error, (InvalidLoanTerms, InvalidClientData)):
        return 400
    if isinstance(error, EntityNotFoundError):
        return 404
    if isinstance(error, LoanStateError):
        return 409
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close the system's outbound HTTP client on shutdown"""
    yield
    await app.state.system.aclose()
    logger.info("Advisory client closed")


def create_app(system: Optional[MicrofinanceSystem] = None) -> FastAPI:
    """
    Create and configure the FastAPI application

    Args:
        system: System instance to serve; a fresh one built from configuration if omitted
    """
    app = FastAPI(
        title="CrediFlow API",
        description="Microfinance loan origination, amortization and collections back office",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.system = system or MicrofinanceSystem()

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(CrediflowError)
    async def crediflow_error_handler(request: Request, exc: CrediflowError):
        status_code = _status_for(exc)
        if status_code >= 500:
            logger.error(f"Unhandled domain error on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "error": type(exc).__name__}
        )

    # Include routers
    app.include_router(clients_router, prefix="/clients", tags=["Clients"])
    app.include_router(loans_router, prefix="/loans", tags=["Loans"])
    app.include_router(collections_router, prefix="/collections", tags=["Collections"])
    app.include_router(advisory_router, prefix="/advisory", tags=["Advisory"])
    app.include_router(portfolio_router, prefix="/portfolio", tags=["Portfolio"])

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "crediflow_api",
            "version": __version__
        }

    # Root endpoint
    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "CrediFlow API",
            "version": __version__,
            "description": "Microfinance loan back office",
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "clients": "/clients",
                "loans": "/loans",
                "collections": "/collections",
                "advisory": "/advisory",
                "portfolio": "/portfolio",
            }
        }

    return app
