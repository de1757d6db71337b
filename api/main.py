"""
Sales Reconciliation API - Main Application.

FastAPI application exposing period resolution, manual reconciliation links,
sale status changes and the per-sale audit trail.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from config import configure_logging

configure_logging()

# Create FastAPI application
app = FastAPI(
    title="Sales Reconciliation API",
    description="REST API for reconciling internal sales against carrier reports",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS - Allow all origins for development
# TODO: Restrict origins to the back-office frontend host once it has a fixed domain
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "sales-reconciliation-api"
    }


@app.get("/", tags=["Root"])
def root():
    return {
        "message": "Sales Reconciliation API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import periods, reconciliation, sales

app.include_router(periods.router, prefix="/api/v1", tags=["Periods"])
app.include_router(reconciliation.router, prefix="/api/v1", tags=["Reconciliation"])
app.include_router(sales.router, prefix="/api/v1", tags=["Sales"])
