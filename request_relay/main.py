"""
Request Relay - FastAPI Application Entry Point

A sandboxed HTTP relay with a Postman-like developer console: an
allowlisted egress proxy, a mock API to practise against, and per-user
request history and saved requests.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import load_settings
from .database import init_db
from .exceptions import register_exception_handlers
from .routers import console, mock, postman, proxy

logging.basicConfig(
    level=os.getenv("RELAY_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    # Policy is loaded once and never mutated afterwards
    app.state.settings = load_settings()
    init_db()
    yield


app = FastAPI(
    title="Request Relay",
    description="Sandboxed HTTP relay and developer console",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

# Allow all origins for development; restrict in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.get("/")
async def root():
    """Root endpoint returning API information."""
    return {
        "name": "Request Relay",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


app.include_router(proxy.router)
app.include_router(mock.router)
app.include_router(postman.router)
app.include_router(console.router)
