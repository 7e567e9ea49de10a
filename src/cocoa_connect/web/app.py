"""
Cocoa Connect - FastAPI application.

Authentication is Supabase Auth; this app only reads back who a bearer
token belongs to and serves the onboarding flow.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cocoa_connect import __version__
from cocoa_connect.config import settings
from cocoa_connect.logging_setup import setup_logging
from onboarding.api import router as onboarding_router

logger = logging.getLogger(__name__)

app = FastAPI(title="Cocoa Connect", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(onboarding_router)


@app.on_event("startup")
async def startup_event():
    """Log configuration on startup."""
    setup_logging(settings.log_level)
    logger.info("Cocoa Connect starting up...")
    logger.info(f"  Environment: {settings.app_env}")
    logger.info(f"  Supabase configured: {settings.has_supabase}")


@app.get("/health")
async def health():
    return {"status": "ok", "version": __version__}
