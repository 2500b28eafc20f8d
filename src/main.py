"""
didit-relay — Identity Verification Relay

FastAPI application relaying a client application's calls to the
identity-verification provider:
- brokers client-credentials tokens (cached, refreshed on demand)
- proxies session creation and session decision lookups
- authenticates inbound provider webhooks

Usage:
    uvicorn main:app --host 0.0.0.0 --port 3000 --reload

Or run directly:
    python main.py
"""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from auth import get_token_cache, get_webhook_verifier
from core.logger import get_logger, setup_logging
from core.settings import get_allowed_origins, get_settings
from routers import session_router, webhook_router
from services import close_verification_client

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Fails fast on missing webhook configuration and closes the shared
    HTTP client on shutdown.
    """
    settings = get_settings()

    setup_logging("DEBUG" if settings.debug else "INFO")

    # Startup
    logger.info("=" * 60)
    logger.info("didit-relay Starting")
    logger.info("=" * 60)
    logger.info(f"Token endpoint: {settings.token_url}")
    logger.info(f"Verification API: {settings.verification_url}")
    logger.info(f"Webhook tolerance: {settings.webhook_tolerance_seconds}s")
    logger.info(f"Token safety margin: {settings.token_safety_margin_seconds}s")
    logger.info(f"Debug: {settings.debug}")
    logger.info("=" * 60)

    # Raises when WEBHOOK_SECRET_KEY is unset
    get_webhook_verifier()
    get_token_cache()

    yield

    # Shutdown
    logger.info("Shutting down...")
    await close_verification_client()


app = FastAPI(
    title="didit-relay",
    description="""
    Relay between a client application and the identity-verification provider.

    ## Endpoints

    - `POST /auth/v2/token` - Exchange the caller's Basic credentials for a provider token
    - `POST /v1/session` - Create a verification session (`features`, `callback`, `vendor_data`)
    - `GET /v1/session/{session_id}/decision` - Fetch a session decision
    - `POST /webhook` - Provider callback, authenticated by `x-signature` (HMAC-SHA256 of the raw body)
    """,
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_allowed_origins(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(session_router)
app.include_router(webhook_router)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    settings = get_settings()

    # Configure logging BEFORE uvicorn starts
    setup_logging("DEBUG" if settings.debug else "INFO")

    uvicorn.run(
        app,
        host=settings.server_host,
        port=settings.server_port,
        reload=False,
        log_level="debug" if settings.debug else "info",
        log_config=None,  # Prevent uvicorn from overwriting our logging config
    )
