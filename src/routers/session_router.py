from typing import Any

import orjson
from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from auth import AuthBrokerError, UpstreamError
from core.logger import get_logger
from core.settings import Settings, get_settings
from services import UpstreamResponse, VerificationClient, get_verification_client

logger = get_logger(__name__)


session_router = APIRouter(tags=["session"])


class SessionRequest(BaseModel):
    features: Any = None
    callback: str | None = None
    vendor_data: Any = None


def _relay(response: UpstreamResponse, success_status: int = 200) -> JSONResponse:
    if not response.ok:
        return JSONResponse(status_code=response.status_code, content=response.data)
    return JSONResponse(status_code=success_status, content=response.data)


def _bearer_allowed(authorization: str | None, settings: Settings) -> bool:
    """A Bearer header is required unless the cached-token fallback is enabled."""
    if authorization is None:
        return settings.session_use_cached_token
    return authorization.startswith("Bearer ")


@session_router.post("/auth/v2/token")
async def create_token(
    authorization: str | None = Header(default=None),
    client: VerificationClient = Depends(get_verification_client),
):
    """Exchange the caller's own Basic credentials for a provider token."""
    if not authorization or not authorization.startswith("Basic "):
        return JSONResponse(status_code=401, content={"error": "Invalid authorization header"})

    try:
        response = await client.exchange_token(authorization)
    except UpstreamError as e:
        logger.error(f"Error fetching token: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch token"})

    return _relay(response)


@session_router.post("/v1/session")
async def create_session(
    request: Request,
    authorization: str | None = Header(default=None),
    client: VerificationClient = Depends(get_verification_client),
    settings: Settings = Depends(get_settings),
):
    """
    Create a verification session.

    Requires the caller's Bearer token. Only when session_use_cached_token
    is enabled may a caller omit it and have the relay's cached
    client-credentials token used instead.

    Returns:
        201 with the provider's session on success, 401 on a missing or
        non-Bearer header, 400 on a body that is not a JSON object with
        features, callback and vendor_data
    """
    if not _bearer_allowed(authorization, settings):
        return JSONResponse(status_code=401, content={"error": "Invalid authorization header"})

    try:
        body = SessionRequest.model_validate(orjson.loads(await request.body()))
    except (orjson.JSONDecodeError, ValidationError):
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    if not body.features or not body.callback or not body.vendor_data:
        return JSONResponse(status_code=400, content={"error": "Missing required fields"})

    try:
        response = await client.create_session(
            body.features, body.callback, body.vendor_data, authorization=authorization
        )
    except AuthBrokerError as e:
        logger.error(f"Error obtaining access token: {e}")
        return JSONResponse(status_code=502, content={"error": "Failed to obtain access token"})
    except UpstreamError as e:
        logger.error(f"Error creating session: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to create session"})

    return _relay(response, success_status=201)


@session_router.get("/v1/session/{session_id}/decision")
async def get_session_decision(
    session_id: str,
    authorization: str | None = Header(default=None),
    client: VerificationClient = Depends(get_verification_client),
    settings: Settings = Depends(get_settings),
):
    if not _bearer_allowed(authorization, settings):
        return JSONResponse(status_code=401, content={"error": "Invalid authorization header"})

    try:
        response = await client.get_session_decision(session_id, authorization=authorization)
    except AuthBrokerError as e:
        logger.error(f"Error obtaining access token: {e}")
        return JSONResponse(status_code=502, content={"error": "Failed to obtain access token"})
    except UpstreamError as e:
        logger.error(f"Error fetching session decision: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch session decision"})

    return _relay(response)
