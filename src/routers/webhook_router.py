from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from auth import MalformedRequest, WebhookVerifier, get_webhook_verifier, parse_webhook_envelope
from core.logger import get_logger

logger = get_logger(__name__)


webhook_router = APIRouter(tags=["webhook"])


@webhook_router.post("/webhook")
async def handle_webhook(
    request: Request,
    verifier: WebhookVerifier = Depends(get_webhook_verifier),
):
    """
    Receive a provider callback.

    The body is read as raw bytes and verified before it is parsed into
    anything the handler acts on.

    Returns:
        200 {"received": true} on acceptance, 401 on signature or timestamp
        failure, 400 on a structurally invalid body
    """
    # Signed bytes: must be captured before any JSON parsing
    raw_body = await request.body()

    try:
        envelope = parse_webhook_envelope(raw_body, request.headers.get("x-signature"))
    except MalformedRequest as e:
        logger.warning(f"Webhook rejected: {e.message}")
        return JSONResponse(status_code=e.status_code, content={"error": e.message})

    if not verifier.verify_envelope(envelope):
        logger.warning(f"Webhook rejected: invalid signature (timestamp={envelope.timestamp})")
        return JSONResponse(status_code=401, content={"error": "Invalid signature"})

    logger.info(
        f"Processing webhook: session_id={envelope.session_id}, status={envelope.status}, "
        f"vendor_data={envelope.vendor_data}"
    )

    return {"received": True}
