from functools import lru_cache

from core.logger import get_logger
from core.settings import get_settings

from .token_cache import TokenCache
from .webhook_verifier import WebhookVerifier

logger = get_logger(__name__)


@lru_cache
def get_token_cache() -> TokenCache:
    """
    Get the process-wide TokenCache instance.
    """
    settings = get_settings()

    if not settings.has_client_credentials:
        logger.warning("CLIENT_ID / CLIENT_SECRET not set. Token requests will be rejected by the provider")

    return TokenCache(
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        token_url=settings.token_url,
        safety_margin=settings.token_safety_margin_seconds,
        timeout=settings.token_request_timeout,
    )


@lru_cache
def get_webhook_verifier() -> WebhookVerifier:
    """
    Get the WebhookVerifier bound to the configured shared secret.
    """
    settings = get_settings()

    if not settings.webhook_secret_key:
        raise RuntimeError("WEBHOOK_SECRET_KEY environment variable is required")

    return WebhookVerifier(
        secret_key=settings.webhook_secret_key,
        tolerance_seconds=settings.webhook_tolerance_seconds,
    )
