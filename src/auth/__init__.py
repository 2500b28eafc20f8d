"""
Authentication Module

Outbound: TokenCache brokers client-credentials bearer tokens.
Inbound: WebhookVerifier authenticates provider callbacks
(HMAC-SHA256 over the raw body, 300s replay window, constant-time compare).
"""

from .dependencies import get_token_cache, get_webhook_verifier
from .exceptions import AuthBrokerError, MalformedRequest, UpstreamError
from .token_cache import CachedToken, TokenCache
from .webhook_verifier import (
    WebhookEnvelope,
    WebhookVerifier,
    compute_webhook_signature,
    parse_webhook_envelope,
    verify_webhook_signature,
)

__all__ = [
    "AuthBrokerError",
    "CachedToken",
    "MalformedRequest",
    "TokenCache",
    "UpstreamError",
    "WebhookEnvelope",
    "WebhookVerifier",
    "compute_webhook_signature",
    "get_token_cache",
    "get_webhook_verifier",
    "parse_webhook_envelope",
    "verify_webhook_signature",
]
