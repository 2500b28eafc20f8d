"""
Webhook Signature Verifier

Authenticates inbound provider callbacks.

Signature = hex(HMAC-SHA256(secret_key, raw_body)), sent in the x-signature
header. The body's created_at field binds the callback to a point in time;
callbacks outside the tolerance window are rejected even when the HMAC
matches, which closes the replay window.

The signature covers the exact bytes received on the wire. The transport
layer must hand over the body before JSON parsing: re-serializing the
parsed payload does not reproduce the signed bytes.
"""

import hashlib
import hmac
import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import orjson

from core.logger import get_logger

from .exceptions import MalformedRequest

logger = get_logger(__name__)

DEFAULT_TOLERANCE_SECONDS = 300


def _to_bytes(raw_body: bytes | str) -> bytes | None:
    """UTF-8 bytes of the body, or None if a str body cannot be encoded."""
    if isinstance(raw_body, bytes):
        return raw_body
    try:
        return raw_body.encode("utf-8")
    except UnicodeEncodeError:
        return None


def _coerce_timestamp(value: Any) -> int | None:
    """Return integer epoch seconds, or None if the value is not a usable timestamp."""
    # bool is an int subclass; True must not pass as 1970-01-01T00:00:01
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, (str, bytes)):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def compute_webhook_signature(raw_body: bytes | str, secret_key: str) -> str:
    """
    Compute the lowercase hex HMAC-SHA256 of a webhook body.

    Args:
        raw_body: Exact body bytes (str is UTF-8 encoded, never reformatted)
        secret_key: Shared webhook secret

    Returns:
        Hex-encoded signature
    """
    if isinstance(raw_body, str):
        raw_body = raw_body.encode("utf-8")
    return hmac.new(secret_key.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_webhook_signature(
    raw_body: bytes | str,
    signature: str | None,
    timestamp: Any,
    secret_key: str,
    *,
    tolerance_seconds: int = DEFAULT_TOLERANCE_SECONDS,
    now: float | None = None,
) -> bool:
    """
    Verify that a webhook is authentic and fresh.

    Never raises for malformed input: a missing or non-hex signature, a
    non-numeric timestamp and a str body that cannot be UTF-8 encoded are
    all reported as a failed verification.

    Args:
        raw_body: Body exactly as received
        signature: Claimed hex signature
        timestamp: Claimed epoch seconds
        secret_key: Shared webhook secret
        tolerance_seconds: Maximum |now - timestamp| accepted
        now: Current epoch seconds (defaults to wall clock)

    Returns:
        True only if both the freshness and signature checks pass
    """
    claimed_ts = _coerce_timestamp(timestamp)
    if claimed_ts is None or not signature or not secret_key:
        return False

    current_time = int(time.time() if now is None else now)
    if abs(current_time - claimed_ts) > tolerance_seconds:
        logger.info(f"Webhook timestamp outside window: timestamp={claimed_ts}, now={current_time}")
        return False

    body = _to_bytes(raw_body)
    if body is None:
        return False
    expected = compute_webhook_signature(body, secret_key)

    try:
        provided_bytes = bytes.fromhex(signature)
    except (ValueError, TypeError):
        return False
    expected_bytes = bytes.fromhex(expected)

    if len(provided_bytes) != len(expected_bytes):
        return False

    return hmac.compare_digest(expected_bytes, provided_bytes)


@dataclass(frozen=True)
class WebhookEnvelope:
    """One inbound callback, captured before any trust decision."""

    raw_body: bytes
    signature: str
    timestamp: int
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def session_id(self) -> str | None:
        return self.payload.get("session_id")

    @property
    def status(self) -> str | None:
        return self.payload.get("status")

    @property
    def vendor_data(self) -> Any:
        return self.payload.get("vendor_data")


def parse_webhook_envelope(raw_body: bytes | str, signature: str | None) -> WebhookEnvelope:
    """
    Build a WebhookEnvelope from raw transport values.

    The timestamp is read only from created_at inside the signed body; an
    unsigned transport header cannot stand in for it.

    Raises:
        MalformedRequest: missing signature (401) or a structurally invalid body (400)
    """
    if not signature:
        raise MalformedRequest("Missing signature", status_code=401)

    body = _to_bytes(raw_body)
    if body is None:
        raise MalformedRequest("Invalid request body")
    if not body:
        raise MalformedRequest("Missing request body")

    try:
        payload = orjson.loads(body)
    except orjson.JSONDecodeError as e:
        raise MalformedRequest("Invalid JSON body") from e

    if not isinstance(payload, dict):
        raise MalformedRequest("Invalid JSON body")

    raw_timestamp = payload.get("created_at")
    if raw_timestamp is None:
        raise MalformedRequest("Missing created_at timestamp")

    timestamp = _coerce_timestamp(raw_timestamp)
    if timestamp is None:
        raise MalformedRequest("Invalid created_at timestamp")

    return WebhookEnvelope(raw_body=body, signature=signature, timestamp=timestamp, payload=payload)


class WebhookVerifier:
    def __init__(
        self,
        secret_key: str,
        tolerance_seconds: int = DEFAULT_TOLERANCE_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize Webhook Verifier

        Args:
            secret_key: Shared webhook secret
            tolerance_seconds: Replay window in seconds
            clock: Source of current epoch seconds
        """
        self._secret_key = secret_key
        self.tolerance_seconds = tolerance_seconds
        self._clock = clock

    def verify(self, raw_body: bytes | str, signature: str | None, timestamp: Any) -> bool:
        return verify_webhook_signature(
            raw_body,
            signature,
            timestamp,
            self._secret_key,
            tolerance_seconds=self.tolerance_seconds,
            now=self._clock(),
        )

    def verify_envelope(self, envelope: WebhookEnvelope) -> bool:
        return self.verify(envelope.raw_body, envelope.signature, envelope.timestamp)
