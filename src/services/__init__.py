"""
Services Package

Contains service layer classes for:
- Relaying token, session and decision calls to the verification provider
"""

from services.verification_client import (
    UpstreamResponse,
    VerificationClient,
    close_verification_client,
    get_verification_client,
)

__all__ = [
    "UpstreamResponse",
    "VerificationClient",
    "close_verification_client",
    "get_verification_client",
]
