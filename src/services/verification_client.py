"""
Verification Provider Client

Relays token, session-creation and session-decision calls to the
identity-verification provider. Upstream status codes and JSON bodies are
returned untouched so the HTTP layer can pass them through.
"""

from dataclasses import dataclass
from typing import Any

import httpx

from auth.dependencies import get_token_cache
from auth.exceptions import UpstreamError
from auth.token_cache import TokenCache
from core.logger import get_logger
from core.settings import get_settings

logger = get_logger(__name__)


@dataclass
class UpstreamResponse:
    status_code: int
    data: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class VerificationClient:
    """Async client for the provider's token and session APIs."""

    def __init__(
        self,
        token_url: str,
        verification_url: str,
        token_cache: TokenCache | None = None,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.token_url = token_url
        self.verification_url = verification_url.rstrip("/")
        self.token_cache = token_cache
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._http_client.aclose()

    async def _authorization(self, authorization: str | None) -> str:
        """Caller-supplied bearer header, or one built from the token cache."""
        if authorization:
            return authorization
        if self.token_cache is None:
            raise UpstreamError("No bearer token available")
        token = await self.token_cache.get_token()
        return f"Bearer {token}"

    async def _send(self, method: str, url: str, **kwargs) -> UpstreamResponse:
        try:
            response = await self._http_client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise UpstreamError(f"{method} {url} failed: {e!s}") from e

        try:
            data = response.json()
        except ValueError:
            data = {"error": response.text}
        return UpstreamResponse(status_code=response.status_code, data=data)

    async def exchange_token(self, authorization: str) -> UpstreamResponse:
        """Forward a client's own Basic credentials to the token endpoint."""
        return await self._send(
            "POST",
            self.token_url,
            headers={
                "Authorization": authorization,
                "Content-Type": "application/x-www-form-urlencoded",
            },
            data={"grant_type": "client_credentials"},
        )

    async def create_session(
        self, features: Any, callback: str, vendor_data: Any, authorization: str | None = None
    ) -> UpstreamResponse:
        """
        Create a verification session.

        Args:
            features: Verification features requested (e.g. document, face)
            callback: URL the provider redirects to when the user finishes
            vendor_data: Opaque caller reference echoed back in webhooks
            authorization: Caller's Bearer header; the token cache is used when omitted

        Raises:
            AuthBrokerError: no caller token and the token cache could not obtain one
            UpstreamError: the provider could not be reached
        """
        using_cache = not authorization
        response = await self._send(
            "POST",
            f"{self.verification_url}/v1/session/",
            headers={
                "Content-Type": "application/json",
                "Authorization": await self._authorization(authorization),
            },
            json={"features": features, "callback": callback, "vendor_data": vendor_data},
        )
        self._check_cached_token(response, using_cache)
        return response

    async def get_session_decision(self, session_id: str, authorization: str | None = None) -> UpstreamResponse:
        """Fetch the verification decision for a session."""
        using_cache = not authorization
        response = await self._send(
            "GET",
            f"{self.verification_url}/v1/session/{session_id}/decision/",
            headers={
                "Content-Type": "application/json",
                "Authorization": await self._authorization(authorization),
            },
        )
        self._check_cached_token(response, using_cache)
        return response

    def _check_cached_token(self, response: UpstreamResponse, using_cache: bool) -> None:
        if using_cache and response.status_code == 401 and self.token_cache is not None:
            logger.warning("Provider rejected cached token, invalidating")
            self.token_cache.invalidate()


_verification_client: VerificationClient | None = None


def get_verification_client() -> VerificationClient:
    """
    Get or create the VerificationClient singleton.

    Returns:
        VerificationClient sharing the process-wide TokenCache
    """
    global _verification_client

    if _verification_client is None:
        settings = get_settings()
        _verification_client = VerificationClient(
            token_url=settings.token_url,
            verification_url=settings.verification_url,
            token_cache=get_token_cache(),
            timeout=settings.upstream_timeout,
        )

    return _verification_client


async def close_verification_client() -> None:
    global _verification_client

    if _verification_client is not None:
        await _verification_client.aclose()
        _verification_client = None
