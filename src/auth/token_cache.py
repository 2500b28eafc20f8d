"""
Bearer Token Cache

Holds the provider access token obtained through the OAuth2
client-credentials grant and refreshes it lazily.

A token is reused while now < expires_at - safety_margin. Refreshes are
de-duplicated: concurrent callers that find the cache empty or stale all
await the same in-flight request, so at most one exchange is outstanding.
"""

import asyncio
import base64
import time
from collections.abc import Callable
from dataclasses import dataclass

import httpx

from core.logger import get_logger

from .exceptions import AuthBrokerError

logger = get_logger(__name__)


@dataclass(frozen=True)
class CachedToken:
    value: str
    expires_at: float

    def is_usable(self, now: float, safety_margin: float) -> bool:
        return now < self.expires_at - safety_margin


class TokenCache:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str,
        safety_margin: float = 60,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize Token Cache

        Args:
            client_id: OAuth client id
            client_secret: OAuth client secret
            token_url: Full URL of the token endpoint
            safety_margin: Seconds subtracted from the provider's expires_in
            timeout: Bound on a single token request, in seconds
            http_client: Shared client; a short-lived one is created per refresh if omitted
            clock: Source of current epoch seconds
        """
        self._credentials = self.build_basic_credentials(client_id, client_secret)
        self.token_url = token_url
        self.safety_margin = safety_margin
        self.timeout = timeout
        self._http_client = http_client
        self._clock = clock

        self._token: CachedToken | None = None
        self._refresh_task: asyncio.Task[CachedToken] | None = None

    @staticmethod
    def build_basic_credentials(client_id: str, client_secret: str) -> str:
        """Return the Authorization header value for the client-credentials grant."""
        encoded = base64.b64encode(f"{client_id}:{client_secret}".encode("utf-8")).decode("ascii")
        return f"Basic {encoded}"

    @property
    def cached(self) -> CachedToken | None:
        return self._token

    async def get_token(self) -> str:
        """
        Return a currently valid bearer token, refreshing it if needed.

        Raises:
            AuthBrokerError: the token endpoint failed; the cache is left unchanged
        """
        token = self._token
        if token is not None and token.is_usable(self._clock(), self.safety_margin):
            return token.value

        # No await between the check and task creation, so only one refresh is started
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.create_task(self._refresh())
            self._refresh_task.add_done_callback(self._on_refresh_done)

        # Shielded: a cancelled caller must not abort a refresh other waiters share
        token = await asyncio.shield(self._refresh_task)
        return token.value

    def invalidate(self) -> None:
        """Drop the cached token so the next call re-authenticates."""
        self._token = None

    async def _refresh(self) -> CachedToken:
        logger.info(f"Requesting access token from {self.token_url}")

        if self._http_client is not None:
            data = await self._exchange(self._http_client)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                data = await self._exchange(client)

        access_token = data.get("access_token")
        expires_in = data.get("expires_in")
        if not isinstance(access_token, str) or not access_token:
            raise AuthBrokerError("Token response missing access_token", body=data)
        if isinstance(expires_in, bool) or not isinstance(expires_in, (int, float)):
            raise AuthBrokerError("Token response missing expires_in", body=data)

        token = CachedToken(value=access_token, expires_at=self._clock() + expires_in)
        self._token = token
        logger.info(f"Access token cached, expires in {expires_in}s")
        return token

    async def _exchange(self, client: httpx.AsyncClient) -> dict:
        try:
            response = await client.post(
                self.token_url,
                headers={
                    "Authorization": self._credentials,
                    "Content-Type": "application/x-www-form-urlencoded",
                },
                data={"grant_type": "client_credentials"},
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise AuthBrokerError("Token request timed out") from e
        except httpx.HTTPError as e:
            raise AuthBrokerError(f"Token request failed: {e!s}") from e

        if not response.is_success:
            raise AuthBrokerError("Failed to fetch token", status_code=response.status_code, body=response.text)

        try:
            data = response.json()
        except ValueError as e:
            raise AuthBrokerError(
                "Token response is not valid JSON", status_code=response.status_code, body=response.text
            ) from e

        if not isinstance(data, dict):
            raise AuthBrokerError("Token response is not a JSON object", status_code=response.status_code, body=data)
        return data

    @staticmethod
    def _on_refresh_done(task: asyncio.Task) -> None:
        # Retrieve the exception even when every waiter was cancelled
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Error fetching auth token: {exc}")
