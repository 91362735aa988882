"""HTTP transport to the remote store, with bounded retry."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

from studbook_sync.errors import (
    FailureKind,
    MalformedResponseError,
    RemoteUnavailableError,
    TransportError,
    operation_error,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteResult:
    """Outcome of a degrading read.

    Attributes:
        success: Whether the server answered with a success envelope
        data: Decoded JSON body on success
        message: Failure description on failure
        kind: Failure classification on failure
    """

    success: bool
    data: Any = None
    message: str = ""
    kind: FailureKind | None = None


def _error_details(payload: Any, status: int) -> tuple[str, str | None]:
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error") or f"HTTP {status}"
        code = payload.get("code")
        return str(message), str(code) if code is not None else None
    return f"HTTP {status}", None


class RemoteTransport:
    """
    JSON-over-HTTP client for the remote store.

    Network failures are retried with exponential backoff: one attempt plus
    ``max_retries`` retries, sleeping ``initial_backoff`` seconds and
    doubling each time. Reads degrade to a failed ``RemoteResult``; writes
    raise.

    Usage:
        async with RemoteTransport("https://db.example.org", api_key="...") as transport:
            result = await transport.read("/api/sync")
            await transport.write("POST", "/rest/v1/species", body=[...])
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str | None = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        initial_backoff: float = 0.5,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key or None
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._max_retries = max_retries
        self._initial_backoff = initial_backoff
        self._token: str | None = None
        self._session: aiohttp.ClientSession | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def set_token(self, token: str | None) -> None:
        """Bearer token of the current session, sent on every request."""
        self._token = token or None

    async def connect(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> RemoteTransport:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    def _get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        if self._api_key:
            headers["apikey"] = self._api_key
        return headers

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json_data: Any = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        """Make exactly one request. Raises a TransportError subclass on failure."""
        if not self._session:
            await self.connect()
        assert self._session is not None

        url = f"{self._base_url}{path}"
        try:
            async with self._session.request(
                method,
                url,
                json=json_data,
                params=params,
                headers=self._get_headers(),
            ) as response:
                status = response.status
                if "json" not in (response.content_type or "").lower():
                    text = await response.text()
                    raise MalformedResponseError(
                        f"Expected JSON from {method} {path}, got "
                        f"{response.content_type or 'no content type'}: {text[:200]}",
                        status_code=status,
                    )
                try:
                    payload = await response.json()
                except (ValueError, aiohttp.ContentTypeError) as e:
                    raise MalformedResponseError(
                        f"Invalid JSON body from {method} {path}: {e}", status_code=status
                    ) from e
        except (
            aiohttp.ClientConnectionError,
            aiohttp.ClientPayloadError,
            TimeoutError,
            OSError,
        ) as e:
            raise RemoteUnavailableError(f"Connection error: {e}") from e

        if status >= 400 or (isinstance(payload, dict) and payload.get("success") is False):
            message, code = _error_details(payload, status)
            raise operation_error(message, status_code=status, code=code)
        return payload

    async def _request_with_retry(
        self,
        method: str,
        path: str,
        *,
        json_data: Any = None,
        params: dict[str, str] | None = None,
        retry_malformed: bool,
    ) -> Any:
        attempt = 0
        while True:
            try:
                return await self._send(method, path, json_data=json_data, params=params)
            except (RemoteUnavailableError, MalformedResponseError) as e:
                if isinstance(e, MalformedResponseError) and not retry_malformed:
                    raise
                if attempt >= self._max_retries:
                    logger.debug(
                        "%s %s failed after %d attempts: %s", method, path, attempt + 1, e
                    )
                    raise
                attempt += 1
                # Exponential backoff
                delay = self._initial_backoff * (2 ** (attempt - 1))
                logger.debug(
                    "%s %s failed (%s), retry %d/%d in %.2fs",
                    method,
                    path,
                    e,
                    attempt,
                    self._max_retries,
                    delay,
                )
                await asyncio.sleep(delay)

    async def read(self, path: str, *, params: dict[str, str] | None = None) -> RemoteResult:
        """GET ``path``. Never raises; failures come back as ``success=False``."""
        try:
            data = await self._request_with_retry("GET", path, params=params, retry_malformed=True)
        except TransportError as e:
            logger.warning("Remote read %s failed: %s", path, e.message)
            return RemoteResult(success=False, message=e.message, kind=e.kind)
        return RemoteResult(success=True, data=data)

    async def write(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        """Send a mutating request.

        Raises:
            RemoteUnavailableError: Network failure persisted through every retry
            MalformedResponseError: Non-JSON answer (not retried)
            RemoteOperationError: The server reported a failure
        """
        return await self._request_with_retry(
            method, path, json_data=body, params=params, retry_malformed=False
        )
