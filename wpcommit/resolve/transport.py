"""HTTP fetch transport used by reference resolvers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import Protocol, runtime_checkable

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
USER_AGENT = "wpcommit/0.1 (+commit message linter)"
_TRANSIENT_STATUSES = frozenset({HTTPStatus.TOO_MANY_REQUESTS})


class FetchTransportError(RuntimeError):
    """Raised when a fetch fails before an HTTP status is available."""

    @classmethod
    def timed_out(cls, url: str, timeout_seconds: float) -> FetchTransportError:
        """Build error for requests exceeding the fetch timeout."""
        message = f"Fetch timed out after {timeout_seconds:g}s: {url}"
        return cls(message)

    @classmethod
    def failed(cls, url: str, reason: str) -> FetchTransportError:
        """Build error for connection and protocol failures."""
        message = f"Fetch failed for {url}: {reason}"
        return cls(message)

    @classmethod
    def closed(cls, url: str) -> FetchTransportError:
        """Build error for fetches issued after the transport shut down."""
        message = f"Fetch transport is closed: {url}"
        return cls(message)


@dataclass(frozen=True, slots=True)
class FetchResponse:
    """Status and decoded body of one completed fetch."""

    status_code: int
    body: str

    @property
    def is_success(self) -> bool:
        """Return True for 2xx statuses."""
        return HTTPStatus.OK <= self.status_code < HTTPStatus.MULTIPLE_CHOICES

    @property
    def is_transient(self) -> bool:
        """Return True for statuses that do not prove absence (5xx, 429)."""
        return (
            self.status_code >= HTTPStatus.INTERNAL_SERVER_ERROR
            or self.status_code in _TRANSIENT_STATUSES
        )


@runtime_checkable
class FetchTransport(Protocol):
    """Generic "fetch URL, get status and body or error" capability."""

    async def fetch(self, url: str, *, timeout_seconds: float) -> FetchResponse:
        """Fetch one URL or raise FetchTransportError."""
        ...


class HttpxTransport:
    """Fetch transport backed by one shared ``httpx.AsyncClient``."""

    _client: httpx.AsyncClient | None
    _transport: httpx.AsyncBaseTransport | None
    _owns_client: bool
    _closed: bool

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Wrap a supplied client, or lazily build one on first use."""
        self._client = client
        self._transport = transport
        self._owns_client = client is None
        self._closed = False

    async def startup(self) -> None:
        """Create the underlying client when it is owned by this transport."""
        self._closed = False
        _ = self._ensure_client()

    async def shutdown(self) -> None:
        """Close the owned client; later fetches fail instead of reopening it."""
        self._closed = True
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str, *, timeout_seconds: float) -> FetchResponse:
        """Issue one GET with a hard timeout and map failures to one error type."""
        if self._closed:
            raise FetchTransportError.closed(url)
        client = self._ensure_client()
        try:
            response = await client.get(url, timeout=timeout_seconds)
        except httpx.TimeoutException as exc:
            raise FetchTransportError.timed_out(url, timeout_seconds) from exc
        except httpx.HTTPError as exc:
            raise FetchTransportError.failed(url, type(exc).__name__) from exc
        logger.debug(
            "Fetched reference URL",
            extra={"url": url, "status_code": response.status_code},
        )
        return FetchResponse(status_code=response.status_code, body=response.text)

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                transport=self._transport,
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT},
            )
        return self._client
