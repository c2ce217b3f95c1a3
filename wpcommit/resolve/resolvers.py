"""Ticket, changeset and profile resolvers sharing one cache and limiter."""

from __future__ import annotations

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from typing_extensions import override
from urllib.parse import quote

from wpcommit.entities import EntityKey, EntityKind

from .cache import CacheEntry
from .scraping import (
    changeset_exists,
    extract_changeset_message,
    extract_profile_name,
    extract_ticket_title,
    ticket_exists,
)
from .transport import DEFAULT_TIMEOUT_SECONDS, FetchTransportError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .cache import EntityCache
    from .rate_limit import RateLimiter
    from .transport import FetchResponse, FetchTransport

logger = logging.getLogger(__name__)

_NUMERIC_IDENTIFIER = re.compile(r"[0-9]+")


@dataclass(frozen=True, slots=True)
class Resolution:
    """Outcome of one resolver call.

    ``verified`` is False when the lookup could not reach an authoritative
    answer (transport failure, timeout, 5xx or 429). Such outcomes report
    ``exists=False`` but are never written to the cache.
    """

    key: EntityKey
    exists: bool
    detail: str | None = None
    verified: bool = True

    @classmethod
    def from_entry(cls, key: EntityKey, entry: CacheEntry) -> Resolution:
        """Build a resolution from a cached entry."""
        return cls(key=key, exists=entry.exists, detail=entry.detail)

    @classmethod
    def unverified(cls, key: EntityKey) -> Resolution:
        """Build a negative resolution that was not confirmed by the service."""
        return cls(key=key, exists=False, verified=False)


class ReferenceResolver(ABC):
    """Resolve one entity kind through cache, limiter and fetch transport."""

    kind: ClassVar[EntityKind]

    _transport: FetchTransport
    _cache: EntityCache
    _rate_limiter: RateLimiter
    _base_url: str
    _timeout_seconds: float
    _inflight: dict[EntityKey, asyncio.Task[Resolution]]

    def __init__(  # noqa: PLR0913
        self,
        *,
        transport: FetchTransport,
        cache: EntityCache,
        rate_limiter: RateLimiter,
        base_url: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """Create resolver bound to shared process-wide services."""
        self._transport = transport
        self._cache = cache
        self._rate_limiter = rate_limiter
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._inflight = {}

    @abstractmethod
    def is_valid_identifier(self, identifier: str) -> bool:
        """Return True when the identifier is syntactically acceptable."""

    @abstractmethod
    def build_url(self, identifier: str) -> str:
        """Return the lookup URL for one identifier."""

    @abstractmethod
    def interpret(self, body: str) -> tuple[bool, str | None]:
        """Return (exists, detail) for a 2xx response body."""

    async def resolve(self, identifier: str) -> Resolution:
        """Resolve one identifier, fetching only on cache miss."""
        key = EntityKey(kind=self.kind, identifier=identifier)
        if not self.is_valid_identifier(identifier):
            return Resolution(key=key, exists=False)

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return Resolution.from_entry(key, cached)

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._fetch_and_store(key))
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        return await asyncio.shield(task)

    @property
    def inflight_count(self) -> int:
        """Return how many distinct lookups are currently outstanding."""
        return len(self._inflight)

    async def shutdown(self) -> None:
        """Cancel outstanding lookups and wait until they have stopped."""
        outstanding = list(self._inflight.values())
        for task in outstanding:
            _ = task.cancel()
        if outstanding:
            _ = await asyncio.gather(*outstanding, return_exceptions=True)

    async def _fetch_and_store(self, key: EntityKey) -> Resolution:
        await self._rate_limiter.acquire()
        url = self.build_url(key.identifier)
        try:
            response = await self._transport.fetch(
                url,
                timeout_seconds=self._timeout_seconds,
            )
        except FetchTransportError as exc:
            logger.warning(
                "Reference lookup failed; leaving %s uncached",
                key,
                extra={"url": url, "error": str(exc)},
            )
            return Resolution.unverified(key)

        if response.is_transient:
            logger.warning(
                "Reference lookup returned transient status for %s",
                key,
                extra={"url": url, "status_code": response.status_code},
            )
            return Resolution.unverified(key)

        exists, detail = self._interpret_response(response)
        self._cache.put(
            key,
            CacheEntry(exists=exists, detail=detail, fetched_at=self._cache.now()),
        )
        return Resolution(key=key, exists=exists, detail=detail)

    def _interpret_response(self, response: FetchResponse) -> tuple[bool, str | None]:
        if not response.is_success:
            return False, None
        return self.interpret(response.body)

    def _forget(self, key: EntityKey, done: asyncio.Task[Resolution]) -> None:
        if self._inflight.get(key) is done:
            del self._inflight[key]
        if done.cancelled():
            return
        exc = done.exception()
        if exc is not None:
            logger.error("Reference lookup for %s raised %r", key, exc)


class TicketResolver(ReferenceResolver):
    """Resolve ``#123`` ticket numbers against the Trac CSV export."""

    kind = EntityKind.TICKET

    @override
    def is_valid_identifier(self, identifier: str) -> bool:
        return _NUMERIC_IDENTIFIER.fullmatch(identifier) is not None

    @override
    def build_url(self, identifier: str) -> str:
        return f"{self._base_url}/ticket/{identifier}?format=csv"

    @override
    def interpret(self, body: str) -> tuple[bool, str | None]:
        if not ticket_exists(body):
            return False, None
        return True, extract_ticket_title(body)


class ChangesetResolver(ReferenceResolver):
    """Resolve ``[123]`` changeset numbers against the Trac changeset page."""

    kind = EntityKind.CHANGESET

    @override
    def is_valid_identifier(self, identifier: str) -> bool:
        return _NUMERIC_IDENTIFIER.fullmatch(identifier) is not None

    @override
    def build_url(self, identifier: str) -> str:
        return f"{self._base_url}/changeset/{identifier}"

    @override
    def interpret(self, body: str) -> tuple[bool, str | None]:
        if not changeset_exists(body):
            return False, None
        return True, extract_changeset_message(body)


class ProfileResolver(ReferenceResolver):
    """Resolve usernames against WordPress.org profile pages."""

    kind = EntityKind.PROFILE

    @override
    def is_valid_identifier(self, identifier: str) -> bool:
        return bool(identifier)

    @override
    def build_url(self, identifier: str) -> str:
        return f"{self._base_url}/{quote(identifier, safe='-_')}/"

    @override
    def interpret(self, body: str) -> tuple[bool, str | None]:
        return True, extract_profile_name(body)

    async def resolve_usernames(
        self,
        usernames: Iterable[str],
    ) -> dict[str, Resolution]:
        """Resolve all usernames in parallel and return once every one is done."""
        unique = list(dict.fromkeys(usernames))
        results = await asyncio.gather(*(self.resolve(name) for name in unique))
        return dict(zip(unique, results, strict=True))


@dataclass(frozen=True, slots=True)
class ResolverSet:
    """The three resolvers, dispatched by entity kind."""

    ticket: TicketResolver
    changeset: ChangesetResolver
    profile: ProfileResolver

    def for_kind(self, kind: EntityKind) -> ReferenceResolver:
        """Return the resolver handling one entity kind."""
        if kind is EntityKind.TICKET:
            return self.ticket
        if kind is EntityKind.CHANGESET:
            return self.changeset
        return self.profile

    async def resolve(self, key: EntityKey) -> Resolution:
        """Resolve one entity key with its kind's resolver."""
        return await self.for_kind(key.kind).resolve(key.identifier)

    async def shutdown(self) -> None:
        """Cancel the outstanding lookups of every resolver."""
        for resolver in (self.ticket, self.changeset, self.profile):
            await resolver.shutdown()
