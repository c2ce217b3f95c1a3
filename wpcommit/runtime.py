"""Process-wide composition root for cache, limiter, resolvers and service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from wpcommit.annotate import AnnotationCoordinator
from wpcommit.resolve import (
    ChangesetResolver,
    EntityCache,
    HttpxTransport,
    ProfileResolver,
    RateLimiter,
    ResolverSet,
    TicketResolver,
)
from wpcommit.service import ValidationService

if TYPE_CHECKING:
    from wpcommit.config.settings import AppSettings
    from wpcommit.resolve import FetchTransport
    from wpcommit.service import PresentationAdapter


@dataclass(slots=True)
class Runtime:
    """Shared services with process lifetime."""

    settings: AppSettings
    transport: FetchTransport
    cache: EntityCache
    rate_limiter: RateLimiter
    resolvers: ResolverSet
    coordinator: AnnotationCoordinator
    service: ValidationService
    owned_transport: HttpxTransport | None = None


def build_resolvers(
    settings: AppSettings,
    *,
    transport: FetchTransport,
    cache: EntityCache,
    rate_limiter: RateLimiter,
) -> ResolverSet:
    """Create the three resolvers sharing one cache and one limiter."""
    return ResolverSet(
        ticket=TicketResolver(
            transport=transport,
            cache=cache,
            rate_limiter=rate_limiter,
            base_url=settings.trac_base_url,
            timeout_seconds=settings.http_timeout_seconds,
        ),
        changeset=ChangesetResolver(
            transport=transport,
            cache=cache,
            rate_limiter=rate_limiter,
            base_url=settings.trac_base_url,
            timeout_seconds=settings.http_timeout_seconds,
        ),
        profile=ProfileResolver(
            transport=transport,
            cache=cache,
            rate_limiter=rate_limiter,
            base_url=settings.profiles_base_url,
            timeout_seconds=settings.http_timeout_seconds,
        ),
    )


def create_runtime(
    settings: AppSettings,
    *,
    transport: FetchTransport | None = None,
    presenter: PresentationAdapter | None = None,
) -> Runtime:
    """Create every shared service from settings."""
    owned_transport: HttpxTransport | None = None
    if transport is None:
        owned_transport = HttpxTransport()
        transport = owned_transport
    cache = EntityCache(max_entries=settings.cache_max_entries)
    rate_limiter = RateLimiter(
        min_interval_seconds=settings.min_request_interval_seconds,
    )
    resolvers = build_resolvers(
        settings,
        transport=transport,
        cache=cache,
        rate_limiter=rate_limiter,
    )
    coordinator = AnnotationCoordinator(lookup=resolvers, sink=presenter)
    service = ValidationService(
        coordinator=coordinator,
        presenter=presenter,
        debounce_seconds=settings.debounce_seconds,
        file_patterns=settings.file_patterns,
        enabled=settings.enabled,
    )
    return Runtime(
        settings=settings,
        transport=transport,
        cache=cache,
        rate_limiter=rate_limiter,
        resolvers=resolvers,
        coordinator=coordinator,
        service=service,
        owned_transport=owned_transport,
    )


async def dispose_runtime(runtime: Runtime) -> None:
    """Cancel outstanding passes and lookups, then close the owned HTTP client."""
    await runtime.service.shutdown()
    await runtime.resolvers.shutdown()
    if runtime.owned_transport is not None:
        await runtime.owned_transport.shutdown()
