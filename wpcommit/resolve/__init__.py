"""Cached, rate-limited resolution of ticket, changeset and profile references."""

from .cache import DEFAULT_TTL_SECONDS, CacheEntry, EntityCache
from .rate_limit import RateLimiter
from .resolvers import (
    ChangesetResolver,
    ProfileResolver,
    ReferenceResolver,
    Resolution,
    ResolverSet,
    TicketResolver,
)
from .transport import (
    FetchResponse,
    FetchTransport,
    FetchTransportError,
    HttpxTransport,
)

__all__ = [
    "DEFAULT_TTL_SECONDS",
    "CacheEntry",
    "ChangesetResolver",
    "EntityCache",
    "FetchResponse",
    "FetchTransport",
    "FetchTransportError",
    "HttpxTransport",
    "ProfileResolver",
    "RateLimiter",
    "ReferenceResolver",
    "Resolution",
    "ResolverSet",
    "TicketResolver",
]
