"""Shared pytest fixtures for resolver, coordinator and service tests."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from tests.mocks.fetch_stubs import (
    PROFILES_BASE_URL,
    TRAC_BASE_URL,
    FakeClock,
    StubTransport,
)
from wpcommit.config.settings import AppSettings
from wpcommit.resolve import EntityCache, RateLimiter
from wpcommit.runtime import build_resolvers

if TYPE_CHECKING:
    from collections.abc import Iterator

    from wpcommit.resolve import ResolverSet


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    """Keep handlers installed by init_logging from leaking between tests."""
    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


@pytest.fixture
def fake_clock() -> FakeClock:
    """Provide a manually advanced clock shared by cache and limiter."""
    return FakeClock()


@pytest.fixture
def stub_transport(fake_clock: FakeClock) -> StubTransport:
    """Provide a scriptable fetch transport with an empty URL table."""
    return StubTransport(clock=fake_clock)


@pytest.fixture
def stub_settings() -> AppSettings:
    """Provide settings pointing at the stubbed tracker and profile hosts."""
    return AppSettings(
        trac_base_url=TRAC_BASE_URL,
        profiles_base_url=PROFILES_BASE_URL,
        min_request_interval_ms=0,
        debounce_ms=10,
    )


@pytest.fixture
def entity_cache(fake_clock: FakeClock) -> EntityCache:
    """Provide a fresh cache per test driven by the fake clock."""
    return EntityCache(clock=fake_clock)


@pytest.fixture
def resolvers(
    stub_settings: AppSettings,
    stub_transport: StubTransport,
    entity_cache: EntityCache,
    fake_clock: FakeClock,
) -> ResolverSet:
    """Provide resolvers sharing one fresh cache and an unthrottled limiter."""
    return build_resolvers(
        stub_settings,
        transport=stub_transport,
        cache=entity_cache,
        rate_limiter=RateLimiter(min_interval_seconds=0, clock=fake_clock),
    )
