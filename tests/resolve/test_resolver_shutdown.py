"""Tests for cancelling outstanding lookups when the runtime is disposed."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import TYPE_CHECKING

from tests.mocks.fetch_stubs import ticket_url
from wpcommit.runtime import create_runtime, dispose_runtime

if TYPE_CHECKING:
    from tests.mocks.fetch_stubs import StubTransport
    from wpcommit.config.settings import AppSettings
    from wpcommit.resolve import ResolverSet


async def _wait_for_calls(transport: StubTransport, count: int) -> None:
    for _ in range(100):
        if len(transport.calls) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError


async def test_resolver_set_shutdown_cancels_inflight_fetches(
    resolvers: ResolverSet,
    stub_transport: StubTransport,
) -> None:
    """Ensure shutdown cancels blocked fetches and releases their waiters."""
    stub_transport.gate = asyncio.Event()
    ticket_waiter = asyncio.create_task(resolvers.ticket.resolve("1"))
    changeset_waiter = asyncio.create_task(resolvers.changeset.resolve("2"))
    await _wait_for_calls(stub_transport, 2)

    await resolvers.shutdown()
    _ = await asyncio.wait([ticket_waiter, changeset_waiter])

    if resolvers.ticket.inflight_count or resolvers.changeset.inflight_count:
        raise AssertionError
    if not (ticket_waiter.cancelled() and changeset_waiter.cancelled()):
        raise AssertionError


async def test_dispose_runtime_stops_lookups_queued_on_limiter(
    stub_settings: AppSettings,
    stub_transport: StubTransport,
) -> None:
    """Ensure lookups waiting for a limiter slot never fetch after dispose."""
    settings = replace(stub_settings, min_request_interval_ms=200)
    runtime = create_runtime(settings, transport=stub_transport)

    _ = runtime.service.run_pass("buffer", "A: B.\n\nSee #1, #2, #3.")
    await _wait_for_calls(stub_transport, 1)
    await dispose_runtime(runtime)
    await asyncio.sleep(0.3)

    if runtime.resolvers.ticket.inflight_count:
        raise AssertionError
    if stub_transport.calls != [ticket_url(1)]:
        raise AssertionError
