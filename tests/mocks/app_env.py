"""Environment helpers for app and CLI tests using the stubbed hosts."""

from __future__ import annotations

from typing import TYPE_CHECKING

from tests.mocks.fetch_stubs import PROFILES_BASE_URL, TRAC_BASE_URL

if TYPE_CHECKING:
    import pytest


def use_stub_hosts(monkeypatch: pytest.MonkeyPatch) -> None:
    """Point settings at the stub hosts and disable request spacing."""
    monkeypatch.setenv("WPCOMMIT_TRAC_BASE_URL", TRAC_BASE_URL)
    monkeypatch.setenv("WPCOMMIT_PROFILES_BASE_URL", PROFILES_BASE_URL)
    monkeypatch.setenv("WPCOMMIT_MIN_REQUEST_INTERVAL_MS", "0")
    monkeypatch.setenv("WPCOMMIT_DEBOUNCE_MS", "0")
    monkeypatch.delenv("WPCOMMIT_ENABLED", raising=False)
    monkeypatch.delenv("WPCOMMIT_LOG_LEVEL", raising=False)
