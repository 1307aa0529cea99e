"""Tests for the shared authentication hub."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from forgeflow.exceptions import AuthError
from forgeflow.utils.constants import GMAIL_MODIFY_SCOPE, GMAIL_READONLY_SCOPE
from forgeflow.utils.context_hub import ContextHub
from forgeflow.utils.google_auth import GConf

SCOPE_A = "https://example.com/auth/a"
SCOPE_B = "https://example.com/auth/b"


@pytest.fixture
def gconf(tmp_path):
    return GConf(tmp_path / "credentials.json", tmp_path / "token.json")


class CountingAuthenticator:
    """Slow authenticator that records every handshake."""

    def __init__(self):
        self.calls = []

    async def __call__(self, gconf, scopes):
        self.calls.append(list(scopes))
        await asyncio.sleep(0.01)
        return MagicMock(name=f"service-{len(self.calls)}")


async def test_concurrent_callers_share_one_handshake(gconf):
    """N concurrent get_hub calls authenticate exactly once."""
    auth = CountingAuthenticator()
    hub = ContextHub(gconf, authenticator=auth)
    hub.add_scope(SCOPE_A)

    handles = await asyncio.gather(*(hub.get_hub() for _ in range(10)))

    assert len(auth.calls) == 1
    assert all(handle is handles[0] for handle in handles)
    assert hub.authenticated


async def test_union_of_scopes_from_independent_consumers(gconf):
    """Scopes registered by separate consumers are granted together."""
    auth = CountingAuthenticator()
    hub = ContextHub(gconf, authenticator=auth)

    hub.add_scope(SCOPE_A)
    hub.add_scope(SCOPE_B)

    first = await hub.get_hub()
    second = await hub.get_hub()

    assert auth.calls == [[SCOPE_A, SCOPE_B]]
    assert first is second


def test_duplicate_scopes_are_ignored(gconf):
    hub = ContextHub(gconf, authenticator=AsyncMock())

    hub.add_scope(GMAIL_READONLY_SCOPE)
    hub.add_scope(GMAIL_MODIFY_SCOPE)
    hub.add_scope(GMAIL_READONLY_SCOPE)

    assert hub.scopes == [GMAIL_READONLY_SCOPE, GMAIL_MODIFY_SCOPE]


def test_scopes_is_a_snapshot(gconf):
    hub = ContextHub(gconf, authenticator=AsyncMock())
    hub.add_scope(SCOPE_A)

    snapshot = hub.scopes
    snapshot.append(SCOPE_B)

    assert hub.scopes == [SCOPE_A]


async def test_failed_handshake_is_not_cached(gconf):
    service = MagicMock()
    auth = AsyncMock(side_effect=[AuthError("consent denied"), service])
    hub = ContextHub(gconf, authenticator=auth)
    hub.add_scope(SCOPE_A)

    with pytest.raises(AuthError):
        await hub.get_hub()
    assert not hub.authenticated

    assert await hub.get_hub() is service
    assert auth.await_count == 2


async def test_scope_added_after_authentication_is_not_granted(gconf):
    auth = CountingAuthenticator()
    hub = ContextHub(gconf, authenticator=auth)
    hub.add_scope(SCOPE_A)
    handle = await hub.get_hub()

    hub.add_scope(SCOPE_B)

    assert await hub.get_hub() is handle
    assert auth.calls == [[SCOPE_A]]
    assert hub.scopes == [SCOPE_A, SCOPE_B]
