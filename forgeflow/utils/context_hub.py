"""Shared Google authentication for every component that needs it.

Consumers (trigger and tool builders) register the scopes they need with
``add_scope`` while they are being constructed. The first ``get_hub`` call
authenticates once with the union of everything registered so far and
caches the handle; every later call gets the cached handle back.

Register all scopes before the first ``build()``. Scopes added after the
handshake has started are not part of the cached credentials.
"""

import asyncio
import threading
from typing import Any, Awaitable, Callable, List, Optional, Sequence

import structlog

from .google_auth import GConf, gmail_auth

logger = structlog.get_logger()

Authenticator = Callable[[GConf, Sequence[str]], Awaitable[Any]]


class ContextHub:
    """Aggregates scopes and performs one lazy, shared authentication."""

    def __init__(self, gconf: GConf, authenticator: Authenticator = gmail_auth):
        self.gconf = gconf
        self._authenticator = authenticator
        self._scopes: List[str] = []
        self._scopes_lock = threading.Lock()
        self._hub: Optional[Any] = None
        self._hub_lock = asyncio.Lock()

    @property
    def scopes(self) -> List[str]:
        """Snapshot of the registered scopes, in registration order."""
        with self._scopes_lock:
            return list(self._scopes)

    @property
    def authenticated(self) -> bool:
        return self._hub is not None

    def add_scope(self, scope: str) -> None:
        """Register a scope. Duplicate registrations are ignored."""
        with self._scopes_lock:
            if scope not in self._scopes:
                self._scopes.append(scope)
            registered = list(self._scopes)
        if self._hub is not None:
            logger.warning(
                "Scope added after authentication, it will not be granted",
                scope=scope,
            )
        logger.info("Added scope", scope=scope, scopes=registered)

    async def get_hub(self) -> Any:
        """Return the authenticated handle, authenticating on first use.

        Raises:
            AuthError: if the handshake fails. Nothing is cached in that
                case, so a later call tries again.
        """
        async with self._hub_lock:
            if self._hub is not None:
                return self._hub

            # Snapshot under the sync lock, released before awaiting
            scopes = self.scopes
            logger.info("Authenticating context hub", scopes=scopes)
            hub = await self._authenticator(self.gconf, scopes)
            self._hub = hub
            return hub
