"""Mailbox trigger: polls Gmail and emits one event per matching message."""

import asyncio
from datetime import timedelta
from typing import Any, Dict, List

import structlog
from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import Error as GoogleApiError
from httplib2 import HttpLib2Error

from ..events.channels import EventSender, ShutdownListener
from ..events.event import Event
from ..exceptions import CollaboratorIOError
from ..utils.constants import (
    DEFAULT_GMAIL_POLL_INTERVAL_SECONDS,
    DEFAULT_GMAIL_QUERY,
    GMAIL_EVENT_NAME,
    GMAIL_READONLY_SCOPE,
)
from ..utils.context_hub import ContextHub
from ..utils.google_auth import GConf, gmail_auth
from .base import Trigger, race_shutdown

logger = structlog.get_logger()


class GmailWatchTrigger(Trigger):
    """Emit ``NewEmail`` events for messages matching ``query``.

    The mailbox is checked immediately on launch and then every
    ``interval``. A message stays eligible until something (usually a
    tool the model calls) changes it so the query no longer matches.
    """

    name = "gmail_watch"

    def __init__(
        self,
        service: Any,
        interval: timedelta = timedelta(seconds=DEFAULT_GMAIL_POLL_INTERVAL_SECONDS),
        query: str = DEFAULT_GMAIL_QUERY,
        user_id: str = "me",
    ) -> None:
        super().__init__()
        if interval <= timedelta(0):
            raise ValueError("Gmail poll interval must be positive")
        self.service = service
        self.interval = interval
        self.query = query
        self.user_id = user_id

    @classmethod
    async def authenticate(cls, gconf: GConf, **kwargs: Any) -> "GmailWatchTrigger":
        """Authenticate on its own with the read-only scope."""
        service = await gmail_auth(gconf, [GMAIL_READONLY_SCOPE])
        return cls(service, **kwargs)

    async def run(self, sender: EventSender, shutdown: ShutdownListener) -> None:
        period = self.interval.total_seconds()
        while True:
            stopped, messages = await race_shutdown(shutdown, self._fetch_messages())
            if stopped:
                break
            for message in messages or []:
                await sender.send(Event(name=GMAIL_EVENT_NAME, payload=message))

            stopped, _ = await race_shutdown(shutdown, asyncio.sleep(period))
            if stopped:
                break
        logger.info("GmailWatchTrigger received shutdown signal, terminating")

    async def _fetch_messages(self) -> List[Dict[str, Any]]:
        """Full message resources for the current query. Errors are logged."""
        try:
            return await asyncio.to_thread(self._fetch_messages_sync)
        except CollaboratorIOError as e:
            logger.error("Failed to poll Gmail", query=self.query, error=str(e))
            return []

    def _fetch_messages_sync(self) -> List[Dict[str, Any]]:
        messages_api = self.service.users().messages()
        try:
            listing = messages_api.list(userId=self.user_id, q=self.query).execute()
            refs = listing.get("messages", [])
            logger.debug("Gmail poll complete", query=self.query, matches=len(refs))
            return [
                messages_api.get(userId=self.user_id, id=ref["id"]).execute()
                for ref in refs
            ]
        except (GoogleApiError, GoogleAuthError, HttpLib2Error, OSError) as e:
            raise CollaboratorIOError(f"Gmail API call failed: {e}") from e


class GmailWatchTriggerBuilder:
    """Builds a ``GmailWatchTrigger`` from a shared ``ContextHub``.

    Construction registers the read-only scope; ``build()`` performs (or
    reuses) the hub's single authentication.
    """

    def __init__(self, hub: ContextHub, **trigger_kwargs: Any) -> None:
        hub.add_scope(GMAIL_READONLY_SCOPE)
        self.hub = hub
        self.trigger_kwargs = trigger_kwargs

    async def build(self) -> GmailWatchTrigger:
        service = await self.hub.get_hub()
        return GmailWatchTrigger(service, **self.trigger_kwargs)
