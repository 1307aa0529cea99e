"""Google OAuth for Gmail access.

Runs the installed-app flow on first use, persists the token file, and
refreshes expired tokens on later runs. The blocking Google client calls
are pushed to a worker thread.
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

import structlog
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

from ..exceptions import AuthError

logger = structlog.get_logger()


@dataclass(frozen=True)
class GConf:
    """Where the OAuth client secret and the cached token live."""

    credentials_path: Path
    token_path: Path


def _load_credentials(gconf: GConf, scopes: Sequence[str]) -> Credentials:
    creds = None
    if gconf.token_path.exists():
        creds = Credentials.from_authorized_user_file(str(gconf.token_path), scopes)
        if not creds.has_scopes(scopes):
            logger.info("Cached token lacks requested scopes, re-authorizing")
            creds = None

    if creds and creds.valid:
        return creds

    if creds and creds.expired and creds.refresh_token:
        logger.debug("Refreshing expired Google token")
        creds.refresh(Request())
    else:
        if not gconf.credentials_path.exists():
            raise AuthError(f"Credential file missing: {gconf.credentials_path}")
        flow = InstalledAppFlow.from_client_secrets_file(
            str(gconf.credentials_path), list(scopes)
        )
        creds = flow.run_local_server(port=0)

    gconf.token_path.parent.mkdir(parents=True, exist_ok=True)
    gconf.token_path.write_text(creds.to_json())
    return creds


def _build_gmail_service(gconf: GConf, scopes: Sequence[str]) -> Any:
    creds = _load_credentials(gconf, scopes)
    return build("gmail", "v1", credentials=creds, cache_discovery=False)


async def gmail_auth(gconf: GConf, scopes: Sequence[str]) -> Any:
    """Authenticate with the union of ``scopes`` and return a Gmail service.

    Raises:
        AuthError: if credentials cannot be loaded or the handshake fails.
    """
    logger.info("Authenticating with Gmail API", scopes=list(scopes))
    try:
        service = await asyncio.to_thread(_build_gmail_service, gconf, scopes)
    except AuthError:
        raise
    except (GoogleAuthError, OSError, ValueError) as e:
        logger.error("Gmail authentication failed", error=str(e))
        raise AuthError(f"Gmail authentication failed: {e}") from e
    logger.info("Successfully authenticated with Gmail API")
    return service
