"""
Connection status of a user's Knowbook credential.

Loads the stored credential, re-validates it against the Knowbook API once it
is older than the staleness window, and reacts to sign-in / sign-out events.
"""

from __future__ import annotations

import enum
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel

from knowbook_canvas.clients import KnowbookApiClient
from knowbook_canvas.models.credentials import STALE_AFTER, CredentialRecord, is_stale
from knowbook_canvas.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)

INVALID_KEY_MESSAGE = "Invalid Knowbook API key"


class ConnectionState(str, enum.Enum):
    LOADING = "loading"
    NOT_CONNECTED = "not_connected"
    NEEDS_VALIDATION = "needs_validation"
    CONNECTED = "connected"
    ERROR = "error"


class AuthEvent(str, enum.Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"


class ConnectionStatus(BaseModel):
    """Snapshot returned to the UI."""

    state: ConnectionState
    connected: bool
    is_validated: bool
    metadata: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class ConnectionStatusMonitor:
    """Per-user state machine over the stored Knowbook credential."""

    def __init__(
        self,
        credential_store: CredentialStore,
        api_client: KnowbookApiClient,
        *,
        stale_after: timedelta = STALE_AFTER,
    ) -> None:
        self._credentials = credential_store
        self._api = api_client
        self._stale_after = stale_after
        self._user_id: Optional[str] = None
        self._record: Optional[CredentialRecord] = None
        self._state = ConnectionState.LOADING
        self._error: Optional[str] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def record(self) -> Optional[CredentialRecord]:
        return self._record

    async def load(self, user_id: str, *, validate_stale: bool = True) -> ConnectionStatus:
        """Load the credential for ``user_id`` and settle on a state."""
        self._user_id = user_id
        self._state = ConnectionState.LOADING
        self._error = None

        self._record = await self._credentials.read(user_id)
        if self._record is None:
            self._state = ConnectionState.NOT_CONNECTED
            return self.snapshot()

        if not is_stale(self._record, window=self._stale_after):
            self._state = ConnectionState.CONNECTED
            return self.snapshot()

        self._state = ConnectionState.NEEDS_VALIDATION
        if validate_stale:
            await self.validate()
        return self.snapshot()

    async def validate(self) -> bool:
        """Probe the stored key against the Knowbook API."""
        if self._record is None:
            return False

        is_valid = await self._api.validate_api_key(self._record.api_key)
        if is_valid:
            self._state = ConnectionState.CONNECTED
            self._error = None
            self._record = self._record.model_copy(
                update={"last_validated_at": datetime.now(timezone.utc)}
            )
            if self._user_id:
                await self._credentials.touch_validated(self._user_id)
        else:
            logger.warning("Stored Knowbook API key rejected for user %s", self._user_id)
            self._state = ConnectionState.ERROR
            self._error = INVALID_KEY_MESSAGE
        return is_valid

    async def handle_auth_event(
        self, event: AuthEvent | str, user_id: Optional[str] = None
    ) -> ConnectionStatus:
        """
        Apply a sign-in or sign-out notification from the auth provider.

        Other provider events (token refresh, user updates, the initial
        session) leave the state untouched.
        """
        try:
            event = AuthEvent(event)
        except ValueError:
            logger.debug("Ignoring auth event %s", event)
            return self.snapshot()
        if event is AuthEvent.SIGNED_OUT:
            self.reset()
        elif user_id:
            await self.load(user_id)
        return self.snapshot()

    def reset(self) -> None:
        self._user_id = None
        self._record = None
        self._state = ConnectionState.NOT_CONNECTED
        self._error = None

    def clear_error(self) -> None:
        self._error = None
        if self._state is ConnectionState.ERROR:
            self._state = (
                ConnectionState.NEEDS_VALIDATION
                if self._record is not None
                else ConnectionState.NOT_CONNECTED
            )

    def snapshot(self) -> ConnectionStatus:
        return ConnectionStatus(
            state=self._state,
            connected=self._record is not None,
            is_validated=self._state is ConnectionState.CONNECTED,
            metadata=self._record.public_metadata() if self._record else None,
            error=self._error,
        )


__all__ = [
    "AuthEvent",
    "ConnectionState",
    "ConnectionStatus",
    "ConnectionStatusMonitor",
    "INVALID_KEY_MESSAGE",
]
