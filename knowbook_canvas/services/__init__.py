"""Service layer exports."""

from .connection_status import (
    AuthEvent,
    ConnectionState,
    ConnectionStatus,
    ConnectionStatusMonitor,
)
from .credential_store import CredentialStore, StoreResult
from .signup import SignupOutcome, SignupService

__all__ = [
    "AuthEvent",
    "ConnectionState",
    "ConnectionStatus",
    "ConnectionStatusMonitor",
    "CredentialStore",
    "SignupOutcome",
    "SignupService",
    "StoreResult",
]
