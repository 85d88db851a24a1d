"""
Persist the issued Knowbook API key in the auth provider's user metadata.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from knowbook_canvas.clients import AuthServiceClient, AuthServiceError
from knowbook_canvas.models.credentials import CredentialRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreResult:
    success: bool
    error: Optional[str] = None


class CredentialStore:
    """Read and write the credential record keyed by auth account id."""

    def __init__(self, metadata_store: AuthServiceClient) -> None:
        self._metadata = metadata_store

    async def store(
        self,
        user_id: str,
        api_key: str,
        knowbook_user_id: Optional[str] = None,
        organization_id: Optional[str] = None,
    ) -> StoreResult:
        """Write a freshly issued key; the key counts as validated at write time."""
        now = datetime.now(timezone.utc)
        record = CredentialRecord(
            api_key=api_key,
            knowbook_user_id=knowbook_user_id,
            organization_id=organization_id,
            issued_at=now,
            last_validated_at=now,
        )
        try:
            user = await self._metadata.get_user_by_id(user_id)
            merged = self._merge(user.user_metadata, record.to_metadata())
            await self._metadata.update_user_metadata(user_id, merged)
        except AuthServiceError as exc:
            logger.error("Failed to store Knowbook API key for user %s: %s", user_id, exc)
            return StoreResult(success=False, error=exc.message)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unexpected error storing Knowbook API key for user %s", user_id)
            return StoreResult(success=False, error=str(exc) or "Unknown error")
        return StoreResult(success=True)

    async def read(self, user_id: str) -> Optional[CredentialRecord]:
        """Return the stored record, or ``None`` when absent or unreadable."""
        try:
            user = await self._metadata.get_user_by_id(user_id)
        except AuthServiceError as exc:
            logger.error("Failed to load user %s for credential read: %s", user_id, exc)
            return None
        except Exception:  # pylint: disable=broad-except
            logger.exception("Unexpected error reading Knowbook credential for user %s", user_id)
            return None
        return self.record_from_metadata(user.user_metadata)

    @staticmethod
    def record_from_metadata(metadata: Mapping[str, Any] | None) -> Optional[CredentialRecord]:
        """Build a record from metadata that was already loaded with the user."""
        try:
            return CredentialRecord.from_metadata(metadata)
        except ValueError:
            logger.warning("Ignoring malformed Knowbook credential metadata.")
            return None

    async def touch_validated(self, user_id: str) -> None:
        """Stamp ``last_validated_at``; failures only get logged."""
        try:
            user = await self._metadata.get_user_by_id(user_id)
            merged = self._merge(
                user.user_metadata,
                {"api_key_last_validated": datetime.now(timezone.utc).isoformat()},
            )
            await self._metadata.update_user_metadata(user_id, merged)
        except AuthServiceError as exc:
            logger.warning(
                "Failed to update API key validation timestamp for user %s: %s",
                user_id,
                exc,
            )
        except Exception:  # pylint: disable=broad-except
            logger.exception(
                "Unexpected error updating API key validation timestamp for user %s", user_id
            )

    @staticmethod
    def _merge(current: Mapping[str, Any], updates: Mapping[str, Any]) -> Dict[str, Any]:
        merged = dict(current or {})
        merged.update(updates)
        return merged


__all__ = ["CredentialStore", "StoreResult"]
