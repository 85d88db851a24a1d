"""
Domain model for the Knowbook credential kept in the auth provider's user metadata.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

STALE_AFTER = timedelta(hours=24)

# Metadata keys owned by the credential record. Anything else in the user's
# metadata belongs to someone else and must be left untouched.
CREDENTIAL_METADATA_KEYS = (
    "knowbook_api_key",
    "knowbook_user_id",
    "knowbook_organization_id",
    "api_key_created_at",
    "api_key_last_validated",
)


class CredentialRecord(BaseModel):
    """Issued Knowbook API key plus its provenance for one auth account."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api_key: str = Field(..., alias="knowbook_api_key")
    knowbook_user_id: Optional[str] = Field(None, alias="knowbook_user_id")
    organization_id: Optional[str] = Field(None, alias="knowbook_organization_id")
    issued_at: Optional[datetime] = Field(None, alias="api_key_created_at")
    last_validated_at: Optional[datetime] = Field(None, alias="api_key_last_validated")

    @classmethod
    def from_metadata(cls, metadata: Mapping[str, Any] | None) -> Optional["CredentialRecord"]:
        """Build a record from raw user metadata, or ``None`` when no key is stored."""
        if not metadata or not metadata.get("knowbook_api_key"):
            return None
        return cls.model_validate(
            {key: metadata.get(key) for key in CREDENTIAL_METADATA_KEYS}
        )

    def to_metadata(self) -> Dict[str, Any]:
        """Serialize using the metadata key names, timestamps as ISO strings."""
        return self.model_dump(mode="json", by_alias=True)

    def public_metadata(self) -> Dict[str, Any]:
        """Metadata safe to return to a browser: everything except the key."""
        data = self.to_metadata()
        data.pop("knowbook_api_key", None)
        return data


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_stale(
    record: CredentialRecord,
    *,
    now: Optional[datetime] = None,
    window: timedelta = STALE_AFTER,
) -> bool:
    """Return True when the key has not been validated within ``window``."""
    if record.last_validated_at is None:
        return True
    current = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    return current - _as_utc(record.last_validated_at) > window


__all__ = [
    "CREDENTIAL_METADATA_KEYS",
    "CredentialRecord",
    "STALE_AFTER",
    "is_stale",
]
