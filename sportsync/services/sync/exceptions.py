"""
Exceptions raised by the sync layer.

Only MissingConfigurationError is fatal; every other error is caught at the
orchestrator's per-record seam, counted and logged.
"""
from typing import List, Optional


class SyncError(Exception):
    """Base class for sync and reconciliation errors."""


class MissingConfigurationError(SyncError):
    """Required credentials are absent; raised before any pass begins."""

    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__(f"Missing required configuration: {', '.join(missing)}")


class ProviderError(SyncError):
    """A provider could not be reached or answered with an error status."""

    def __init__(self, provider: str, status: Optional[int], message: str):
        self.provider = provider
        self.status = status
        super().__init__(f"{provider} error (status={status}): {message}")


class MalformedPayloadError(SyncError):
    """A single provider record could not be normalized."""

    def __init__(self, entity_type: str, provider: str, provider_id, reason: str):
        self.entity_type = entity_type
        self.provider = provider
        self.provider_id = provider_id
        self.reason = reason
        super().__init__(
            f"Malformed {provider} {entity_type} payload (id={provider_id}): {reason}"
        )


class SourceIdConflictError(SyncError):
    """A provider-local id is already bound to a different canonical id."""

    def __init__(self, entity_type: str, provider: str, provider_id: str,
                 existing_canonical_id: str, new_canonical_id: str):
        self.entity_type = entity_type
        self.provider = provider
        self.provider_id = provider_id
        self.existing_canonical_id = existing_canonical_id
        self.new_canonical_id = new_canonical_id
        super().__init__(
            f"{provider} {entity_type} id {provider_id} already maps to canonical "
            f"{existing_canonical_id}, refusing to bind it to {new_canonical_id}"
        )
