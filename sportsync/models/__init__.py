"""
Models Module

- models: SQLAlchemy tables for the canonical dataset, the mapping registry
  and sync bookkeeping
- canonical: provider-agnostic dataclasses produced by the normalizers

Usage:
    from sportsync.models import Team, ApiIdMapping, CanonicalTeam
"""
from sportsync.models.models import (
    Base,
    League,
    Team,
    Player,
    Fixture,
    Event,
    EntitySourceId,
    ApiIdMapping,
    SyncMetadata,
    MatchAuditLog,
)
from sportsync.models.canonical import (
    PRIMARY_PROVIDER,
    SECONDARY_PROVIDER,
    CanonicalLeague,
    CanonicalTeam,
    CanonicalPlayer,
    CanonicalFixture,
    CanonicalEvent,
)

__all__ = [
    "Base",
    "League",
    "Team",
    "Player",
    "Fixture",
    "Event",
    "EntitySourceId",
    "ApiIdMapping",
    "SyncMetadata",
    "MatchAuditLog",
    "PRIMARY_PROVIDER",
    "SECONDARY_PROVIDER",
    "CanonicalLeague",
    "CanonicalTeam",
    "CanonicalPlayer",
    "CanonicalFixture",
    "CanonicalEvent",
]
