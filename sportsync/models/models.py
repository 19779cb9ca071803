"""
Database models for the canonical football dataset.

Canonical ids for leagues, teams, players and fixtures are the primary
provider's (api_football) ids; every other provider's ids are recorded in
``entity_source_ids`` and, pairwise, in the ``api_id_mapping`` registry.
"""
from sqlalchemy import Column, String, Float, Integer, DateTime, Text, Index, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class League(Base):
    """Canonical league (competition) for one season."""
    __tablename__ = "leagues"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(255), nullable=False, index=True)
    country = Column(String(100), nullable=True, index=True)
    country_code = Column(String(8), nullable=True)
    logo = Column(String(512), nullable=True)
    season = Column(Integer, nullable=True, index=True)
    type = Column(String(32), nullable=True)  # League, Cup
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


class Team(Base):
    """Canonical team."""
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=False)
    league_id = Column(Integer, nullable=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    short_name = Column(String(64), nullable=True)
    code = Column(String(8), nullable=True, index=True)  # e.g. JEO, ULS
    country = Column(String(100), nullable=True)
    founded = Column(Integer, nullable=True)
    logo = Column(String(512), nullable=True)
    venue_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


class Player(Base):
    """Canonical player with current roster entry (team + jersey number)."""
    __tablename__ = "players"

    id = Column(Integer, primary_key=True, autoincrement=False)
    team_id = Column(Integer, nullable=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    firstname = Column(String(128), nullable=True)
    lastname = Column(String(128), nullable=True)
    position = Column(String(32), nullable=True)  # Goalkeeper, Defender, Midfielder, Attacker
    jersey_number = Column(Integer, nullable=True)
    nationality = Column(String(100), nullable=True)
    age = Column(Integer, nullable=True)
    photo = Column(String(512), nullable=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index('ix_players_team_jersey', 'team_id', 'jersey_number'),
    )


class Fixture(Base):
    """Canonical match-level record."""
    __tablename__ = "fixtures"

    id = Column(Integer, primary_key=True, autoincrement=False)
    league_id = Column(Integer, nullable=True, index=True)
    season = Column(Integer, nullable=True, index=True)
    round = Column(String(64), nullable=True)
    kickoff_at = Column(DateTime, nullable=True, index=True)
    status = Column(String(16), nullable=True, index=True)  # NS, 1H, HT, FT, ...
    home_team_id = Column(Integer, nullable=True, index=True)
    away_team_id = Column(Integer, nullable=True, index=True)
    home_goals = Column(Integer, nullable=True)
    away_goals = Column(Integer, nullable=True)
    venue_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


class Event(Base):
    """In-match event row (goal, card, substitution, VAR decision)."""
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    fixture_id = Column(Integer, nullable=False, index=True)
    team_id = Column(Integer, nullable=True)
    player_id = Column(Integer, nullable=True)
    assist_player_id = Column(Integer, nullable=True)
    elapsed = Column(Integer, nullable=True)  # minute
    extra = Column(Integer, nullable=True)  # stoppage-time minutes
    type = Column(String(32), nullable=False)  # Goal, Card, subst, Var
    detail = Column(String(128), nullable=True)  # Normal Goal, Yellow Card, ...
    comments = Column(Text, nullable=True)  # free text, outside the dedup key
    created_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index('ix_events_dedup', 'fixture_id', 'team_id', 'player_id', 'type', 'elapsed'),
    )


class EntitySourceId(Base):
    """Provider-local id -> canonical id; one provider id never maps to two canonical ids."""
    __tablename__ = "entity_source_ids"

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_type = Column(String(16), nullable=False)  # league, team, player, fixture
    provider = Column(String(32), nullable=False)  # api_football, highlightly
    provider_id = Column(String(64), nullable=False)
    canonical_id = Column(String(64), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint('entity_type', 'provider', 'provider_id', name='uq_entity_source_ids_provider_id'),
        Index('ix_entity_source_ids_canonical', 'entity_type', 'canonical_id'),
    )


class ApiIdMapping(Base):
    """Mapping registry: durable correspondence between two providers' ids.

    ``provider_a_id`` is the primary provider's id (api_football) and
    ``provider_b_id`` the secondary provider's id (highlightly). Re-matching
    the same pair overwrites the row; only low-confidence invalidation
    deletes rows.
    """
    __tablename__ = "api_id_mapping"

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_type = Column(String(16), nullable=False, index=True)
    provider_a_id = Column(String(64), nullable=False)
    provider_b_id = Column(String(64), nullable=False)
    entity_name = Column(String(255), nullable=True)
    mapping_confidence = Column(Float, nullable=False)  # 0.0 to 1.0
    verified_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint('entity_type', 'provider_a_id', 'provider_b_id', name='uq_api_id_mapping_pair'),
        Index('ix_api_id_mapping_a', 'entity_type', 'provider_a_id'),
        Index('ix_api_id_mapping_b', 'entity_type', 'provider_b_id'),
        Index('ix_api_id_mapping_confidence', 'mapping_confidence'),
    )


class SyncMetadata(Base):
    """Tracks sync pass status and health metrics per provider and entity type.

    Records for each (source, data_type):
    - Last sync time (started and completed)
    - Outcome (success, partial, failed, in_progress)
    - Records processed vs matched vs failed
    - Sync duration
    """
    __tablename__ = "sync_metadata"

    id = Column(String(36), primary_key=True)
    source = Column(String(32), nullable=False)  # api_football, highlightly
    data_type = Column(String(32), nullable=False)  # league, team, player, fixture, event
    last_sync_started_at = Column(DateTime, nullable=True)
    last_sync_completed_at = Column(DateTime, nullable=True, index=True)
    last_sync_status = Column(String(16), nullable=True, index=True)
    records_processed = Column(Integer, nullable=False, default=0)
    records_matched = Column(Integer, nullable=False, default=0)
    records_failed = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)
    sync_duration_ms = Column(Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint('source', 'data_type', name='uq_sync_metadata_source_type'),
    )


class MatchAuditLog(Base):
    """Audit trail for mapping changes and conflict repairs.

    Covers:
    - Mapping registry rows created, updated or invalidated
    - Duplicate event rows deleted
    - Jersey numbers reassigned
    """
    __tablename__ = "match_audit_log"

    id = Column(String(36), primary_key=True)
    entity_type = Column(String(16), nullable=False)  # league, team, player, fixture, event
    entity_id = Column(String(64), nullable=False)
    action = Column(String(16), nullable=False, index=True)  # created, updated, invalidated, deleted, reassigned
    previous_state = Column(Text, nullable=True)  # JSON stored as Text
    new_state = Column(Text, nullable=True)  # JSON stored as Text
    match_details = Column(Text, nullable=True)  # JSON with confidence, method, etc.
    performed_by = Column(String(64), nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, index=True)

    __table_args__ = (
        Index('ix_audit_entity', 'entity_type', 'entity_id'),
    )
