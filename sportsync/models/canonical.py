"""
Provider-agnostic canonical records.

Normalizers turn each provider's raw payload into these dataclasses; the
reconciliation core only ever sees canonical records plus the provider tag.

Every record carries:
- ``provider`` / ``provider_id``: where the record was seen
- ``id``: canonical id once known (primary provider records use their own id)
- ``source_ids``: every provider-local id known to refer to the entity
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Dict, Optional, Tuple

PRIMARY_PROVIDER = "api_football"
SECONDARY_PROVIDER = "highlightly"

ENTITY_TYPES = ("league", "team", "player", "fixture", "event")


class CanonicalRecord:
    """Behaviour shared by every canonical dataclass."""

    entity_type: ClassVar[str] = ""
    # Columns persisted by to_row(), besides id
    ROW_FIELDS: ClassVar[Tuple[str, ...]] = ()
    # Descriptive fields a secondary provider may fill when the canonical row leaves them empty
    ENRICHABLE_FIELDS: ClassVar[Tuple[str, ...]] = ()

    def to_row(self) -> Dict[str, Any]:
        """Column dict for the canonical table."""
        row = {name: getattr(self, name) for name in self.ROW_FIELDS}
        if self.id is not None:
            row["id"] = self.id
        return row

    def enrichment_fields(self) -> Dict[str, Any]:
        """Non-empty descriptive values this record can contribute to another row."""
        values = {}
        for name in self.ENRICHABLE_FIELDS:
            value = getattr(self, name)
            if value is not None and value != "":
                values[name] = value
        return values

    def record_source(self) -> None:
        """Make sure the record's own provider id is in source_ids."""
        self.source_ids.setdefault(self.provider, str(self.provider_id))

    def canonical_id_from_primary(self) -> Optional[int]:
        """Primary provider ids double as canonical ids."""
        if self.provider != PRIMARY_PROVIDER:
            return self.id
        try:
            return int(self.provider_id)
        except (TypeError, ValueError):
            return None


@dataclass
class CanonicalLeague(CanonicalRecord):
    entity_type: ClassVar[str] = "league"
    ROW_FIELDS: ClassVar[Tuple[str, ...]] = ("name", "country", "country_code", "logo", "season", "type")
    ENRICHABLE_FIELDS: ClassVar[Tuple[str, ...]] = ("logo", "country_code")

    provider: str
    provider_id: str
    name: str
    country: Optional[str] = None
    country_code: Optional[str] = None
    logo: Optional[str] = None
    season: Optional[int] = None
    type: Optional[str] = None
    id: Optional[int] = None
    source_ids: Dict[str, str] = field(default_factory=dict)


@dataclass
class CanonicalTeam(CanonicalRecord):
    entity_type: ClassVar[str] = "team"
    ROW_FIELDS: ClassVar[Tuple[str, ...]] = (
        "league_id", "name", "short_name", "code", "country", "founded", "logo", "venue_name",
    )
    ENRICHABLE_FIELDS: ClassVar[Tuple[str, ...]] = ("short_name", "code", "founded", "logo", "venue_name")

    provider: str
    provider_id: str
    name: str
    short_name: Optional[str] = None
    code: Optional[str] = None
    country: Optional[str] = None
    founded: Optional[int] = None
    logo: Optional[str] = None
    venue_name: Optional[str] = None
    league_id: Optional[int] = None
    id: Optional[int] = None
    source_ids: Dict[str, str] = field(default_factory=dict)


@dataclass
class CanonicalPlayer(CanonicalRecord):
    entity_type: ClassVar[str] = "player"
    ROW_FIELDS: ClassVar[Tuple[str, ...]] = (
        "team_id", "name", "firstname", "lastname", "position", "jersey_number",
        "nationality", "age", "photo",
    )
    ENRICHABLE_FIELDS: ClassVar[Tuple[str, ...]] = ("firstname", "lastname", "nationality", "age", "photo")

    provider: str
    provider_id: str
    name: str
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    position: Optional[str] = None
    jersey_number: Optional[int] = None
    nationality: Optional[str] = None
    age: Optional[int] = None
    photo: Optional[str] = None
    team_id: Optional[int] = None
    id: Optional[int] = None
    source_ids: Dict[str, str] = field(default_factory=dict)


@dataclass
class CanonicalFixture(CanonicalRecord):
    entity_type: ClassVar[str] = "fixture"
    ROW_FIELDS: ClassVar[Tuple[str, ...]] = (
        "league_id", "season", "round", "kickoff_at", "status", "home_team_id",
        "away_team_id", "home_goals", "away_goals", "venue_name",
    )
    ENRICHABLE_FIELDS: ClassVar[Tuple[str, ...]] = ("venue_name", "round")

    provider: str
    provider_id: str
    home_team_id: Optional[str] = None  # provider-local team ids
    away_team_id: Optional[str] = None
    home_team_name: Optional[str] = None
    away_team_name: Optional[str] = None
    kickoff_at: Optional[datetime] = None
    status: Optional[str] = None
    home_goals: Optional[int] = None
    away_goals: Optional[int] = None
    league_id: Optional[str] = None
    season: Optional[int] = None
    round: Optional[str] = None
    venue_name: Optional[str] = None
    id: Optional[int] = None
    source_ids: Dict[str, str] = field(default_factory=dict)

    def to_row(self) -> Dict[str, Any]:
        row = super().to_row()
        # Canonical team/league ids are integers (primary provider ids)
        for key in ("league_id", "home_team_id", "away_team_id"):
            if row.get(key) is not None:
                row[key] = int(row[key])
        return row


@dataclass
class CanonicalEvent(CanonicalRecord):
    entity_type: ClassVar[str] = "event"
    ROW_FIELDS: ClassVar[Tuple[str, ...]] = (
        "fixture_id", "team_id", "player_id", "assist_player_id", "elapsed", "extra",
        "type", "detail", "comments",
    )

    provider: str
    fixture_id: int
    type: str
    team_id: Optional[int] = None
    player_id: Optional[int] = None
    assist_player_id: Optional[int] = None
    elapsed: Optional[int] = None
    extra: Optional[int] = None
    detail: Optional[str] = None
    comments: Optional[str] = None
    id: Optional[int] = None
    source_ids: Dict[str, str] = field(default_factory=dict)

    @property
    def provider_id(self) -> str:
        """Events have no provider id; the dedup key identifies them."""
        return "-".join("" if part is None else str(part) for part in self.dedup_key)

    @property
    def dedup_key(self) -> Tuple:
        """Fields whose equality defines "same event"."""
        return (
            self.fixture_id,
            self.team_id,
            self.player_id,
            self.assist_player_id,
            self.elapsed,
            self.extra,
            self.type,
            self.detail,
        )


CANONICAL_TYPES = {
    "league": CanonicalLeague,
    "team": CanonicalTeam,
    "player": CanonicalPlayer,
    "fixture": CanonicalFixture,
    "event": CanonicalEvent,
}
