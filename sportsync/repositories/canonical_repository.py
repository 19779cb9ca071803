"""
Canonical dataset repository.

Provides the three store primitives the reconciliation core relies on:
- upsert(entity_type, rows, conflict_keys): idempotent insert-or-update keyed
  by a caller-supplied natural key, written in batches
- query(entity_type, **filters)
- delete(entity_type, ids): batched ``IN`` deletes

plus source-id registration (provider id -> canonical id) and enrichment of
empty canonical fields from a secondary provider.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sportsync.models.models import EntitySourceId, Event, Fixture, League, Player, Team
from sportsync.repositories.base import DEFAULT_BATCH_SIZE, BaseRepository, chunked
from sportsync.services.sync.exceptions import SourceIdConflictError
from sportsync.utils.timezone import utc_now

logger = logging.getLogger(__name__)

MODELS = {
    "league": League,
    "team": Team,
    "player": Player,
    "fixture": Fixture,
    "event": Event,
}

EVENT_DEDUP_KEYS = (
    "fixture_id", "team_id", "player_id", "assist_player_id", "elapsed", "extra", "type", "detail",
)


@dataclass
class UpsertResult:
    """Outcome of one upsert call."""
    created: int = 0
    updated: int = 0
    errors: List[str] = field(default_factory=list)
    ids: List[Any] = field(default_factory=list)


class CanonicalRepository:
    """Repository over the canonical tables and the source-id index."""

    def __init__(self, db: Session, batch_size: int = DEFAULT_BATCH_SIZE):
        """
        Initialize the repository.

        Args:
            db: The database session
            batch_size: Rows written per commit
        """
        self.db = db
        self.batch_size = batch_size
        self._repos = {entity_type: BaseRepository(model, db) for entity_type, model in MODELS.items()}
        self.source_ids = BaseRepository(EntitySourceId, db)

    def model_for(self, entity_type: str):
        if entity_type not in MODELS:
            raise ValueError(f"Unknown entity type: {entity_type}")
        return MODELS[entity_type]

    def repository_for(self, entity_type: str) -> BaseRepository:
        self.model_for(entity_type)
        return self._repos[entity_type]

    # ========================================================================
    # Store primitives
    # ========================================================================

    def _find_existing(self, model, row: Dict[str, Any], conflict_keys: Sequence[str]):
        criteria = [getattr(model, key) == row.get(key) for key in conflict_keys]
        return self.db.query(model).filter(*criteria).order_by(model.id).first()

    def _apply(self, model, row: Dict[str, Any], conflict_keys: Sequence[str]) -> Tuple[Any, bool]:
        """Insert or update one row; returns (instance, created). None values never overwrite."""
        now = utc_now()
        instance = self._find_existing(model, row, conflict_keys)

        if instance is None:
            values = {key: value for key, value in row.items() if hasattr(model, key)}
            values["created_at"] = now
            if hasattr(model, "updated_at"):
                values["updated_at"] = now
            instance = model(**values)
            self.db.add(instance)
            self.db.flush()
            return instance, True

        for key, value in row.items():
            if key in conflict_keys or value is None or not hasattr(model, key):
                continue
            setattr(instance, key, value)
        if hasattr(model, "updated_at"):
            instance.updated_at = now
        self.db.flush()
        return instance, False

    def upsert(
        self,
        entity_type: str,
        rows: Iterable[Dict[str, Any]],
        conflict_keys: Sequence[str] = ("id",),
    ) -> UpsertResult:
        """
        Insert or update canonical rows keyed by ``conflict_keys``.

        Each batch of ``batch_size`` rows is committed together. A row the
        database rejects (constraint violation, out-of-range value) is rolled
        back and reported in ``errors``, and the rows of its batch already
        applied are replayed, so one bad row never sinks the batch.

        Args:
            entity_type: league, team, player, fixture or event
            rows: Column dicts (see CanonicalRecord.to_row())
            conflict_keys: Natural key columns

        Returns:
            UpsertResult with created/updated counts, per-row errors and ids
        """
        model = self.model_for(entity_type)
        result = UpsertResult()
        rows = list(rows)

        for batch in chunked(rows, self.batch_size):
            applied: List[Dict[str, Any]] = []
            for row in batch:
                try:
                    instance, created = self._apply(model, row, conflict_keys)
                except (SQLAlchemyError, OverflowError) as e:
                    self.db.rollback()
                    key = {k: row.get(k) for k in conflict_keys}
                    reason = getattr(e, "orig", None) or e
                    logger.error(f"Could not upsert {entity_type} {key}: {reason}")
                    result.errors.append(f"{entity_type} {key}: {reason}")
                    # rollback discarded this batch's earlier rows
                    for prior in applied:
                        self._apply(model, prior, conflict_keys)
                    continue

                applied.append(row)
                result.ids.append(instance.id)
                if created:
                    result.created += 1
                else:
                    result.updated += 1

            self.db.commit()

        return result

    def query(self, entity_type: str, **filters: Any) -> List[Any]:
        """
        Rows matching equality filters; list/tuple/set values become ``IN`` filters.

        Results are ordered by id.
        """
        model = self.model_for(entity_type)
        query = self.db.query(model)
        for key, value in filters.items():
            column = getattr(model, key)
            if isinstance(value, (list, tuple, set)):
                query = query.filter(column.in_(list(value)))
            else:
                query = query.filter(column == value)
        return query.order_by(model.id).all()

    def get(self, entity_type: str, id: Any) -> Optional[Any]:
        return self.repository_for(entity_type).find_by_id(id)

    def delete(self, entity_type: str, ids: Iterable[Any]) -> int:
        """Delete rows by id in batches and commit."""
        deleted = self.repository_for(entity_type).delete_ids(ids, self.batch_size)
        self.db.commit()
        return deleted

    # ========================================================================
    # Source ids
    # ========================================================================

    def find_canonical_id(self, entity_type: str, provider: str, provider_id: Any) -> Optional[str]:
        entry = self.db.query(EntitySourceId).filter(
            EntitySourceId.entity_type == entity_type,
            EntitySourceId.provider == provider,
            EntitySourceId.provider_id == str(provider_id),
        ).first()
        return entry.canonical_id if entry else None

    def get_source_ids(self, entity_type: str, canonical_id: Any) -> Dict[str, str]:
        """Provider -> provider-local id for one canonical entity."""
        entries = self.db.query(EntitySourceId).filter(
            EntitySourceId.entity_type == entity_type,
            EntitySourceId.canonical_id == str(canonical_id),
        ).order_by(EntitySourceId.id).all()
        return {entry.provider: entry.provider_id for entry in entries}

    def register_source_id(
        self,
        entity_type: str,
        provider: str,
        provider_id: Any,
        canonical_id: Any,
    ) -> bool:
        """
        Bind a provider-local id to a canonical id (added to the session, not committed).

        Returns:
            True if a new binding was added, False if it already existed

        Raises:
            SourceIdConflictError: If the provider id is bound to another canonical id
        """
        existing = self.find_canonical_id(entity_type, provider, provider_id)
        if existing is not None:
            if existing != str(canonical_id):
                raise SourceIdConflictError(
                    entity_type, provider, str(provider_id), existing, str(canonical_id)
                )
            return False

        self.db.add(EntitySourceId(
            entity_type=entity_type,
            provider=provider,
            provider_id=str(provider_id),
            canonical_id=str(canonical_id),
            created_at=utc_now(),
        ))
        return True

    def enrich(self, entity_type: str, canonical_id: Any, fields: Dict[str, Any]) -> List[str]:
        """
        Fill empty canonical fields (added to the session, not committed).

        Returns:
            Names of the fields that were filled
        """
        instance = self.get(entity_type, canonical_id)
        if instance is None:
            return []

        filled = []
        for name, value in fields.items():
            if value is None or not hasattr(instance, name):
                continue
            if getattr(instance, name) in (None, ""):
                setattr(instance, name, value)
                filled.append(name)

        if filled and hasattr(instance, "updated_at"):
            instance.updated_at = utc_now()
        return filled

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
