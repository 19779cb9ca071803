"""
Mapping registry repository.

The registry is the durable output of matching: one row per
(entity_type, provider_a_id, provider_b_id) with the display name, the
confidence of the accepted match and when it was verified. Re-matching a
pair overwrites its row; rows are only deleted by low-confidence
invalidation.

Race Conditions:
Inserts use check-then-insert. A concurrent insert of the same pair surfaces
as IntegrityError to the caller, which rolls back the whole record (registry
row, source ids and enrichment together) so nothing is committed half-way.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from sportsync.core.metrics import mappings_invalidated_total
from sportsync.models.models import ApiIdMapping
from sportsync.repositories.base import BaseRepository
from sportsync.utils.timezone import utc_now

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE = 0.9
LOW_CONFIDENCE = 0.7


def _mapping_state(mapping: ApiIdMapping) -> Dict[str, Any]:
    return {
        "provider_a_id": mapping.provider_a_id,
        "provider_b_id": mapping.provider_b_id,
        "entity_name": mapping.entity_name,
        "mapping_confidence": float(mapping.mapping_confidence),
    }


class MappingRepository(BaseRepository[ApiIdMapping]):
    """Read and write the api_id_mapping registry."""

    def __init__(self, db: Session):
        super().__init__(ApiIdMapping, db)

    def get_mapping(self, entity_type: str, provider_a_id: Any, provider_b_id: Any) -> Optional[ApiIdMapping]:
        return self.db.query(ApiIdMapping).filter(
            ApiIdMapping.entity_type == entity_type,
            ApiIdMapping.provider_a_id == str(provider_a_id),
            ApiIdMapping.provider_b_id == str(provider_b_id),
        ).first()

    def upsert_mapping(
        self,
        entity_type: str,
        provider_a_id: Any,
        provider_b_id: Any,
        entity_name: Optional[str],
        confidence: float,
        method: Optional[str] = None,
    ) -> Tuple[ApiIdMapping, bool]:
        """
        Create or overwrite the registry row for one provider id pair and commit.

        Args:
            entity_type: league, team, player or fixture
            provider_a_id: Primary provider id
            provider_b_id: Secondary provider id
            entity_name: Display name
            confidence: Accepted match score in [0, 1]
            method: Match method, recorded in the audit trail

        Returns:
            (mapping, created)

        Raises:
            IntegrityError: If another writer inserted the same pair first; the
                caller rolls back
        """
        confidence = max(0.0, min(1.0, float(confidence)))
        now = utc_now()

        mapping = self.get_mapping(entity_type, provider_a_id, provider_b_id)
        previous_state = _mapping_state(mapping) if mapping else None
        created = mapping is None

        if mapping is None:
            mapping = ApiIdMapping(
                entity_type=entity_type,
                provider_a_id=str(provider_a_id),
                provider_b_id=str(provider_b_id),
                entity_name=entity_name,
                mapping_confidence=confidence,
                verified_at=now,
                created_at=now,
                updated_at=now,
            )
            self.db.add(mapping)
            self.db.flush()

        mapping.entity_name = entity_name or mapping.entity_name
        mapping.mapping_confidence = confidence
        mapping.verified_at = now
        mapping.updated_at = now

        self.log_audit(
            entity_type=entity_type,
            entity_id=str(provider_a_id),
            action="created" if created else "updated",
            previous_state=previous_state,
            new_state=_mapping_state(mapping),
            match_details={"confidence": confidence, "method": method},
        )
        self.db.commit()

        return mapping, created

    def find_provider_b_id(
        self,
        entity_type: str,
        provider_a_id: Any,
        min_confidence: Optional[float] = None,
    ) -> Optional[str]:
        """Secondary id for a primary id (most recently verified row wins)."""
        mapping = self.find_by_provider_a_id(entity_type, provider_a_id, min_confidence)
        return mapping.provider_b_id if mapping else None

    def find_by_provider_a_id(
        self,
        entity_type: str,
        provider_a_id: Any,
        min_confidence: Optional[float] = None,
    ) -> Optional[ApiIdMapping]:
        query = self.db.query(ApiIdMapping).filter(
            ApiIdMapping.entity_type == entity_type,
            ApiIdMapping.provider_a_id == str(provider_a_id),
        )
        if min_confidence is not None:
            query = query.filter(ApiIdMapping.mapping_confidence >= min_confidence)
        return query.order_by(ApiIdMapping.verified_at.desc(), ApiIdMapping.id.desc()).first()

    def find_provider_a_id(self, entity_type: str, provider_b_id: Any) -> Optional[str]:
        """Primary id for a secondary id (most recently verified row wins)."""
        mapping = self.db.query(ApiIdMapping).filter(
            ApiIdMapping.entity_type == entity_type,
            ApiIdMapping.provider_b_id == str(provider_b_id),
        ).order_by(ApiIdMapping.verified_at.desc(), ApiIdMapping.id.desc()).first()
        return mapping.provider_a_id if mapping else None

    def list_mappings(
        self,
        entity_type: Optional[str] = None,
        min_confidence: Optional[float] = None,
        max_confidence: Optional[float] = None,
    ) -> List[ApiIdMapping]:
        query = self.db.query(ApiIdMapping)
        if entity_type:
            query = query.filter(ApiIdMapping.entity_type == entity_type)
        if min_confidence is not None:
            query = query.filter(ApiIdMapping.mapping_confidence >= min_confidence)
        if max_confidence is not None:
            query = query.filter(ApiIdMapping.mapping_confidence < max_confidence)
        return query.order_by(ApiIdMapping.entity_type, ApiIdMapping.id).all()

    def invalidate_low_confidence(
        self,
        threshold: float = LOW_CONFIDENCE,
        entity_type: Optional[str] = None,
        dry_run: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        Delete registry rows whose confidence is below ``threshold``.

        Invalidated entities become unmapped and are re-matched on the next pass.

        Returns:
            The affected rows (as dicts), whether or not they were deleted
        """
        stale = self.list_mappings(entity_type=entity_type, max_confidence=threshold)
        affected = [
            {"id": m.id, "entity_type": m.entity_type, **_mapping_state(m)}
            for m in stale
        ]

        if dry_run or not stale:
            logger.info(
                f"{'[dry-run] ' if dry_run else ''}{len(stale)} mappings below confidence {threshold}"
            )
            return affected

        for mapping in stale:
            self.log_audit(
                entity_type=mapping.entity_type,
                entity_id=mapping.provider_a_id,
                action="invalidated",
                previous_state=_mapping_state(mapping),
                match_details={"threshold": threshold},
            )
            mappings_invalidated_total.labels(entity_type=mapping.entity_type).inc()

        self.delete_ids([m.id for m in stale])
        self.db.commit()
        logger.info(f"Invalidated {len(stale)} mappings below confidence {threshold}")
        return affected

    def get_statistics(self) -> Dict[str, Any]:
        """
        Registry summary.

        Returns:
            Dict with total, by_entity_type, average_confidence,
            high_confidence (>= 0.9) and low_confidence (< 0.7) counts
        """
        total = self.count()
        by_type = dict(
            self.db.query(ApiIdMapping.entity_type, func.count(ApiIdMapping.id))
            .group_by(ApiIdMapping.entity_type)
            .all()
        )
        average = self.db.query(func.avg(ApiIdMapping.mapping_confidence)).scalar()

        return {
            "total": total,
            "by_entity_type": by_type,
            "average_confidence": round(float(average), 4) if average is not None else 0.0,
            "high_confidence": self.count(ApiIdMapping.mapping_confidence >= HIGH_CONFIDENCE),
            "low_confidence": self.count(ApiIdMapping.mapping_confidence < LOW_CONFIDENCE),
        }
