"""
Base repository class for data access layer.

The repository pattern provides:
1. Separation of data access logic from matching and repair logic
2. Single place for query logic (easier to maintain)
3. Easier testing (can run against an in-memory SQLite session)

Example:
    class TeamRepository(BaseRepository[Team]):
        def find_by_code(self, code: str) -> Optional[Team]:
            return self.db.query(Team).filter(Team.code == code).first()
"""
import json
import uuid
from typing import Any, Dict, Generic, Iterable, Iterator, Optional, Sequence, Type, TypeVar

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from sportsync.models.models import MatchAuditLog
from sportsync.utils.timezone import utc_now

T = TypeVar("T")

DEFAULT_BATCH_SIZE = 100


def chunked(items: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    """Yield consecutive slices of at most ``size`` items."""
    size = max(1, size)
    for start in range(0, len(items), size):
        yield items[start:start + size]


class BaseRepository(Generic[T]):
    """
    Base repository class providing common data access methods.

    Attributes:
        model_type: The SQLAlchemy model class this repository manages
        db: The database session
    """

    def __init__(self, model_type: Type[T], db: Session):
        """
        Initialize the repository.

        Args:
            model_type: The SQLAlchemy model class
            db: The database session
        """
        self.model_type = model_type
        self.db = db

    # ========================================================================
    # Read Operations
    # ========================================================================

    def find_by_id(self, id: Any) -> Optional[T]:
        """Find a single record by ID."""
        return self.db.query(self.model_type).filter(self.model_type.id == id).first()

    def query(self) -> Query:
        """Get a new query object for this model."""
        return self.db.query(self.model_type)

    def count(self, *criterion) -> int:
        """Count records matching optional criterion."""
        query = self.db.query(func.count(self.model_type.id))
        if criterion:
            query = query.filter(*criterion)
        return query.scalar() or 0

    # ========================================================================
    # Batch Operations
    # ========================================================================

    def delete_ids(self, ids: Iterable[Any], batch_size: int = DEFAULT_BATCH_SIZE) -> int:
        """
        Delete records by ID in batches of ``IN`` deletes.

        Returns:
            Number of rows deleted (not yet committed)
        """
        ids = list(ids)
        deleted = 0
        for batch in chunked(ids, batch_size):
            deleted += self.db.query(self.model_type).filter(
                self.model_type.id.in_(list(batch))
            ).delete(synchronize_session=False)
        return deleted

    # ========================================================================
    # Audit Trail
    # ========================================================================

    def log_audit(
        self,
        entity_type: str,
        entity_id: Any,
        action: str,
        previous_state: Optional[Dict[str, Any]] = None,
        new_state: Optional[Dict[str, Any]] = None,
        match_details: Optional[Dict[str, Any]] = None,
        performed_by: str = "system",
    ) -> MatchAuditLog:
        """Add an audit entry to the current transaction."""
        entry = MatchAuditLog(
            id=str(uuid.uuid4()),
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action,
            previous_state=json.dumps(previous_state, default=str) if previous_state else None,
            new_state=json.dumps(new_state, default=str) if new_state else None,
            match_details=json.dumps(match_details, default=str) if match_details else None,
            performed_by=performed_by,
            created_at=utc_now(),
        )
        self.db.add(entry)
        return entry
