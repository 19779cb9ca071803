"""
Duplicate event collapsing.

The same in-match event can be ingested more than once (re-import, provider
retry). Rows are grouped by the dedup key; in every group the lowest id
survives and the others are deleted.

Only fields in the key count: two rows that differ in ``comments`` are
distinct events.

Usage:
    deduplicator = EventDeduplicator(db)
    report = deduplicator.run(fixture_id=1001, dry_run=True)   # report only
    report = deduplicator.run(fixture_id=1001, dry_run=False)  # delete
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from sportsync.core.metrics import duplicate_events_deleted_total
from sportsync.models.models import Event
from sportsync.repositories.base import DEFAULT_BATCH_SIZE, BaseRepository
from sportsync.repositories.canonical_repository import EVENT_DEDUP_KEYS

logger = logging.getLogger(__name__)

SAMPLE_GROUPS = 5


def dedup_key(row: Any) -> Tuple:
    """Dedup key of an event row (ORM instance or dict)."""
    if isinstance(row, dict):
        return tuple(row.get(name) for name in EVENT_DEDUP_KEYS)
    return tuple(getattr(row, name) for name in EVENT_DEDUP_KEYS)


def _row_id(row: Any) -> int:
    return row["id"] if isinstance(row, dict) else row.id


def _fixture_id(row: Any) -> Any:
    return row["fixture_id"] if isinstance(row, dict) else row.fixture_id


@dataclass
class DedupPlan:
    """Which rows survive and which are deleted."""
    keep_ids: List[int] = field(default_factory=list)
    delete_ids: List[int] = field(default_factory=list)
    groups: Dict[Tuple, List[int]] = field(default_factory=dict)
    per_fixture: Dict[Any, int] = field(default_factory=dict)

    @property
    def duplicate_groups(self) -> Dict[Tuple, List[int]]:
        return {key: ids for key, ids in self.groups.items() if len(ids) > 1}


def plan_event_dedup(rows: Iterable[Any]) -> DedupPlan:
    """
    Group rows by dedup key and keep the minimum id of each group.

    Pure function: never touches the database. ``per_fixture`` counts
    the rows to delete per fixture.
    """
    groups: Dict[Tuple, List[int]] = OrderedDict()
    fixture_of: Dict[int, Any] = {}

    for row in sorted(rows, key=_row_id):
        row_id = _row_id(row)
        groups.setdefault(dedup_key(row), []).append(row_id)
        fixture_of[row_id] = _fixture_id(row)

    plan = DedupPlan(groups=dict(groups))
    for ids in groups.values():
        plan.keep_ids.append(ids[0])
        for duplicate_id in ids[1:]:
            plan.delete_ids.append(duplicate_id)
            fixture_id = fixture_of[duplicate_id]
            plan.per_fixture[fixture_id] = plan.per_fixture.get(fixture_id, 0) + 1

    plan.delete_ids.sort()
    return plan


@dataclass
class DedupReport:
    """Outcome of a dedup run (identical for dry and live runs over the same rows)."""
    dry_run: bool
    fixture_id: Optional[int]
    total_rows: int
    unique_rows: int
    deleted_ids: List[int]
    per_fixture: Dict[Any, int]
    sample_groups: List[Dict[str, Any]]

    @property
    def deleted_count(self) -> int:
        return len(self.deleted_ids)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dry_run": self.dry_run,
            "fixture_id": self.fixture_id,
            "total_rows": self.total_rows,
            "unique_rows": self.unique_rows,
            "deleted_count": self.deleted_count,
            "deleted_ids": self.deleted_ids,
            "per_fixture": self.per_fixture,
            "sample_groups": self.sample_groups,
        }


class EventDeduplicator:
    """Collapse duplicate event rows for one fixture or the whole table."""

    def __init__(self, db: Session, batch_size: int = DEFAULT_BATCH_SIZE):
        self.db = db
        self.batch_size = batch_size
        self.events = BaseRepository(Event, db)

    def load_rows(self, fixture_id: Optional[int] = None) -> List[Event]:
        query = self.events.query()
        if fixture_id is not None:
            query = query.filter(Event.fixture_id == fixture_id)
        return query.order_by(Event.id).all()

    def run(self, fixture_id: Optional[int] = None, dry_run: bool = True) -> DedupReport:
        """
        Plan, report, and (live runs only) delete duplicate events.

        The full deletion set is computed and logged before anything is
        deleted. Re-running after a live run deletes nothing.

        Args:
            fixture_id: Limit to one fixture; None scans every event
            dry_run: Report without deleting

        Returns:
            DedupReport
        """
        rows = self.load_rows(fixture_id)
        plan = plan_event_dedup(rows)

        samples = [
            {"key": dict(zip(EVENT_DEDUP_KEYS, key)), "ids": ids}
            for key, ids in list(plan.duplicate_groups.items())[:SAMPLE_GROUPS]
        ]
        report = DedupReport(
            dry_run=dry_run,
            fixture_id=fixture_id,
            total_rows=len(rows),
            unique_rows=len(plan.keep_ids),
            deleted_ids=plan.delete_ids,
            per_fixture=plan.per_fixture,
            sample_groups=samples,
        )

        scope = f"fixture {fixture_id}" if fixture_id is not None else "all fixtures"
        logger.info(
            f"{'[dry-run] ' if dry_run else ''}Event dedup for {scope}: "
            f"{report.total_rows} rows, {report.unique_rows} unique, {report.deleted_count} duplicates"
        )
        if plan.delete_ids:
            logger.info(f"Duplicate event ids to delete: {plan.delete_ids}")
            for fixture, count in sorted(plan.per_fixture.items()):
                logger.info(f"  fixture {fixture}: {count} duplicates")

        if dry_run or not plan.delete_ids:
            return report

        self.events.log_audit(
            entity_type="event",
            entity_id=fixture_id if fixture_id is not None else "*",
            action="deduplicated",
            new_state={"deleted_ids": plan.delete_ids},
            match_details={"per_fixture": plan.per_fixture},
        )
        deleted = self.events.delete_ids(plan.delete_ids, self.batch_size)
        self.db.commit()
        duplicate_events_deleted_total.inc(deleted)
        logger.info(f"Deleted {deleted} duplicate events")
        return report
