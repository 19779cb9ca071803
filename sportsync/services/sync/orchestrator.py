"""Sync orchestrator for reconciling api_football with highlightly.

One pass for one entity kind:
1. Fetch and normalize the primary provider's records
2. Upsert them into the canonical tables (primary is the system of record)
3. Fetch and normalize the secondary provider's candidate pool
4. Match every canonical record against the pool
5. For each accepted match: write the mapping registry, register the
   secondary source id and fill empty canonical fields
6. Update sync_metadata and return a SyncResult

Passes run in dependency order: leagues -> teams -> players / fixtures.
Existing mappings that clear the kind's threshold are reused unless
force_update is set. Records that fail are counted and the pass moves on;
unmatched records are reported as unmapped and retried next pass.
"""
import asyncio
import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from sportsync.core.config import settings
from sportsync.core.metrics import record_sync_error, record_sync_result
from sportsync.models.canonical import CanonicalRecord
from sportsync.models.models import SyncMetadata
from sportsync.repositories.canonical_repository import EVENT_DEDUP_KEYS, CanonicalRepository
from sportsync.repositories.mapping_repository import MappingRepository
from sportsync.services.sync.adapters.base_adapter import ProviderAdapter
from sportsync.services.sync.exceptions import ProviderError
from sportsync.services.sync.matchers.entity_matcher import EntityMatcher, MatchResult, order_candidates
from sportsync.services.sync.utils.pass_cache import PassCache
from sportsync.utils.timezone import utc_now

logger = logging.getLogger(__name__)

MATCHED_KINDS = ("league", "team", "player", "fixture")


@dataclass
class SyncOptions:
    """Knobs for one orchestrator instance."""
    dry_run: bool = False
    force_update: bool = False
    batch_size: int = 100
    inter_batch_delay: float = 1.0
    season: Optional[int] = None

    @classmethod
    def from_settings(cls, **overrides: Any) -> "SyncOptions":
        values = {
            "batch_size": settings.SYNC_BATCH_SIZE,
            "inter_batch_delay": settings.SYNC_INTER_BATCH_DELAY,
            "season": settings.CURRENT_SEASON,
        }
        values.update(overrides)
        return cls(**values)


@dataclass
class SyncResult:
    """Per-kind summary of one pass."""
    entity_type: str
    processed: int = 0
    matched: int = 0
    created: int = 0
    updated: int = 0
    unmapped: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    mappings: List[Dict[str, Any]] = field(default_factory=list)
    ids: List[str] = field(default_factory=list)
    status: str = "success"
    duration_ms: int = 0

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        if self.status == "success":
            self.status = "partial"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("ids")
        return data


class SyncOrchestrator:
    """
    Coordinates reconciliation passes between the primary and secondary provider.

    This is the main entry point for the sync layer. All sync operations
    should go through this orchestrator.
    """

    def __init__(
        self,
        db: Session,
        primary_adapter: ProviderAdapter,
        secondary_adapter: ProviderAdapter,
        options: Optional[SyncOptions] = None,
        cache: Optional[PassCache] = None,
        matcher: Optional[EntityMatcher] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the sync orchestrator.

        Args:
            db: SQLAlchemy database session
            primary_adapter: System-of-record provider (api_football)
            secondary_adapter: Provider matched against the canonical rows (highlightly)
            options: Dry-run / force / batching options
            cache: Injected pass cache; a fresh cache is created per pass otherwise
            matcher: Entity matcher (thresholds from settings by default)
            sleep: Async sleep used between batches of a full resync
        """
        self.db = db
        self.primary = primary_adapter
        self.secondary = secondary_adapter
        self.options = options or SyncOptions.from_settings()
        self._injected_cache = cache
        self.cache = cache or PassCache()
        self.matcher = matcher or EntityMatcher(
            {kind: settings.match_threshold(kind) for kind in MATCHED_KINDS}
        )
        self.canonical = CanonicalRepository(db, batch_size=self.options.batch_size)
        self.registry = MappingRepository(db)
        self._sleep = sleep

    @property
    def season(self) -> int:
        return self.options.season or settings.CURRENT_SEASON

    def _begin_pass(self) -> None:
        """Fresh cache per pass unless one was injected."""
        if self._injected_cache is None:
            self.cache = PassCache()

    # ========================================================================
    # Passes
    # ========================================================================

    async def sync_leagues(self, league_ids: Optional[Sequence[int]] = None) -> SyncResult:
        """Reconcile the configured leagues (K League 1/2 by default)."""
        league_ids = list(league_ids or settings.SYNC_LEAGUE_IDS)
        self._begin_pass()

        return await self._reconcile(
            entity_type="league",
            fetch_primary=lambda: self.primary.fetch_leagues(league_ids, self.season),
            fetch_secondary=lambda: self.secondary.fetch_leagues(self.season),
            primary_context={},
            secondary_context={},
        )

    async def sync_teams(self, league_id: int) -> SyncResult:
        """Reconcile the teams of one league; the secondary pool comes from the league mapping."""
        self._begin_pass()
        secondary_league_id = self._secondary_id("league", league_id)

        async def fetch_secondary():
            if secondary_league_id is None:
                return None
            return await self.secondary.fetch_teams(secondary_league_id, self.season)

        return await self._reconcile(
            entity_type="team",
            fetch_primary=lambda: self.primary.fetch_teams(league_id, self.season),
            fetch_secondary=fetch_secondary,
            primary_context={"league_id": league_id},
            secondary_context={"league_id": league_id},
            scope=f"league {league_id}",
        )

    async def sync_players(self, team_id: int) -> SyncResult:
        """Reconcile one team's squad; the secondary pool comes from the team mapping."""
        self._begin_pass()
        secondary_team_id = self._secondary_id("team", team_id)

        async def fetch_secondary():
            if secondary_team_id is None:
                return None
            return await self.secondary.fetch_players(secondary_team_id)

        return await self._reconcile(
            entity_type="player",
            fetch_primary=lambda: self.primary.fetch_players(team_id),
            fetch_secondary=fetch_secondary,
            primary_context={"team_id": team_id},
            secondary_context={"team_id": team_id},
            scope=f"team {team_id}",
        )

    async def sync_fixtures(self, league_id: int) -> SyncResult:
        """Reconcile one league's fixtures, scoring sides through the team mappings."""
        self._begin_pass()
        self._load_team_lookups(league_id)
        secondary_league_id = self._secondary_id("league", league_id)

        async def fetch_secondary():
            if secondary_league_id is None:
                return None
            return await self.secondary.fetch_fixtures(secondary_league_id, self.season)

        return await self._reconcile(
            entity_type="fixture",
            fetch_primary=lambda: self.primary.fetch_fixtures(league_id, self.season),
            fetch_secondary=fetch_secondary,
            primary_context={},
            secondary_context={},
            scope=f"league {league_id}",
        )

    async def sync_events(self, fixture_id: int) -> SyncResult:
        """
        Ingest the primary provider's events for one fixture.

        Events are upserted on the dedup key, so re-importing a fixture never
        adds duplicate rows. No cross-provider matching is involved.
        """
        start_time = utc_now()
        result = SyncResult(entity_type="event")
        metadata = self._start_metadata(self.primary.provider, "event", start_time)

        try:
            payloads = await self.primary.fetch_events(fixture_id)
        except ProviderError as e:
            result.add_error(str(e))
            result.status = "failed"
            return self._finish(result, metadata, start_time)

        records, malformed = self.primary.normalize_many("event", payloads, fixture_id=fixture_id)
        for error in malformed:
            result.add_error(str(error))
            record_sync_error("event", "malformed_payload")

        result.processed = len(records)
        if not self.options.dry_run and records:
            upserted = self.canonical.upsert("event", [r.to_row() for r in records], EVENT_DEDUP_KEYS)
            result.created = upserted.created
            result.updated = upserted.updated
            for message in upserted.errors:
                result.add_error(message)
                record_sync_error("event", "persistence_conflict")

        logger.info(
            f"Event sync for fixture {fixture_id}: {result.processed} events, "
            f"{result.created} created, {result.updated} already present"
        )
        return self._finish(result, metadata, start_time)

    async def run_full_sync(self, league_ids: Optional[Sequence[int]] = None) -> Dict[str, List[SyncResult]]:
        """
        Full resync: leagues, then per league its teams, each team's players and the fixtures.

        Sleeps ``inter_batch_delay`` between batches to respect provider rate limits.
        """
        league_ids = list(league_ids or settings.SYNC_LEAGUE_IDS)
        results: Dict[str, List[SyncResult]] = {"league": [], "team": [], "player": [], "fixture": []}

        logger.info(f"Starting full sync for leagues {league_ids} (season {self.season})")
        results["league"].append(await self.sync_leagues(league_ids))

        for league_id in league_ids:
            await self._sleep(self.options.inter_batch_delay)
            team_result = await self.sync_teams(league_id)
            results["team"].append(team_result)

            for team_id in team_result.ids:
                await self._sleep(self.options.inter_batch_delay)
                results["player"].append(await self.sync_players(int(team_id)))

            await self._sleep(self.options.inter_batch_delay)
            results["fixture"].append(await self.sync_fixtures(league_id))

        totals = {kind: sum(r.matched for r in kind_results) for kind, kind_results in results.items()}
        logger.info(f"Full sync complete, matched per kind: {totals}")
        return results

    def invalidate_low_confidence_mappings(
        self,
        threshold: Optional[float] = None,
        entity_type: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Drop registry rows below ``threshold`` so their entities are re-matched next pass."""
        if threshold is None:
            threshold = settings.LOW_CONFIDENCE_THRESHOLD
        return self.registry.invalidate_low_confidence(
            threshold=threshold,
            entity_type=entity_type,
            dry_run=self.options.dry_run,
        )

    # ========================================================================
    # Pass core
    # ========================================================================

    async def _fetch(
        self,
        adapter: ProviderAdapter,
        entity_type: str,
        fetch: Callable[[], Awaitable[Optional[List[Dict[str, Any]]]]],
        context: Dict[str, Any],
        result: SyncResult,
    ) -> Tuple[Optional[List[CanonicalRecord]], bool]:
        """
        Fetch and normalize one provider's records.

        Returns:
            (records, available) - records is None when the provider failed
        """
        try:
            payloads = await fetch()
        except ProviderError as e:
            logger.error(f"{adapter.provider} unavailable for {entity_type} pass: {e}")
            result.add_error(str(e))
            record_sync_error(entity_type, "provider_unavailable")
            return None, False

        if payloads is None:
            return [], False

        records, malformed = adapter.normalize_many(entity_type, payloads, **context)
        for error in malformed:
            result.add_error(str(error))
            record_sync_error(entity_type, "malformed_payload")
        return records, True

    async def _reconcile(
        self,
        entity_type: str,
        fetch_primary: Callable[[], Awaitable[List[Dict[str, Any]]]],
        fetch_secondary: Callable[[], Awaitable[Optional[List[Dict[str, Any]]]]],
        primary_context: Dict[str, Any],
        secondary_context: Dict[str, Any],
        scope: str = "",
    ) -> SyncResult:
        start_time = utc_now()
        result = SyncResult(entity_type=entity_type)
        metadata = self._start_metadata(self.primary.provider, entity_type, start_time)
        label = f"{entity_type} sync{f' ({scope})' if scope else ''}"
        logger.info(f"Starting {label}{' [dry-run]' if self.options.dry_run else ''}")

        try:
            records, _ = await self._fetch(self.primary, entity_type, fetch_primary, primary_context, result)
            if records is None:
                result.status = "failed"
                return self._finish(result, metadata, start_time)

            if entity_type == "fixture":
                self._fill_team_names(records)
            records = self._persist_primary(entity_type, order_candidates(records), result)

            pool, available = await self._fetch(
                self.secondary, entity_type, fetch_secondary, secondary_context, result
            )
            if not available:
                logger.warning(f"No {self.secondary.provider} candidate pool for {label}")
            pool = pool or []

            for record in records:
                self._reconcile_record(record, pool, result)

        except Exception as e:
            logger.error(f"{label} failed: {e}")
            self.db.rollback()
            result.add_error(str(e))
            result.status = "failed"

        return self._finish(result, metadata, start_time)

    def _persist_primary(
        self, entity_type: str, records: List[CanonicalRecord], result: SyncResult
    ) -> List[CanonicalRecord]:
        """Upsert primary records and bind their own source ids; returns the records to reconcile."""
        for record in records:
            record.id = record.canonical_id_from_primary()
            result.ids.append(str(record.provider_id))

        if self.options.dry_run or not records:
            return records

        upserted = self.canonical.upsert(entity_type, [r.to_row() for r in records])
        result.created = upserted.created
        result.updated = upserted.updated
        for message in upserted.errors:
            result.add_error(message)
            record_sync_error(entity_type, "persistence_conflict")

        stored = {str(row_id) for row_id in upserted.ids}
        persisted = [record for record in records if str(record.id) in stored]
        result.ids = [str(record.provider_id) for record in persisted]

        for record in persisted:
            try:
                self.canonical.register_source_id(entity_type, record.provider, record.provider_id, record.id)
                self.canonical.commit()
            except Exception as e:
                self.canonical.rollback()
                logger.error(f"Could not bind {record.provider} {entity_type} {record.provider_id}: {e}")
                result.add_error(f"{entity_type} {record.provider_id}: {e}")
                record_sync_error(entity_type, type(e).__name__)
        return persisted

    def _reconcile_record(self, record: CanonicalRecord, pool: List[CanonicalRecord], result: SyncResult) -> None:
        """Match one canonical record; failures are counted, never raised."""
        entity_type = record.entity_type
        result.processed += 1

        try:
            threshold = self.matcher.threshold_for(entity_type)
            if not self.options.force_update:
                existing = self.registry.find_by_provider_a_id(entity_type, record.id, min_confidence=threshold)
                if existing is not None:
                    result.matched += 1
                    self.cache.remember_mapping(entity_type, record.id, existing.provider_b_id)
                    result.mappings.append({
                        "provider_a_id": str(record.id),
                        "provider_b_id": existing.provider_b_id,
                        "entity_name": existing.entity_name,
                        "confidence": float(existing.mapping_confidence),
                        "method": "registry",
                    })
                    return

            match = self.matcher.match(record, pool, threshold=threshold, team_id_map=self.cache.team_id_map)
            if match is None:
                result.unmapped.append(str(record.id))
                logger.info(
                    f"Unmapped {entity_type} {record.provider}:{record.provider_id} ({_display_name(record)})",
                    extra={"entity_type": entity_type, "provider": record.provider, "provider_id": record.provider_id},
                )
                return

            if not self.options.dry_run:
                self._write_match(record, match)

            result.matched += 1
            self.cache.remember_mapping(entity_type, record.id, match.candidate.provider_id)
            result.mappings.append({
                "provider_a_id": str(record.id),
                "provider_b_id": str(match.candidate.provider_id),
                "entity_name": _display_name(record),
                "confidence": round(match.score, 4),
                "method": match.method,
            })

        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to reconcile {entity_type} {record.provider}:{record.provider_id}: {e}")
            result.add_error(f"{entity_type} {record.provider_id}: {e}")
            record_sync_error(entity_type, type(e).__name__)

    def _write_match(self, record: CanonicalRecord, match: MatchResult) -> None:
        """Registry row, secondary source id and enrichment for one accepted match."""
        entity_type = record.entity_type
        candidate = match.candidate

        self.canonical.register_source_id(entity_type, candidate.provider, candidate.provider_id, record.id)
        filled = self.canonical.enrich(entity_type, record.id, candidate.enrichment_fields())
        if filled:
            logger.debug(f"Enriched {entity_type} {record.id} from {candidate.provider}: {filled}")

        # upsert_mapping commits the source id and enrichment along with the registry row
        self.registry.upsert_mapping(
            entity_type=entity_type,
            provider_a_id=record.id,
            provider_b_id=candidate.provider_id,
            entity_name=_display_name(record),
            confidence=match.score,
            method=match.method,
        )

    # ========================================================================
    # Helpers
    # ========================================================================

    def _secondary_id(self, entity_type: str, primary_id: Any) -> Optional[str]:
        """Secondary provider id through the pass cache, then the registry."""
        if self.cache.has_registry_entry(entity_type, primary_id):
            return self.cache.registry_lookup(entity_type, primary_id)

        secondary_id = self.registry.find_provider_b_id(entity_type, primary_id)
        self.cache.remember_mapping(entity_type, primary_id, secondary_id)
        if secondary_id is None:
            logger.warning(f"No {self.secondary.provider} mapping for {entity_type} {primary_id}")
        return secondary_id

    def _load_team_lookups(self, league_id: int) -> None:
        """Team mappings and canonical team names for a fixture pass."""
        for mapping in self.registry.list_mappings(entity_type="team"):
            self.cache.remember_mapping("team", mapping.provider_a_id, mapping.provider_b_id)
        for team in self.canonical.query("team", league_id=league_id):
            self.cache.remember_team_name(team.id, team.name)

    def _fill_team_names(self, fixtures: List[CanonicalRecord]) -> None:
        """Name missing fixture sides from the canonical teams so they can be scored."""
        for fixture in fixtures:
            if not fixture.home_team_name:
                fixture.home_team_name = self.cache.team_name(fixture.home_team_id)
            if not fixture.away_team_name:
                fixture.away_team_name = self.cache.team_name(fixture.away_team_id)

    def _start_metadata(self, source: str, data_type: str, start_time: datetime) -> Optional[SyncMetadata]:
        if self.options.dry_run:
            return None
        metadata = self._get_or_create_metadata(source, data_type)
        metadata.last_sync_started_at = start_time
        metadata.last_sync_status = "in_progress"
        self.db.commit()
        return metadata

    def _finish(self, result: SyncResult, metadata: Optional[SyncMetadata], start_time: datetime) -> SyncResult:
        duration_ms = int((utc_now() - start_time).total_seconds() * 1000)
        result.duration_ms = duration_ms

        if metadata is not None:
            metadata.last_sync_completed_at = utc_now()
            metadata.last_sync_status = result.status
            metadata.records_processed = result.processed
            metadata.records_matched = result.matched
            metadata.records_failed = len(result.errors)
            metadata.error_message = "; ".join(result.errors[:5]) if result.errors else None
            metadata.sync_duration_ms = duration_ms
            self.db.commit()

        record_sync_result(result.entity_type, result.processed, result.matched, len(result.unmapped))
        logger.info(
            f"{result.entity_type} sync {result.status}: {result.matched}/{result.processed} matched, "
            f"{result.created} created, {result.updated} updated, "
            f"{len(result.unmapped)} unmapped, {len(result.errors)} errors ({duration_ms}ms)"
        )
        return result

    def _get_or_create_metadata(self, source: str, data_type: str) -> SyncMetadata:
        """Get or create sync metadata entry."""
        metadata = self.db.query(SyncMetadata).filter(
            SyncMetadata.source == source,
            SyncMetadata.data_type == data_type
        ).first()

        if not metadata:
            metadata = SyncMetadata(
                id=str(uuid.uuid4()),
                source=source,
                data_type=data_type,
                records_processed=0,
                records_matched=0,
                records_failed=0,
            )
            self.db.add(metadata)
            self.db.flush()

        return metadata

    def get_sync_status(self) -> Dict[str, Any]:
        """
        Return overall sync health status.

        Aggregates status from all sync_metadata entries plus registry statistics.
        """
        all_metadata = self.db.query(SyncMetadata).all()

        status_by_job = {}
        last_sync_times = {}
        total_processed = 0
        total_matched = 0
        total_failed = 0

        for metadata in all_metadata:
            key = f"{metadata.source}_{metadata.data_type}"
            status_by_job[key] = metadata.last_sync_status
            last_sync_times[key] = metadata.last_sync_completed_at
            total_processed += metadata.records_processed or 0
            total_matched += metadata.records_matched or 0
            total_failed += metadata.records_failed or 0

        total_jobs = len(all_metadata)
        success_count = sum(1 for m in all_metadata if m.last_sync_status == "success")
        if success_count == total_jobs:
            health_status = "healthy"
        elif success_count > 0:
            health_status = "degraded"
        else:
            health_status = "unhealthy"

        return {
            "health_status": health_status,
            "total_jobs": total_jobs,
            "success_count": success_count,
            "status_by_job": status_by_job,
            "last_sync_times": {
                k: v.isoformat() if v else None
                for k, v in last_sync_times.items()
            },
            "totals": {
                "processed": total_processed,
                "matched": total_matched,
                "failed": total_failed,
            },
            "registry": self.registry.get_statistics(),
        }

    async def cleanup(self):
        """Close provider connections."""
        await self.primary.close()
        await self.secondary.close()


def _display_name(record: CanonicalRecord) -> str:
    name = getattr(record, "name", None)
    if name:
        return name
    home = getattr(record, "home_team_name", None) or getattr(record, "home_team_id", "?")
    away = getattr(record, "away_team_name", None) or getattr(record, "away_team_id", "?")
    return f"{home} vs {away}"
