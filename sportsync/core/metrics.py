"""
Prometheus metrics for sync and repair passes.

Metrics exposed:
- Reconciliation counters per entity type (processed, matched, unmapped, errors)
- Provider request success/failure counters
- Rate limiter wait histogram
- Mapping registry invalidations
- Conflict resolver repairs (duplicate events deleted, jersey numbers reassigned)
"""
from prometheus_client import Counter, Histogram

# Reconciliation Metrics
sync_records_processed_total = Counter(
    "sync_records_processed_total",
    "Total canonical records processed by reconciliation passes",
    ["entity_type"]
)

sync_records_matched_total = Counter(
    "sync_records_matched_total",
    "Total records matched to a secondary provider entity",
    ["entity_type"]
)

sync_records_unmapped_total = Counter(
    "sync_records_unmapped_total",
    "Total records left unmapped after a pass",
    ["entity_type"]
)

sync_errors_total = Counter(
    "sync_errors_total",
    "Total per-record errors during reconciliation",
    ["entity_type", "error_type"]
)

# Provider Metrics
provider_requests_success_total = Counter(
    "provider_requests_success_total",
    "Total successful provider requests",
    ["provider"]
)

provider_requests_failure_total = Counter(
    "provider_requests_failure_total",
    "Total failed provider requests",
    ["provider", "error_type"]
)

rate_limiter_wait_seconds = Histogram(
    "rate_limiter_wait_seconds",
    "Seconds spent waiting for the sliding-window rate limiter",
    ["provider"]
)

# Mapping Registry Metrics
mappings_invalidated_total = Counter(
    "mappings_invalidated_total",
    "Total mapping registry rows deleted for low confidence",
    ["entity_type"]
)

# Conflict Resolver Metrics
duplicate_events_deleted_total = Counter(
    "duplicate_events_deleted_total",
    "Total duplicate event rows deleted"
)

jersey_numbers_reassigned_total = Counter(
    "jersey_numbers_reassigned_total",
    "Total jersey numbers changed by conflict resolution",
    ["strategy"]
)


def record_sync_result(entity_type: str, processed: int, matched: int, unmapped: int) -> None:
    """Record the counts of a finished reconciliation pass."""
    sync_records_processed_total.labels(entity_type=entity_type).inc(processed)
    sync_records_matched_total.labels(entity_type=entity_type).inc(matched)
    sync_records_unmapped_total.labels(entity_type=entity_type).inc(unmapped)


def record_sync_error(entity_type: str, error_type: str = "unknown") -> None:
    """Record a per-record reconciliation error."""
    sync_errors_total.labels(entity_type=entity_type, error_type=error_type).inc()


def record_provider_request_success(provider: str) -> None:
    """Record a successful provider request."""
    provider_requests_success_total.labels(provider=provider).inc()


def record_provider_request_failure(provider: str, error_type: str = "unknown") -> None:
    """Record a failed provider request."""
    provider_requests_failure_total.labels(provider=provider, error_type=error_type).inc()


def record_rate_limit_wait(provider: str, seconds: float) -> None:
    """Record time a caller spent blocked on the rate limiter."""
    rate_limiter_wait_seconds.labels(provider=provider).observe(seconds)
