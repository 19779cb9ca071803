"""Helpers shared by the provider normalizers."""
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from sportsync.models.canonical import CanonicalRecord
from sportsync.services.sync.exceptions import MalformedPayloadError

logger = logging.getLogger(__name__)


def dig(payload: Any, *path: str, default: Any = None) -> Any:
    """
    Walk nested dicts; missing keys or non-dict levels give ``default``.

    Examples:
        >>> dig({"team": {"id": 5}}, "team", "id")
        5
        >>> dig({"team": None}, "team", "id") is None
        True
    """
    current = payload
    for key in path:
        if not isinstance(current, dict):
            return default
        current = current.get(key)
        if current is None:
            return default
    return current


def first_present(*values: Any) -> Any:
    """First value that is neither None nor an empty string."""
    for value in values:
        if value is not None and value != "":
            return value
    return None


def to_int(value: Any) -> Optional[int]:
    """Lenient int conversion: "23" → 23, "" / None / "abc" → None."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return None


def to_str(value: Any) -> Optional[str]:
    """Strip strings; keep None for empty values."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def require(
    value: Any,
    entity_type: str,
    provider: str,
    provider_id: Any,
    field_name: str,
) -> Any:
    """
    Return ``value`` or raise when it is missing.

    Raises:
        MalformedPayloadError: If the value is None or empty
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MalformedPayloadError(entity_type, provider, provider_id, f"missing {field_name}")
    return value


def normalize_many(
    normalizer: Callable[..., CanonicalRecord],
    payloads: Iterable[Dict[str, Any]],
    **context: Any,
) -> Tuple[List[CanonicalRecord], List[MalformedPayloadError]]:
    """
    Normalize a batch of payloads, skipping malformed ones.

    Returns:
        (records, errors) - one error per skipped payload
    """
    records: List[CanonicalRecord] = []
    errors: List[MalformedPayloadError] = []

    for payload in payloads or []:
        try:
            records.append(normalizer(payload, **context))
        except MalformedPayloadError as e:
            logger.warning(
                f"Skipping malformed {e.provider} {e.entity_type} (id={e.provider_id}): {e.reason}",
                extra={"entity_type": e.entity_type, "provider": e.provider, "provider_id": e.provider_id},
            )
            errors.append(e)

    return records, errors
