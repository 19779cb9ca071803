"""Lookup cache scoped to a single reconciliation pass."""
from typing import Dict, Optional, Tuple


class PassCache:
    """
    Per-pass lookup cache.

    Holds team display names by canonical id and mapping registry lookups
    (primary id -> secondary id, secondary team id -> primary team id) so a
    pass does not query the same rows repeatedly. One instance lives for one
    pass; the orchestrator creates a fresh one unless a cache is injected.
    """

    def __init__(self):
        self._team_names: Dict[str, str] = {}
        self._registry: Dict[Tuple[str, str], Optional[str]] = {}
        self._secondary_team_to_primary: Dict[str, str] = {}

    # ─── Team names ──────────────────────────────────────────────────────

    def remember_team_name(self, team_id, name: Optional[str]) -> None:
        if team_id is not None and name:
            self._team_names[str(team_id)] = name

    def team_name(self, team_id) -> Optional[str]:
        if team_id is None:
            return None
        return self._team_names.get(str(team_id))

    # ─── Registry lookups ────────────────────────────────────────────────

    def has_registry_entry(self, entity_type: str, provider_a_id) -> bool:
        return (entity_type, str(provider_a_id)) in self._registry

    def registry_lookup(self, entity_type: str, provider_a_id) -> Optional[str]:
        """Cached secondary id for a primary id (None when cached as unmapped)."""
        return self._registry.get((entity_type, str(provider_a_id)))

    def remember_mapping(self, entity_type: str, provider_a_id, provider_b_id: Optional[str]) -> None:
        self._registry[(entity_type, str(provider_a_id))] = (
            str(provider_b_id) if provider_b_id is not None else None
        )
        if entity_type == "team" and provider_b_id is not None:
            self._secondary_team_to_primary[str(provider_b_id)] = str(provider_a_id)

    @property
    def team_id_map(self) -> Dict[str, str]:
        """Secondary team id -> primary team id for every team mapping seen this pass."""
        return dict(self._secondary_team_to_primary)

    def clear(self) -> None:
        self._team_names.clear()
        self._registry.clear()
        self._secondary_team_to_primary.clear()
