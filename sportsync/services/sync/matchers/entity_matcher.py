"""Entity matcher for correlating primary-provider records with secondary-provider candidates.

Matching priority:
1. Exact Match (confidence: 1.0) - Same full name, wins immediately
2. Short name / code / name parts (confidence: 0.9 - 0.95)
3. Composite fuzzy score - name similarity with context boosts

A candidate is accepted only when its score strictly exceeds the threshold
for its entity kind. Candidates are scored in provider-id order (numeric ids
numerically), so equal scores always resolve to the lowest provider id.
No match is not an error: the caller records the target as unmapped.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from sportsync.models.canonical import CanonicalRecord
from sportsync.services.sync.utils.similarity import (
    METHOD_EXACT,
    score_fixture,
    score_league,
    score_player,
    score_team,
)

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLDS = {
    "league": 0.7,
    "team": 0.8,
    "player": 0.8,
    "fixture": 0.8,
}


@dataclass
class MatchResult:
    """Accepted match: the winning candidate, its composite score and how it matched."""
    candidate: CanonicalRecord
    score: float
    method: str


def provider_id_sort_key(record: CanonicalRecord) -> Tuple:
    """Numeric provider ids sort numerically and before non-numeric ids."""
    provider_id = str(record.provider_id)
    if provider_id.isdigit():
        return (0, int(provider_id), provider_id)
    return (1, 0, provider_id)


def order_candidates(candidates: Iterable[CanonicalRecord]) -> List[CanonicalRecord]:
    """Deterministic candidate order used for scoring."""
    return sorted(candidates, key=provider_id_sort_key)


class EntityMatcher:
    """
    Match canonical records across providers.

    Stateless apart from the thresholds; the orchestrator supplies the
    candidate pool and, for fixtures, the secondary->primary team id map.
    """

    def __init__(self, thresholds: Optional[Dict[str, float]] = None):
        """
        Initialize the matcher.

        Args:
            thresholds: Acceptance threshold per entity kind (defaults apply for missing kinds)
        """
        self.thresholds = dict(DEFAULT_THRESHOLDS)
        if thresholds:
            self.thresholds.update(thresholds)

    def threshold_for(self, entity_type: str) -> float:
        return self.thresholds.get(entity_type, DEFAULT_THRESHOLDS["team"])

    def score(
        self,
        target: CanonicalRecord,
        candidate: CanonicalRecord,
        team_id_map: Optional[Dict[str, str]] = None,
    ) -> Tuple[float, str]:
        """Composite score and method for one target/candidate pair."""
        if target.entity_type != candidate.entity_type:
            raise ValueError(
                f"Cannot compare {target.entity_type} with {candidate.entity_type}"
            )

        scorers: Dict[str, Callable] = {
            "league": score_league,
            "team": score_team,
            "player": score_player,
        }
        if target.entity_type == "fixture":
            return score_fixture(target, candidate, team_id_map)
        if target.entity_type not in scorers:
            raise ValueError(f"No scorer for entity type {target.entity_type}")
        return scorers[target.entity_type](target, candidate)

    def match(
        self,
        target: CanonicalRecord,
        candidates: Sequence[CanonicalRecord],
        threshold: Optional[float] = None,
        team_id_map: Optional[Dict[str, str]] = None,
    ) -> Optional[MatchResult]:
        """
        Find the best candidate for a target record.

        Args:
            target: Record from the primary provider
            candidates: Pool from the secondary provider (same entity kind)
            threshold: Acceptance threshold; defaults to the kind's threshold
            team_id_map: Secondary team id -> primary team id (fixtures only)

        Returns:
            MatchResult, or None when no candidate strictly exceeds the threshold
        """
        if threshold is None:
            threshold = self.threshold_for(target.entity_type)

        best: Optional[MatchResult] = None

        for candidate in order_candidates(candidates):
            score, method = self.score(target, candidate, team_id_map)

            if method == METHOD_EXACT and score >= 1.0:
                if score > threshold:
                    return MatchResult(candidate=candidate, score=1.0, method=method)
                continue

            if score > threshold and (best is None or score > best.score):
                best = MatchResult(candidate=candidate, score=score, method=method)

        if best is None:
            logger.debug(
                f"No {target.entity_type} match for {target.provider}:{target.provider_id} "
                f"above {threshold}"
            )
        return best
