"""
Jersey number collision resolution.

Post-condition for every team after a run: no two players share a non-null
jersey number. Two strategies:

- minimal: for each number held by more than one player, one holder keeps
  it (chosen by the keep policy) and the others move to the lowest free
  number preferred for their position, falling back to 1-99. A player with
  no free number left gets None.
- reset: every number on the team is cleared and reassigned greedily,
  goalkeepers first, then by ascending player id.

Each team is planned from one snapshot of its roster with its own used-number
set, so teams never affect each other.
"""
import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from sportsync.core.metrics import jersey_numbers_reassigned_total
from sportsync.models.models import Player
from sportsync.repositories.base import BaseRepository
from sportsync.services.sync.utils.positions import (
    ATTACKER,
    DEFENDER,
    GOALKEEPER,
    MIDFIELDER,
    classify_position,
)

logger = logging.getLogger(__name__)

MINIMAL = "minimal"
RESET = "reset"
STRATEGIES = (MINIMAL, RESET)

LOWEST_ID = "lowest_id"
GOALKEEPER_FIRST = "goalkeeper_first"
KEEP_POLICIES = (LOWEST_ID, GOALKEEPER_FIRST)

MIN_NUMBER = 1
MAX_NUMBER = 99

PREFERRED_NUMBERS: Dict[str, List[int]] = {
    GOALKEEPER: [1, 12, 13, 21, 23, 30, 31, 32, 41, 50],
    DEFENDER: [
        2, 3, 4, 5, 6, 14, 15, 16, 17, 18, 19, 22, 24, 25, 26, 27, 28,
        33, 34, 35, 36, 37, 38, 39, 44, 45, 46, 47, 48, 49,
    ],
    MIDFIELDER: [
        6, 7, 8, 10, 11, 14, 16, 18, 20, 22, 24, 25, 26, 27, 28, 29, 34, 35,
        42, 43, 44, 45, 46, 47, 48, 49, 52, 55, 56, 60, 66, 67, 68, 69, 70, 77, 80, 88,
    ],
    ATTACKER: [
        7, 8, 9, 10, 11, 17, 19, 20, 21, 27, 29, 40, 41, 42, 43, 51, 52, 53, 54, 55,
        56, 57, 58, 59, 60, 70, 71, 72, 73, 74, 75, 76, 77, 79, 88,
        90, 91, 92, 93, 94, 95, 96, 97, 98, 99,
    ],
}


@dataclass
class RosterEntry:
    """The fields of a player row jersey resolution looks at."""
    player_id: int
    team_id: int
    jersey_number: Optional[int]
    position: Optional[str] = None
    name: Optional[str] = None

    @property
    def group(self) -> str:
        return classify_position(self.position)

    @classmethod
    def from_player(cls, player: Player) -> "RosterEntry":
        return cls(
            player_id=player.id,
            team_id=player.team_id,
            jersey_number=player.jersey_number,
            position=player.position,
            name=player.name,
        )


@dataclass
class JerseyChange:
    player_id: int
    team_id: int
    name: Optional[str]
    position: str
    old_number: Optional[int]
    new_number: Optional[int]


def next_available_number(position: Optional[str], used: Set[int]) -> Optional[int]:
    """
    Lowest free number preferred for the position, else lowest free in 1-99.

    Examples:
        >>> next_available_number("Attacker", {9})
        7
        >>> next_available_number("Goalkeeper", {1})
        12
    """
    group = classify_position(position)
    for number in sorted(PREFERRED_NUMBERS[group]):
        if number not in used:
            return number
    for number in range(MIN_NUMBER, MAX_NUMBER + 1):
        if number not in used:
            return number
    return None


def _keeper(holders: List[RosterEntry], keep_policy: str) -> RosterEntry:
    if keep_policy == GOALKEEPER_FIRST:
        keepers = [h for h in holders if h.group == GOALKEEPER]
        if keepers:
            return min(keepers, key=lambda h: h.player_id)
    return min(holders, key=lambda h: h.player_id)


def _team_minimal_change(roster: List[RosterEntry], keep_policy: str) -> List[JerseyChange]:
    used = {entry.jersey_number for entry in roster if entry.jersey_number is not None}
    holders: Dict[int, List[RosterEntry]] = defaultdict(list)
    for entry in roster:
        if entry.jersey_number is not None:
            holders[entry.jersey_number].append(entry)

    changes = []
    for number in sorted(holders):
        if len(holders[number]) < 2:
            continue
        keeper = _keeper(holders[number], keep_policy)
        movers = sorted((h for h in holders[number] if h is not keeper), key=lambda h: h.player_id)
        for entry in movers:
            new_number = next_available_number(entry.position, used)
            if new_number is not None:
                used.add(new_number)
            changes.append(JerseyChange(
                player_id=entry.player_id,
                team_id=entry.team_id,
                name=entry.name,
                position=entry.group,
                old_number=entry.jersey_number,
                new_number=new_number,
            ))
    return changes


def _team_full_reset(roster: List[RosterEntry]) -> List[JerseyChange]:
    ordered = sorted(roster, key=lambda e: (e.group != GOALKEEPER, e.player_id))
    used: Set[int] = set()

    changes = []
    for entry in ordered:
        new_number = next_available_number(entry.position, used)
        if new_number is not None:
            used.add(new_number)
        if new_number != entry.jersey_number:
            changes.append(JerseyChange(
                player_id=entry.player_id,
                team_id=entry.team_id,
                name=entry.name,
                position=entry.group,
                old_number=entry.jersey_number,
                new_number=new_number,
            ))
    return changes


def _by_team(players: Iterable[RosterEntry]) -> Dict[int, List[RosterEntry]]:
    teams: Dict[int, List[RosterEntry]] = defaultdict(list)
    for entry in players:
        teams[entry.team_id].append(entry)
    return dict(teams)


def plan_minimal_change(players: Iterable[RosterEntry], keep_policy: str = LOWEST_ID) -> Dict[int, List[JerseyChange]]:
    """Minimal-change plan per team (pure; only teams with changes are returned)."""
    if keep_policy not in KEEP_POLICIES:
        raise ValueError(f"Unknown keep policy: {keep_policy}")
    plans = {}
    for team_id, roster in sorted(_by_team(players).items()):
        changes = _team_minimal_change(roster, keep_policy)
        if changes:
            plans[team_id] = changes
    return plans


def plan_full_reset(players: Iterable[RosterEntry]) -> Dict[int, List[JerseyChange]]:
    """Full-reset plan per team (pure; only changed numbers are listed)."""
    plans = {}
    for team_id, roster in sorted(_by_team(players).items()):
        changes = _team_full_reset(roster)
        if changes:
            plans[team_id] = changes
    return plans


def count_conflicts(players: Iterable[RosterEntry]) -> Dict[int, Tuple[int, int]]:
    """Teams whose distinct-number count is below their non-null count, as (non_null, distinct)."""
    conflicts = {}
    for team_id, roster in _by_team(players).items():
        numbers = [e.jersey_number for e in roster if e.jersey_number is not None]
        if len(set(numbers)) < len(numbers):
            conflicts[team_id] = (len(numbers), len(set(numbers)))
    return conflicts


def find_jersey_conflicts(db: Session, team_id: Optional[int] = None) -> List[Dict[str, int]]:
    """
    Verification scan over the players table.

    Returns:
        One dict per team with duplicate numbers: team_id, numbered, distinct
    """
    query = db.query(
        Player.team_id,
        func.count(Player.jersey_number),
        func.count(func.distinct(Player.jersey_number)),
    ).filter(Player.jersey_number.isnot(None), Player.team_id.isnot(None))
    if team_id is not None:
        query = query.filter(Player.team_id == team_id)

    rows = query.group_by(Player.team_id).order_by(Player.team_id).all()
    return [
        {"team_id": team, "numbered": numbered, "distinct": distinct}
        for team, numbered, distinct in rows
        if distinct < numbered
    ]


@dataclass
class JerseyReport:
    dry_run: bool
    strategy: str
    keep_policy: str
    teams_scanned: int
    conflicts_before: Dict[int, Tuple[int, int]]
    changes: List[JerseyChange] = field(default_factory=list)
    conflicts_after: Dict[int, Tuple[int, int]] = field(default_factory=dict)

    @property
    def changed_count(self) -> int:
        return len(self.changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dry_run": self.dry_run,
            "strategy": self.strategy,
            "keep_policy": self.keep_policy,
            "teams_scanned": self.teams_scanned,
            "conflicts_before": self.conflicts_before,
            "changes": [asdict(c) for c in self.changes],
            "conflicts_after": self.conflicts_after,
        }


class JerseyResolver:
    """Plan and apply jersey number repairs."""

    def __init__(self, db: Session, strategy: str = MINIMAL, keep_policy: str = LOWEST_ID):
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown jersey strategy: {strategy}")
        if keep_policy not in KEEP_POLICIES:
            raise ValueError(f"Unknown keep policy: {keep_policy}")
        self.db = db
        self.strategy = strategy
        self.keep_policy = keep_policy
        self.players = BaseRepository(Player, db)

    def load_roster(self, team_id: Optional[int] = None) -> List[RosterEntry]:
        query = self.players.query().filter(Player.team_id.isnot(None))
        if team_id is not None:
            query = query.filter(Player.team_id == team_id)
        return [RosterEntry.from_player(p) for p in query.order_by(Player.team_id, Player.id).all()]

    def plan(self, roster: List[RosterEntry]) -> Dict[int, List[JerseyChange]]:
        if self.strategy == RESET:
            return plan_full_reset(roster)
        return plan_minimal_change(roster, self.keep_policy)

    def run(self, team_id: Optional[int] = None, dry_run: bool = True) -> JerseyReport:
        """
        Resolve collisions for one team or every team.

        Dry runs return the same report a live run would, without writing.
        """
        roster = self.load_roster(team_id)
        plans = self.plan(roster)
        changes = [change for team_changes in plans.values() for change in team_changes]

        planned = {c.player_id: c.new_number for c in changes}
        after = [
            RosterEntry(e.player_id, e.team_id, planned.get(e.player_id, e.jersey_number), e.position, e.name)
            for e in roster
        ]
        report = JerseyReport(
            dry_run=dry_run,
            strategy=self.strategy,
            keep_policy=self.keep_policy,
            teams_scanned=len({e.team_id for e in roster}),
            conflicts_before=count_conflicts(roster),
            changes=changes,
            conflicts_after=count_conflicts(after),
        )

        logger.info(
            f"{'[dry-run] ' if dry_run else ''}Jersey resolution ({self.strategy}): "
            f"{report.teams_scanned} teams, {len(report.conflicts_before)} with collisions, "
            f"{report.changed_count} numbers to change"
        )
        for change in changes:
            logger.info(
                f"  team {change.team_id} player {change.player_id} ({change.name}, {change.position}): "
                f"{change.old_number} -> {change.new_number}"
            )

        if dry_run or not changes:
            return report

        for change in changes:
            player = self.players.find_by_id(change.player_id)
            player.jersey_number = change.new_number
            self.players.log_audit(
                entity_type="player",
                entity_id=change.player_id,
                action="jersey_reassigned",
                previous_state={"jersey_number": change.old_number},
                new_state={"jersey_number": change.new_number},
                match_details={"strategy": self.strategy, "keep_policy": self.keep_policy},
            )
        self.db.commit()
        jersey_numbers_reassigned_total.labels(strategy=self.strategy).inc(len(changes))

        remaining = find_jersey_conflicts(self.db, team_id)
        if remaining:
            logger.error(f"Jersey collisions remain after resolution: {remaining}")
        return report
