"""Tests for jersey number collision resolution.

Test Strategy:
1. Test next_available_number() preferred ranges and 1-99 fallback
2. Test minimal-change keeps the number on the keep-policy winner
3. Test full reset renumbers goalkeepers first, then by player id
4. Test the post-condition (no duplicate non-null number per team) for both strategies
5. Test idempotence and dry-run parity
6. Test teams are resolved independently
"""
import pytest
from sqlalchemy.orm import Session

# Import helper from conftest
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))
from conftest import create_player

from sportsync.models.models import MatchAuditLog, Player
from sportsync.services.conflicts.jersey_resolver import (
    GOALKEEPER_FIRST,
    RESET,
    JerseyResolver,
    RosterEntry,
    count_conflicts,
    find_jersey_conflicts,
    next_available_number,
    plan_full_reset,
    plan_minimal_change,
)


def numbers(db: Session, team_id: int):
    return {p.id: p.jersey_number for p in db.query(Player).filter(Player.team_id == team_id).all()}


def entry(player_id, team_id, number, position="Midfielder"):
    return RosterEntry(player_id=player_id, team_id=team_id, jersey_number=number, position=position)


class TestNextAvailableNumber:
    """Tests for number selection."""

    def test_preferred_attacker(self):
        """Should pick the lowest free attacker-preferred number."""
        assert next_available_number("Attacker", {9}) == 7
        assert next_available_number("Attacker", {7, 8, 9}) == 10

    def test_preferred_goalkeeper(self):
        """Should prefer 1, then 12, for goalkeepers."""
        assert next_available_number("Goalkeeper", set()) == 1
        assert next_available_number("Goalkeeper", {1}) == 12

    def test_unknown_position_as_midfielder(self):
        """Should use the midfielder table for unknown positions."""
        assert next_available_number(None, set()) == 6

    def test_fallback_scan(self):
        """Should scan 1-99 when every preferred number is taken."""
        used = {1, 12, 13, 21, 23, 30, 31, 32, 41, 50}
        assert next_available_number("Goalkeeper", used) == 2

    def test_exhausted(self):
        """Should return None when 1-99 are all taken."""
        assert next_available_number("Defender", set(range(1, 100))) is None


class TestPlans:
    """Tests for the pure planning functions."""

    def test_minimal_change_scenario(self):
        """Should keep 9 on player 1 and move player 2 to 7."""
        plans = plan_minimal_change([entry(1, 7, 9, "Attacker"), entry(2, 7, 9, "Attacker")])

        changes = plans[7]
        assert len(changes) == 1
        assert (changes[0].player_id, changes[0].old_number, changes[0].new_number) == (2, 9, 7)

    def test_minimal_change_goalkeeper_first(self):
        """Should let the goalkeeper keep a shared number under goalkeeper_first."""
        roster = [entry(1, 7, 1, "Defender"), entry(2, 7, 1, "Goalkeeper")]

        default = plan_minimal_change(roster)[7]
        gk_first = plan_minimal_change(roster, GOALKEEPER_FIRST)[7]

        assert default[0].player_id == 2
        assert gk_first[0].player_id == 1
        assert gk_first[0].new_number == 2

    def test_minimal_change_avoids_taken_numbers(self):
        """Should never hand out a number already held on the team."""
        roster = [
            entry(1, 7, 9, "Attacker"),
            entry(2, 7, 9, "Attacker"),
            entry(3, 7, 9, "Attacker"),
            entry(4, 7, 7, "Attacker"),
        ]
        changes = plan_minimal_change(roster)[7]
        assert [(c.player_id, c.new_number) for c in changes] == [(2, 8), (3, 10)]

    def test_minimal_change_ignores_null_numbers(self):
        """Should leave players without a number alone."""
        assert plan_minimal_change([entry(1, 7, None), entry(2, 7, None)]) == {}

    def test_full_reset_goalkeepers_first(self):
        """Should number goalkeepers first, then ascending player id."""
        roster = [
            entry(1, 7, 5, "Attacker"),
            entry(2, 7, 5, "Defender"),
            entry(3, 7, 40, "Goalkeeper"),
        ]
        changes = {c.player_id: c.new_number for c in plan_full_reset(roster)[7]}
        assert changes == {3: 1, 1: 7, 2: 2}

    def test_teams_independent(self):
        """Should allow the same number on different teams."""
        roster = [entry(1, 7, 9), entry(2, 8, 9)]
        assert plan_minimal_change(roster) == {}
        assert count_conflicts(roster) == {}


class TestJerseyResolver:
    """Tests for resolver runs against the database."""

    # Minimal change
    # ─────────────────────────────────────────────────────────────

    def test_resolves_scenario(self, db_session):
        """Should keep A at 9 and move B to 7."""
        create_player(db_session, 1, 7, 9, "Attacker", "A")
        create_player(db_session, 2, 7, 9, "Attacker", "B")

        report = JerseyResolver(db_session).run(team_id=7, dry_run=False)

        assert numbers(db_session, 7) == {1: 9, 2: 7}
        assert report.conflicts_before == {7: (2, 1)}
        assert report.conflicts_after == {}
        assert find_jersey_conflicts(db_session) == []
        assert db_session.query(MatchAuditLog).filter(MatchAuditLog.action == "jersey_reassigned").count() == 1

    @pytest.mark.parametrize("strategy", ["minimal", "reset"])
    def test_post_condition(self, db_session, strategy):
        """Should leave no team with duplicate non-null numbers."""
        positions = ["Goalkeeper", "Defender", "Midfielder", "Attacker"]
        player_id = 1
        for team_id in (7, 8):
            for i in range(12):
                create_player(db_session, player_id, team_id, 10 if i % 3 else 1, positions[i % 4])
                player_id += 1
        assert len(find_jersey_conflicts(db_session)) == 2

        JerseyResolver(db_session, strategy=strategy).run(dry_run=False)

        assert find_jersey_conflicts(db_session) == []
        for team_id in (7, 8):
            held = [n for n in numbers(db_session, team_id).values() if n is not None]
            assert len(held) == len(set(held))

    @pytest.mark.parametrize("strategy", ["minimal", "reset"])
    def test_idempotent(self, db_session, strategy):
        """Should change nothing on a second run."""
        create_player(db_session, 1, 7, 9, "Attacker")
        create_player(db_session, 2, 7, 9, "Defender")
        create_player(db_session, 3, 7, 1, "Goalkeeper")
        resolver = JerseyResolver(db_session, strategy=strategy)

        resolver.run(dry_run=False)
        after_first = numbers(db_session, 7)
        second = resolver.run(dry_run=False)

        assert second.changes == []
        assert numbers(db_session, 7) == after_first

    def test_dry_run_matches_live_run(self, db_session):
        """Should report the live run's changes without writing them."""
        create_player(db_session, 1, 7, 9, "Attacker")
        create_player(db_session, 2, 7, 9, "Attacker")
        create_player(db_session, 3, 8, 4, "Defender")
        create_player(db_session, 4, 8, 4, "Defender")
        resolver = JerseyResolver(db_session)

        dry = resolver.run(dry_run=True)
        assert numbers(db_session, 7) == {1: 9, 2: 9}
        assert numbers(db_session, 8) == {3: 4, 4: 4}

        live = resolver.run(dry_run=False)

        assert [(c.player_id, c.new_number) for c in dry.changes] == [(c.player_id, c.new_number) for c in live.changes]
        assert dry.conflicts_after == live.conflicts_after == {}
        assert numbers(db_session, 8) == {3: 4, 4: 2}

    def test_reset_strategy(self, db_session):
        """Should renumber the whole squad, goalkeepers first."""
        create_player(db_session, 1, 7, 99, "Attacker")
        create_player(db_session, 2, 7, 99, "Goalkeeper")

        JerseyResolver(db_session, strategy=RESET).run(team_id=7, dry_run=False)

        assert numbers(db_session, 7) == {1: 7, 2: 1}

    def test_invalid_options(self, db_session):
        """Should reject unknown strategies and keep policies."""
        with pytest.raises(ValueError):
            JerseyResolver(db_session, strategy="random")
        with pytest.raises(ValueError):
            JerseyResolver(db_session, keep_policy="highest_id")
