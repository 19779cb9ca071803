#!/usr/bin/env python3
"""
Conflict resolution batch job.

Duplicate events and jersey number collisions. Runs as a dry run unless
--apply is given; both modes print the same before/after diff.

Exit status:
    0  finished, no conflicts left
    2  conflicts remain (verify-jerseys) or a live run left collisions
"""
import sys
import argparse
from pathlib import Path

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from sportsync.core.config import settings
from sportsync.core.database import init_db, session_scope
from sportsync.core.logging import clear_run_id, configure_logging, set_run_id
from sportsync.services.conflicts.event_deduplicator import DedupReport, EventDeduplicator
from sportsync.services.conflicts.jersey_resolver import (
    KEEP_POLICIES,
    STRATEGIES,
    JerseyReport,
    JerseyResolver,
    find_jersey_conflicts,
)

EXIT_OK = 0
EXIT_ERRORS = 2


def print_dedup_report(report: DedupReport) -> None:
    header = "DRY RUN - No changes will be made" if report.dry_run else "DUPLICATE EVENT CLEANUP"
    print(f"\n{'='*60}")
    print(header)
    print(f"{'='*60}")
    print(f"Event rows scanned: {report.total_rows}")
    print(f"Unique events:      {report.unique_rows}")
    print(f"{'Rows to delete' if report.dry_run else 'Rows deleted'}:     {report.deleted_count}")

    if report.per_fixture:
        print(f"\n{'Fixture':<12}{'Duplicates':<10}")
        print("-" * 22)
        for fixture_id, count in sorted(report.per_fixture.items()):
            print(f"{fixture_id:<12}{count:<10}")

    for sample in report.sample_groups:
        key = sample["key"]
        print(
            f"\n  fixture {key['fixture_id']} {key['elapsed']}' {key['type']} "
            f"(team {key['team_id']}, player {key['player_id']}): keep {sample['ids'][0]}, "
            f"delete {sample['ids'][1:]}"
        )


def print_jersey_report(report: JerseyReport) -> None:
    header = "DRY RUN - No changes will be made" if report.dry_run else "JERSEY RESOLUTION"
    print(f"\n{'='*60}")
    print(f"{header} ({report.strategy}, keep: {report.keep_policy})")
    print(f"{'='*60}")
    print(f"Teams scanned:          {report.teams_scanned}")
    print(f"Teams with collisions:  {len(report.conflicts_before)}")
    print(f"Numbers {'to change' if report.dry_run else 'changed'}:      {report.changed_count}")

    if report.changes:
        print(f"\n{'Team':<8}{'Player':<10}{'Name':<25}{'Position':<12}{'Before':<8}{'After':<8}")
        print("-" * 71)
        for change in report.changes:
            print(
                f"{change.team_id:<8}{change.player_id:<10}{(change.name or '')[:24]:<25}"
                f"{change.position:<12}{str(change.old_number):<8}{str(change.new_number):<8}"
            )

    if report.conflicts_after:
        print(f"\n⚠️  Collisions remaining: {report.conflicts_after}")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Repair duplicate events and jersey number collisions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Report duplicate events for one fixture
  python scripts/resolve_conflicts.py dedup-events --fixture-id 1001

  # Delete them
  python scripts/resolve_conflicts.py dedup-events --fixture-id 1001 --apply

  # Reassign colliding jersey numbers on team 7
  python scripts/resolve_conflicts.py jerseys --team-id 7 --apply

  # Renumber every squad, goalkeepers first
  python scripts/resolve_conflicts.py jerseys --strategy reset --apply

  # Check the one-number-per-player rule
  python scripts/resolve_conflicts.py verify-jerseys
        """
    )

    parser.add_argument('command', choices=("dedup-events", "jerseys", "verify-jerseys"))
    parser.add_argument('--fixture-id', type=int, help='Limit event dedup to one fixture')
    parser.add_argument('--team-id', type=int, help='Limit jersey resolution to one team')
    parser.add_argument('--strategy', choices=STRATEGIES, default=settings.JERSEY_STRATEGY)
    parser.add_argument('--keep-policy', choices=KEEP_POLICIES, default=settings.JERSEY_KEEP_POLICY)
    parser.add_argument('--apply', action='store_true', help='Write changes (default is a dry run)')
    parser.add_argument('--json-logs', action='store_true', help='Emit JSON log lines')

    args = parser.parse_args()

    configure_logging(settings.LOG_LEVEL, json_output=args.json_logs)
    token = set_run_id()
    init_db()

    try:
        with session_scope() as db:
            if args.command == "dedup-events":
                report = EventDeduplicator(db).run(fixture_id=args.fixture_id, dry_run=not args.apply)
                print_dedup_report(report)
                return EXIT_OK

            if args.command == "jerseys":
                resolver = JerseyResolver(db, strategy=args.strategy, keep_policy=args.keep_policy)
                report = resolver.run(team_id=args.team_id, dry_run=not args.apply)
                print_jersey_report(report)
                if args.apply and find_jersey_conflicts(db, args.team_id):
                    return EXIT_ERRORS
                return EXIT_OK

            conflicts = find_jersey_conflicts(db, args.team_id)
            if not conflicts:
                print("✅ No jersey collisions")
                return EXIT_OK
            print(f"❌ {len(conflicts)} teams with jersey collisions:")
            for conflict in conflicts:
                print(f"   team {conflict['team_id']}: {conflict['numbered']} numbered, {conflict['distinct']} distinct")
            return EXIT_ERRORS
    finally:
        clear_run_id(token)


if __name__ == "__main__":
    sys.exit(main())
