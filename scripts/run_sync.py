#!/usr/bin/env python3
"""
Reconciliation batch job.

Runs one reconciliation pass (or a full resync) between api_football and
highlightly and prints the per-kind summary report.

Exit status:
    0  pass finished without errors
    1  missing configuration (nothing was run)
    2  pass finished with errors
"""
import sys
import json
import asyncio
import argparse
from pathlib import Path
from typing import List

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from sportsync.core.config import settings
from sportsync.core.database import init_db, session_scope
from sportsync.core.logging import clear_run_id, configure_logging, get_logger, get_run_id, set_run_id
from sportsync.services.sync.adapters.api_football_adapter import ApiFootballAdapter
from sportsync.services.sync.adapters.highlightly_adapter import HighlightlyAdapter
from sportsync.services.sync.exceptions import MissingConfigurationError
from sportsync.services.sync.orchestrator import SyncOptions, SyncOrchestrator, SyncResult

logger = get_logger(__name__)

FETCH_MODES = ("leagues", "teams", "players", "fixtures", "events", "full")

EXIT_OK = 0
EXIT_MISSING_CONFIG = 1
EXIT_ERRORS = 2


def print_result(result: SyncResult) -> None:
    icon = "✅" if result.status == "success" else ("⚠️ " if result.status == "partial" else "❌")
    print(f"{icon} {result.entity_type} sync {result.status}:")
    print(f"   Processed: {result.processed}")
    print(f"   Matched:   {result.matched}")
    print(f"   Created:   {result.created}")
    print(f"   Updated:   {result.updated}")
    print(f"   Unmapped:  {len(result.unmapped)}")
    if result.unmapped:
        print(f"      {', '.join(result.unmapped[:20])}{' ...' if len(result.unmapped) > 20 else ''}")
    print(f"   Errors:    {len(result.errors)}")
    for error in result.errors[:10]:
        print(f"      - {error}")


def print_results(results: List[SyncResult]) -> None:
    print(f"\n{'='*60}")
    print(f"SYNC SUMMARY (run {get_run_id()})")
    print(f"{'='*60}")
    for result in results:
        print_result(result)
        print()


async def run(args: argparse.Namespace) -> int:
    if args.mode in FETCH_MODES:
        try:
            settings.require_provider_credentials()
        except MissingConfigurationError as e:
            print(f"❌ {e}")
            return EXIT_MISSING_CONFIG

    init_db()
    options = SyncOptions.from_settings(dry_run=args.dry_run, force_update=args.force)
    if args.season:
        options.season = args.season

    with session_scope() as db:
        orchestrator = SyncOrchestrator(
            db,
            ApiFootballAdapter.from_settings(),
            HighlightlyAdapter.from_settings(),
            options=options,
        )
        try:
            results: List[SyncResult] = []

            if args.mode == "leagues":
                results.append(await orchestrator.sync_leagues(args.league_id and [args.league_id]))
            elif args.mode == "teams":
                results.append(await orchestrator.sync_teams(args.league_id))
            elif args.mode == "players":
                results.append(await orchestrator.sync_players(args.team_id))
            elif args.mode == "fixtures":
                results.append(await orchestrator.sync_fixtures(args.league_id))
            elif args.mode == "events":
                results.append(await orchestrator.sync_events(args.fixture_id))
            elif args.mode == "full":
                full = await orchestrator.run_full_sync(args.league_id and [args.league_id])
                for kind_results in full.values():
                    results.extend(kind_results)
            elif args.mode == "stats":
                print(json.dumps(orchestrator.get_sync_status(), indent=2, default=str))
                return EXIT_OK
            elif args.mode == "invalidate":
                affected = orchestrator.invalidate_low_confidence_mappings(args.threshold)
                verb = "Would invalidate" if args.dry_run else "Invalidated"
                print(f"🧹 {verb} {len(affected)} mappings below {args.threshold or settings.LOW_CONFIDENCE_THRESHOLD}")
                for mapping in affected:
                    print(
                        f"   {mapping['entity_type']:<8} {mapping['provider_a_id']:>8} -> "
                        f"{mapping['provider_b_id']:<8} {mapping['mapping_confidence']:.3f} {mapping['entity_name']}"
                    )
                return EXIT_OK

            print_results(results)
            return EXIT_ERRORS if any(r.errors for r in results) else EXIT_OK

        finally:
            await orchestrator.cleanup()


async def main() -> int:
    parser = argparse.ArgumentParser(
        description="Reconcile api_football and highlightly into the canonical dataset",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Reconcile the configured leagues
  python scripts/run_sync.py --mode leagues

  # Teams of K League 1 without writing anything
  python scripts/run_sync.py --mode teams --league-id 292 --dry-run

  # Full resync, re-matching even existing mappings
  python scripts/run_sync.py --mode full --force

  # Drop registry rows below 0.75 confidence
  python scripts/run_sync.py --mode invalidate --threshold 0.75
        """
    )

    parser.add_argument(
        '--mode',
        choices=FETCH_MODES + ("stats", "invalidate"),
        required=True,
        help='Pass to run'
    )
    parser.add_argument('--league-id', type=int, help='Primary provider league id')
    parser.add_argument('--team-id', type=int, help='Primary provider team id')
    parser.add_argument('--fixture-id', type=int, help='Primary provider fixture id')
    parser.add_argument('--season', type=int, default=None, help='Season (defaults to CURRENT_SEASON)')
    parser.add_argument('--threshold', type=float, default=None, help='Confidence cutoff for --mode invalidate')
    parser.add_argument('--dry-run', action='store_true', help='Match and report without writing')
    parser.add_argument('--force', action='store_true', help='Re-match entities that already have a mapping')
    parser.add_argument('--json-logs', action='store_true', help='Emit JSON log lines')

    args = parser.parse_args()

    required = {"teams": "league_id", "fixtures": "league_id", "players": "team_id", "events": "fixture_id"}
    if args.mode in required and getattr(args, required[args.mode]) is None:
        parser.error(f"--mode {args.mode} requires --{required[args.mode].replace('_', '-')}")

    configure_logging(settings.LOG_LEVEL, json_output=args.json_logs)
    token = set_run_id()
    try:
        return await run(args)
    finally:
        clear_run_id(token)


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
