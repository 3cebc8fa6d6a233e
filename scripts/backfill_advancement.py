"""
Re-run winner advancement for a tournament.

- Processes rounds in ascending order, one transaction per round.
- Re-reads each round after the previous one commits, so seeds placed by an
  earlier round are carried forward.
- Safe to re-run: slots that already hold the right winner are left alone.
- On failure, prints the round to resume from with --start-round.
"""

import argparse
import logging
import sys

from firebase_admin import firestore
from firebase_setup import initialize_firebase

from drawpicks.bracket.advancement import AdvancementService


def parse_args(argv=None):
    """Parse command line options."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--tournament-id", required=True)
    parser.add_argument("--start-round", type=int, default=1)
    parser.add_argument(
        "--dry-run", action="store_true", help="Report changes without writing."
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for the backfill script."""
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    if not initialize_firebase():
        sys.exit(1)

    db = firestore.client()
    try:
        rounds = AdvancementService.backfill_tournament(
            args.tournament_id,
            start_round=args.start_round,
            dry_run=args.dry_run,
            db=db,
        )
    except Exception as e:
        print(f"\nBackfill stopped: {e}")
        sys.exit(1)

    for summary in rounds:
        print(f"Round {summary['roundNumber']}: {len(summary['updated'])} slot updates")
        for update in summary["updated"]:
            print(
                f"  {update['matchId']} -> {update['destinationMatchId']} "
                f"{update['slot']}: {update['playerName']}"
            )
    print("\nDry run complete." if args.dry_run else "\nBackfill complete.")


if __name__ == "__main__":
    main()
