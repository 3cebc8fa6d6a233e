"""
Re-score every finalized match of a tournament and rebuild streaks.

- Uses each round's stored scoring rule, so run it after editing a rule.
- Round pick totals and streaks are recomputed from the match picks, so the
  script can be run any number of times.
"""

import argparse
import logging
import sys

from firebase_admin import firestore
from firebase_setup import initialize_firebase

from drawpicks.core.constants import USER_ROUND_PICKS_COLLECTION
from drawpicks.core.firestore_utils import where_equal
from drawpicks.scoring.services import ScoringService
from drawpicks.scoring.streaks import StreakService


def parse_args(argv=None):
    """Parse command line options."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--tournament-id", required=True)
    parser.add_argument(
        "--skip-streaks", action="store_true", help="Only re-score the picks."
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for the recalculation script."""
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    if not initialize_firebase():
        sys.exit(1)

    db = firestore.client()
    summary = ScoringService.recalculate_tournament_scores(args.tournament_id, db=db)
    print(
        f"Re-scored {summary['matchesScored']} matches and "
        f"{summary['picksScored']} picks across {summary['roundsProcessed']} rounds."
    )

    if not args.skip_streaks:
        user_ids = {
            p["userId"]
            for p in where_equal(
                db, USER_ROUND_PICKS_COLLECTION, tournamentId=args.tournament_id
            )
        }
        for user_id in sorted(user_ids):
            StreakService.rebuild_user_streak(user_id, db=db)
        print(f"Rebuilt streaks for {len(user_ids)} users.")


if __name__ == "__main__":
    main()
