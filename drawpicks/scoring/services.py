"""Service layer for scoring predictions against finalized matches."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from drawpicks.achievements.services import AchievementService
from drawpicks.core.constants import (
    MATCH_FINALIZED,
    MATCH_PICKS_COLLECTION,
    MATCHES_COLLECTION,
    ROUNDS_COLLECTION,
    USER_ROUND_PICKS_COLLECTION,
)
from drawpicks.core.firestore_utils import (
    doc_to_dict,
    get_client,
    run_in_transaction,
    utcnow,
    where_equal,
)
from drawpicks.errors import NotFoundError, StateConflictError

from .streaks import StreakService
from .utils import fold_round_pick_totals, score_pick, scoring_for_round

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction

Write = tuple["DocumentReference", dict[str, Any]]


class ScoringService:
    """Scores match picks and keeps round pick totals derived from them."""

    @staticmethod
    def rule_for_round(round_data: dict[str, Any]) -> dict[str, Any]:
        """Return the stored scoring rule of a round, or its default."""
        return round_data.get("scoringRule") or scoring_for_round(
            round_data.get("name", "")
        )

    @staticmethod
    def plan_match_scoring(
        db: Client,
        transaction: Transaction,
        match: dict[str, Any],
        round_data: dict[str, Any],
    ) -> tuple[list[Write], list[Write], list[dict[str, Any]]]:
        """Read every final pick on a match and compute its scored state.

        Returns the match pick updates, the round pick total updates and the
        scored picks themselves (for streak processing). Nothing is written.
        """
        rule = ScoringService.rule_for_round(round_data)
        round_picks = where_equal(
            db,
            USER_ROUND_PICKS_COLLECTION,
            transaction=transaction,
            roundId=match["roundId"],
        )
        final_ids = {p["id"] for p in round_picks if not p.get("isDraft", True)}

        match_picks = where_equal(
            db, MATCH_PICKS_COLLECTION, transaction=transaction, matchId=match["id"]
        )

        now = utcnow()
        pick_writes: list[Write] = []
        scored_picks = []
        for pick in match_picks:
            if pick.get("userRoundPickId") not in final_ids:
                continue
            result = score_pick(pick, match, rule)
            result.update({
                "matchFinalizedAt": match.get("finalizedAt"),
                "roundNumber": match.get("roundNumber"),
                "matchNumber": match.get("matchNumber"),
                "scoredAt": now,
            })
            ref = db.collection(MATCH_PICKS_COLLECTION).document(pick["id"])
            pick_writes.append((ref, result))
            scored_picks.append({**pick, **result})

        total_writes: list[Write] = []
        for user_round_pick_id in sorted({p["userRoundPickId"] for p in scored_picks}):
            siblings = where_equal(
                db,
                MATCH_PICKS_COLLECTION,
                transaction=transaction,
                userRoundPickId=user_round_pick_id,
            )
            fresh = {p["id"]: p for p in scored_picks}
            current = [fresh.get(p["id"], p) for p in siblings]
            totals = fold_round_pick_totals(current)
            totals["scoredAt"] = now
            ref = db.collection(USER_ROUND_PICKS_COLLECTION).document(
                user_round_pick_id
            )
            total_writes.append((ref, totals))

        return pick_writes, total_writes, scored_picks

    @staticmethod
    def score_match(match_id: str, db: Client | None = None) -> dict[str, int]:
        """Re-score every final pick on a finalized match.

        Safe to re-run: picks and totals are recomputed from source. New
        achievements may unlock, but ones already held are never revoked.
        """
        db = get_client(db)

        def _score(transaction: Transaction) -> dict[str, int]:
            match = doc_to_dict(
                db.collection(MATCHES_COLLECTION)
                .document(match_id)
                .get(transaction=transaction)
            )
            if not match:
                raise NotFoundError(f"Match {match_id} not found.")
            if match.get("status") != MATCH_FINALIZED:
                raise StateConflictError("Only finalized matches can be scored.")
            round_data = doc_to_dict(
                db.collection(ROUNDS_COLLECTION)
                .document(match["roundId"])
                .get(transaction=transaction)
            )
            if not round_data:
                raise NotFoundError(f"Round {match['roundId']} not found.")

            pick_writes, total_writes, scored = ScoringService.plan_match_scoring(
                db, transaction, match, round_data
            )
            streak_writes = StreakService.plan_match_updates(
                db, transaction, match_id, scored
            )
            award_writes = AchievementService.plan_after_scoring(
                db, transaction, match, round_data, scored, total_writes, streak_writes
            )

            for ref, data in pick_writes + total_writes:
                transaction.update(ref, data)
            for ref, data in streak_writes + award_writes:
                transaction.set(ref, data)
            return {
                "picksScored": len(pick_writes),
                "roundPicks": len(total_writes),
                "achievementsAwarded": len(award_writes),
            }

        summary = run_in_transaction(db, _score)
        logging.info(
            f"Scored match {match_id}: {summary['picksScored']} picks across "
            f"{summary['roundPicks']} round picks"
        )
        return summary

    @staticmethod
    def recalculate_round_scores(
        round_id: str, db: Client | None = None
    ) -> dict[str, int]:
        """Re-score every finalized match of a round with its current rule."""
        db = get_client(db)
        round_doc = db.collection(ROUNDS_COLLECTION).document(round_id).get()
        if not round_doc.exists:
            raise NotFoundError("Round not found.")

        matches = where_equal(db, MATCHES_COLLECTION, roundId=round_id)
        finalized = sorted(
            (m for m in matches if m.get("status") == MATCH_FINALIZED),
            key=lambda m: m.get("matchNumber", 0),
        )
        picks_scored = 0
        for match in finalized:
            picks_scored += ScoringService.score_match(match["id"], db=db)[
                "picksScored"
            ]
        logging.info(
            f"Recalculated round {round_id}: {len(finalized)} matches, "
            f"{picks_scored} picks"
        )
        return {"matchesScored": len(finalized), "picksScored": picks_scored}

    @staticmethod
    def recalculate_tournament_scores(
        tournament_id: str, db: Client | None = None
    ) -> dict[str, int]:
        """Re-score every finalized match of a tournament, round by round."""
        db = get_client(db)
        rounds = where_equal(db, ROUNDS_COLLECTION, tournamentId=tournament_id)
        if not rounds:
            raise NotFoundError("Tournament has no rounds.")

        summary = {"roundsProcessed": 0, "matchesScored": 0, "picksScored": 0}
        for round_data in sorted(rounds, key=lambda r: r.get("roundNumber", 0)):
            result = ScoringService.recalculate_round_scores(round_data["id"], db=db)
            summary["roundsProcessed"] += 1
            summary["matchesScored"] += result["matchesScored"]
            summary["picksScored"] += result["picksScored"]
        return summary
