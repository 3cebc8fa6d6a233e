"""Service layer for user predictions."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Any

from drawpicks.achievements.services import AchievementService
from drawpicks.core.constants import (
    DEFAULT_TOURNAMENT_FORMAT,
    MATCH_PICKS_COLLECTION,
    MATCHES_COLLECTION,
    ROUNDS_COLLECTION,
    TOURNAMENT_ARCHIVED,
    TOURNAMENTS_COLLECTION,
    USER_ROUND_PICKS_COLLECTION,
)
from drawpicks.core.firestore_utils import (
    doc_to_dict,
    get_client,
    run_in_transaction,
    sort_timestamp,
    utcnow,
    where_equal,
)
from drawpicks.errors import (
    DuplicateResourceError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)

from .models import PickSubmission

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.transaction import Transaction


def user_round_pick_id(round_id: str, user_id: str) -> str:
    """Document id of a user's picks for a round."""
    return f"{round_id}_{user_id}"


def match_pick_id(round_pick_id: str, match_id: str) -> str:
    """Document id of one prediction within a user round pick."""
    return f"{round_pick_id}_{match_id}"


def check_submission_window(
    round_data: dict[str, Any],
    tournament: dict[str, Any],
    now: datetime.datetime | None = None,
) -> None:
    """Raise ValidationError unless the round is taking predictions."""
    now = now or utcnow()
    if tournament.get("deletedAt") or tournament.get("status") == TOURNAMENT_ARCHIVED:
        raise ValidationError("This tournament is no longer taking predictions.")
    if not round_data.get("isActive"):
        raise ValidationError(f"{round_data.get('name', 'This round')} is not open.")
    if round_data.get("submissionsClosedAt"):
        raise ValidationError("Submissions for this round are closed.")
    opens_at = round_data.get("opensAt")
    if opens_at and now < sort_timestamp(opens_at):
        raise ValidationError("Submissions for this round have not opened yet.")


class PickService:
    """Handles the draft and final submission of round predictions."""

    @staticmethod
    def _save(
        db: Client,
        user_id: str,
        round_id: str,
        submission: PickSubmission,
        is_final: bool,
    ) -> dict[str, Any]:
        def _write(transaction: Transaction) -> dict[str, Any]:
            round_data = doc_to_dict(
                db.collection(ROUNDS_COLLECTION)
                .document(round_id)
                .get(transaction=transaction)
            )
            if not round_data:
                raise NotFoundError("Round not found.")
            tournament = doc_to_dict(
                db.collection(TOURNAMENTS_COLLECTION)
                .document(round_data["tournamentId"])
                .get(transaction=transaction)
            )
            if not tournament:
                raise NotFoundError("Tournament not found.")

            pick_id = user_round_pick_id(round_id, user_id)
            pick_ref = db.collection(USER_ROUND_PICKS_COLLECTION).document(pick_id)
            existing = doc_to_dict(pick_ref.get(transaction=transaction))
            if existing and not existing.get("isDraft", True):
                if is_final:
                    raise DuplicateResourceError(
                        "You have already submitted final picks for this round."
                    )
                raise StateConflictError(
                    "Final picks cannot be changed back into a draft."
                )

            check_submission_window(round_data, tournament)

            matches = {
                m["id"]: m
                for m in where_equal(
                    db, MATCHES_COLLECTION, transaction=transaction, roundId=round_id
                )
            }
            submission.validate(
                matches,
                tournament.get("format", DEFAULT_TOURNAMENT_FORMAT),
                is_final=is_final,
            )

            old_picks = where_equal(
                db,
                MATCH_PICKS_COLLECTION,
                transaction=transaction,
                userRoundPickId=pick_id,
            )

            now = utcnow()
            award_writes = (
                AchievementService.plan_early_bird(
                    db, transaction, user_id, round_data, now
                )
                if is_final
                else []
            )

            # Picks for the same match are overwritten by the set below
            kept = {match_pick_id(pick_id, e.match_id) for e in submission.entries}
            for old in old_picks:
                if old["id"] not in kept:
                    transaction.delete(
                        db.collection(MATCH_PICKS_COLLECTION).document(old["id"])
                    )
            for entry in submission.entries:
                match = matches[entry.match_id]
                transaction.set(
                    db.collection(MATCH_PICKS_COLLECTION).document(
                        match_pick_id(pick_id, entry.match_id)
                    ),
                    {
                        "userRoundPickId": pick_id,
                        "userId": user_id,
                        "roundId": round_id,
                        "tournamentId": round_data["tournamentId"],
                        "matchId": entry.match_id,
                        "roundNumber": match.get("roundNumber"),
                        "matchNumber": match.get("matchNumber"),
                        "predictedWinner": entry.predicted_winner,
                        "predictedSetsWon": entry.predicted_sets_won,
                        "predictedSetsLost": entry.predicted_sets_lost,
                        "isWinnerCorrect": None,
                        "isExactScore": None,
                        "pointsEarned": 0,
                        "createdAt": now,
                    },
                )

            round_pick = {
                "userId": user_id,
                "roundId": round_id,
                "tournamentId": round_data["tournamentId"],
                "isDraft": not is_final,
                "submittedAt": now if is_final else None,
                "updatedAt": now,
                "createdAt": existing.get("createdAt", now) if existing else now,
                "totalPoints": 0,
                "correctWinners": 0,
                "exactScores": 0,
                "scoredAt": None,
            }
            transaction.set(pick_ref, round_pick)
            for ref, data in award_writes:
                transaction.set(ref, data)
            round_pick["id"] = pick_id
            round_pick["pickCount"] = len(submission.entries)
            round_pick["achievements"] = [data["code"] for _, data in award_writes]
            return round_pick

        return run_in_transaction(db, _write)

    @staticmethod
    def save_draft(
        user_id: str,
        round_id: str,
        submission: PickSubmission,
        db: Client | None = None,
    ) -> dict[str, Any]:
        """Store a possibly partial set of predictions, replacing any draft."""
        db = get_client(db)
        round_pick = PickService._save(db, user_id, round_id, submission, is_final=False)
        logging.info(
            f"User {user_id} saved a draft for round {round_id} "
            f"({round_pick['pickCount']} picks)"
        )
        return round_pick

    @staticmethod
    def submit_final(
        user_id: str,
        round_id: str,
        submission: PickSubmission,
        db: Client | None = None,
    ) -> dict[str, Any]:
        """Lock in a complete set of predictions for a round."""
        db = get_client(db)
        round_pick = PickService._save(db, user_id, round_id, submission, is_final=True)
        logging.info(f"User {user_id} submitted final picks for round {round_id}")
        return round_pick

    @staticmethod
    def get_user_round_picks(
        user_id: str, round_id: str, db: Client | None = None
    ) -> dict[str, Any] | None:
        """A user's round pick with its predictions, or None."""
        db = get_client(db)
        pick_id = user_round_pick_id(round_id, user_id)
        round_pick = doc_to_dict(
            db.collection(USER_ROUND_PICKS_COLLECTION).document(pick_id).get()
        )
        if not round_pick:
            return None
        picks = where_equal(db, MATCH_PICKS_COLLECTION, userRoundPickId=pick_id)
        round_pick["picks"] = sorted(picks, key=lambda p: p.get("matchNumber") or 0)
        return round_pick

    @staticmethod
    def has_final_submission(
        user_id: str, round_id: str, db: Client | None = None
    ) -> bool:
        """Return True if the user has locked in picks for the round."""
        db = get_client(db)
        data = doc_to_dict(
            db.collection(USER_ROUND_PICKS_COLLECTION)
            .document(user_round_pick_id(round_id, user_id))
            .get()
        )
        return bool(data) and not data.get("isDraft", True)

    @staticmethod
    def get_other_user_round_picks(
        viewer_id: str, other_user_id: str, round_id: str, db: Client | None = None
    ) -> dict[str, Any]:
        """Another user's final picks, visible once the viewer has submitted."""
        db = get_client(db)
        if viewer_id != other_user_id and not PickService.has_final_submission(
            viewer_id, round_id, db=db
        ):
            raise StateConflictError(
                "Submit your own final picks before viewing other players' picks."
            )
        round_pick = PickService.get_user_round_picks(other_user_id, round_id, db=db)
        if not round_pick or round_pick.get("isDraft", True):
            raise NotFoundError("This player has not submitted picks for the round.")
        return round_pick

    @staticmethod
    def compare_picks(
        viewer_id: str, other_user_id: str, tournament_id: str, db: Client | None = None
    ) -> list[dict[str, Any]]:
        """Side by side predictions for rounds both users have submitted."""
        db = get_client(db)
        finals: dict[str, dict[str, dict[str, Any]]] = {viewer_id: {}, other_user_id: {}}
        for user_id in finals:
            for round_pick in where_equal(
                db, USER_ROUND_PICKS_COLLECTION, tournamentId=tournament_id, userId=user_id
            ):
                if not round_pick.get("isDraft", True):
                    finals[user_id][round_pick["roundId"]] = round_pick

        shared_rounds = set(finals[viewer_id]) & set(finals[other_user_id])
        rounds = {
            r["id"]: r
            for r in where_equal(db, ROUNDS_COLLECTION, tournamentId=tournament_id)
            if r["id"] in shared_rounds
        }

        comparison = []
        for round_id in sorted(rounds, key=lambda r_id: rounds[r_id]["roundNumber"]):
            mine = PickService.get_user_round_picks(viewer_id, round_id, db=db) or {}
            theirs = PickService.get_user_round_picks(other_user_id, round_id, db=db) or {}
            their_picks = {p["matchId"]: p for p in theirs.get("picks", [])}
            matches = []
            for pick in mine.get("picks", []):
                other = their_picks.get(pick["matchId"], {})
                matches.append({
                    "matchId": pick["matchId"],
                    "matchNumber": pick.get("matchNumber"),
                    "mine": pick,
                    "theirs": other,
                    "samePick": pick.get("predictedWinner") == other.get("predictedWinner"),
                })
            comparison.append({
                "roundId": round_id,
                "roundName": rounds[round_id].get("name"),
                "roundNumber": rounds[round_id]["roundNumber"],
                "myPoints": mine.get("totalPoints", 0),
                "theirPoints": theirs.get("totalPoints", 0),
                "matches": matches,
            })
        return comparison
