"""Service layer for tournament brackets."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Any

from drawpicks.core.constants import (
    DEFAULT_TOURNAMENT_FORMAT,
    FIRESTORE_BATCH_LIMIT,
    MATCH_FINALIZED,
    MATCH_PENDING,
    MATCHES_COLLECTION,
    ROUNDS_COLLECTION,
    TOURNAMENT_ACTIVE,
    TOURNAMENT_ARCHIVED,
    TOURNAMENT_DRAFT,
    TOURNAMENT_TRANSITIONS,
    TOURNAMENTS_COLLECTION,
    UPCOMING_DEADLINES_LIMIT,
    USER_ROUND_PICKS_COLLECTION,
    WINNING_SETS,
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
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from drawpicks.achievements.services import AchievementService
from drawpicks.scoring.services import ScoringService
from drawpicks.scoring.streaks import StreakService
from drawpicks.scoring.utils import scoring_for_round

from .advancement import AdvancementService, is_waiting_on_players
from .models import MatchResultSubmission, ParsedDraw
from .utils import generate_slug

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.transaction import Transaction


class BracketService:
    """Handles business logic and data access for tournament brackets."""

    @staticmethod
    def _live(docs: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return [d for d in docs if not d.get("deletedAt")]

    @staticmethod
    def _commit_in_chunks(db: Client, operations: list[tuple[str, Any, Any]]) -> None:
        """Commit set/update/delete operations in batches Firestore accepts."""
        for start in range(0, len(operations), FIRESTORE_BATCH_LIMIT):
            batch = db.batch()
            for op, ref, data in operations[start : start + FIRESTORE_BATCH_LIMIT]:
                if op == "set":
                    batch.set(ref, data)
                elif op == "update":
                    batch.update(ref, data)
                else:
                    batch.delete(ref)
            batch.commit()

    @staticmethod
    def _has_picks(db: Client, tournament_id: str) -> bool:
        return bool(
            where_equal(db, USER_ROUND_PICKS_COLLECTION, tournamentId=tournament_id)
        )

    @staticmethod
    def commit_draw(
        draw: ParsedDraw,
        uploaded_by: str,
        tournament_format: str | None = None,
        overwrite_existing: bool = False,
        db: Client | None = None,
    ) -> str:
        """Validate a parsed draw and store it as a new tournament.

        Rounds get the progressive scoring rule for their name. An earlier
        upload of the same tournament is soft deleted, unless results or
        predictions already depend on it.
        """
        db = get_client(db)
        draw.validate()
        tournament_format = tournament_format or DEFAULT_TOURNAMENT_FORMAT
        if tournament_format not in WINNING_SETS:
            raise ValidationError(f"Unknown tournament format '{tournament_format}'.")

        slug = generate_slug(draw.tournament_name, draw.year)
        now = utcnow()
        operations: list[tuple[str, Any, Any]] = []

        previous = BracketService._live(
            where_equal(db, TOURNAMENTS_COLLECTION, slug=slug)
        )
        for old in previous:
            matches = where_equal(db, MATCHES_COLLECTION, tournamentId=old["id"])
            if any(m.get("status") == MATCH_FINALIZED for m in matches):
                raise StateConflictError(
                    f"{old.get('name')} already has finalized matches and cannot be "
                    "re-uploaded."
                )
            if BracketService._has_picks(db, old["id"]) and not overwrite_existing:
                raise StateConflictError(
                    f"{old.get('name')} already has predictions. Re-upload with "
                    "overwrite enabled to replace it."
                )
            ref = db.collection(TOURNAMENTS_COLLECTION).document(old["id"])
            operations.append(("update", ref, {"deletedAt": now}))

        tournament_ref = db.collection(TOURNAMENTS_COLLECTION).document()
        operations.append((
            "set",
            tournament_ref,
            {
                "name": draw.tournament_name,
                "slug": slug,
                "year": draw.year,
                "format": tournament_format,
                "status": TOURNAMENT_DRAFT,
                "currentRoundNumber": None,
                "uploadedBy": uploaded_by,
                "createdAt": now,
                "deletedAt": None,
                "closedAt": None,
            },
        ))

        for parsed_round in sorted(draw.rounds, key=lambda r: r.round_number):
            round_ref = db.collection(ROUNDS_COLLECTION).document()
            operations.append((
                "set",
                round_ref,
                {
                    "tournamentId": tournament_ref.id,
                    "roundNumber": parsed_round.round_number,
                    "name": parsed_round.name,
                    "matchCount": len(parsed_round.matches),
                    "isActive": False,
                    "isFinalized": False,
                    "opensAt": None,
                    "deadline": None,
                    "submissionsClosedAt": None,
                    "submissionsClosedBy": None,
                    "scoringRule": scoring_for_round(parsed_round.name),
                    "createdAt": now,
                },
            ))
            for parsed_match in sorted(parsed_round.matches, key=lambda m: m.match_number):
                operations.append((
                    "set",
                    db.collection(MATCHES_COLLECTION).document(),
                    {
                        "tournamentId": tournament_ref.id,
                        "roundId": round_ref.id,
                        "roundNumber": parsed_round.round_number,
                        "matchNumber": parsed_match.match_number,
                        "player1Name": parsed_match.player1_name,
                        "player1Seed": parsed_match.player1_seed,
                        "player2Name": parsed_match.player2_name,
                        "player2Seed": parsed_match.player2_seed,
                        "status": MATCH_PENDING,
                        "winnerName": None,
                        "finalScore": None,
                        "setsWon": None,
                        "setsLost": None,
                        "isRetirement": False,
                        "finalizedAt": None,
                        "finalizedBy": None,
                        "createdAt": now,
                    },
                ))

        BracketService._commit_in_chunks(db, operations)
        logging.info(
            f"Committed draw {slug} as tournament {tournament_ref.id} "
            f"({len(draw.rounds)} rounds, replaced {len(previous)})"
        )
        return str(tournament_ref.id)

    @staticmethod
    def list_tournaments(
        status: str | None = None, db: Client | None = None
    ) -> list[dict[str, Any]]:
        """Fetch all live tournaments, newest first."""
        db = get_client(db)
        if status:
            docs = where_equal(db, TOURNAMENTS_COLLECTION, status=status)
        else:
            docs = [
                d
                for d in (doc_to_dict(s) for s in db.collection(TOURNAMENTS_COLLECTION).stream())
                if d
            ]
        tournaments = BracketService._live(docs)
        tournaments.sort(
            key=lambda t: (-(t.get("year") or 0), t.get("name", ""), t["id"])
        )
        return tournaments

    @staticmethod
    def get_tournament(tournament_id: str, db: Client | None = None) -> dict[str, Any]:
        """Fetch a live tournament or raise NotFoundError."""
        db = get_client(db)
        data = doc_to_dict(
            db.collection(TOURNAMENTS_COLLECTION).document(tournament_id).get()
        )
        if not data or data.get("deletedAt"):
            raise NotFoundError("Tournament not found.")
        return data

    @staticmethod
    def get_tournament_by_slug(slug: str, db: Client | None = None) -> dict[str, Any]:
        """Fetch the live tournament with a slug."""
        db = get_client(db)
        tournaments = BracketService._live(
            where_equal(db, TOURNAMENTS_COLLECTION, slug=slug)
        )
        if not tournaments:
            raise NotFoundError("Tournament not found.")
        return tournaments[0]

    @staticmethod
    def get_round(round_id: str, db: Client | None = None) -> dict[str, Any]:
        """Fetch a round or raise NotFoundError."""
        db = get_client(db)
        data = doc_to_dict(db.collection(ROUNDS_COLLECTION).document(round_id).get())
        if not data:
            raise NotFoundError("Round not found.")
        return data

    @staticmethod
    def get_rounds(tournament_id: str, db: Client | None = None) -> list[dict[str, Any]]:
        """Fetch a tournament's rounds in bracket order."""
        db = get_client(db)
        rounds = where_equal(db, ROUNDS_COLLECTION, tournamentId=tournament_id)
        return sorted(rounds, key=lambda r: r["roundNumber"])

    @staticmethod
    def get_round_matches(round_id: str, db: Client | None = None) -> list[dict[str, Any]]:
        """Fetch a round's matches in bracket order."""
        db = get_client(db)
        matches = where_equal(db, MATCHES_COLLECTION, roundId=round_id)
        return sorted(matches, key=lambda m: m["matchNumber"])

    @staticmethod
    def get_bracket(tournament_id: str, db: Client | None = None) -> dict[str, Any]:
        """Return the tournament with its rounds and their matches."""
        db = get_client(db)
        tournament = BracketService.get_tournament(tournament_id, db=db)
        matches_by_round: dict[str, list[dict[str, Any]]] = {}
        for match in where_equal(db, MATCHES_COLLECTION, tournamentId=tournament_id):
            match["isReady"] = not is_waiting_on_players(match)
            matches_by_round.setdefault(match["roundId"], []).append(match)

        rounds = []
        for round_data in BracketService.get_rounds(tournament_id, db=db):
            round_data["matches"] = sorted(
                matches_by_round.get(round_data["id"], []),
                key=lambda m: m["matchNumber"],
            )
            rounds.append(round_data)
        tournament["rounds"] = rounds
        return tournament

    @staticmethod
    def set_active_round(
        tournament_id: str, round_number: int, db: Client | None = None
    ) -> dict[str, Any]:
        """Make one round the tournament's only active round."""
        db = get_client(db)

        def _activate(transaction: Transaction) -> dict[str, Any]:
            t_ref = db.collection(TOURNAMENTS_COLLECTION).document(tournament_id)
            tournament = doc_to_dict(t_ref.get(transaction=transaction))
            if not tournament or tournament.get("deletedAt"):
                raise NotFoundError("Tournament not found.")
            if tournament.get("status") == TOURNAMENT_ARCHIVED:
                raise StateConflictError("Archived tournaments cannot change rounds.")

            rounds = where_equal(
                db, ROUNDS_COLLECTION, transaction=transaction, tournamentId=tournament_id
            )
            target = next((r for r in rounds if r["roundNumber"] == round_number), None)
            if target is None:
                raise NotFoundError(f"Round {round_number} not found.")

            for round_data in rounds:
                should_be_active = round_data["id"] == target["id"]
                if bool(round_data.get("isActive")) != should_be_active:
                    transaction.update(
                        db.collection(ROUNDS_COLLECTION).document(round_data["id"]),
                        {"isActive": should_be_active},
                    )
            transaction.update(t_ref, {"currentRoundNumber": round_number})
            target["isActive"] = True
            return target

        target = run_in_transaction(db, _activate)
        logging.info(f"Tournament {tournament_id} active round is now {round_number}")
        return target

    @staticmethod
    def close_submissions(
        round_id: str, closed_by: str, db: Client | None = None
    ) -> None:
        """Stop accepting predictions for a round."""
        db = get_client(db)
        round_data = BracketService.get_round(round_id, db=db)
        if round_data.get("submissionsClosedAt"):
            raise StateConflictError("Submissions are already closed.")
        db.collection(ROUNDS_COLLECTION).document(round_id).update({
            "submissionsClosedAt": utcnow(),
            "submissionsClosedBy": closed_by,
        })

    @staticmethod
    def reopen_submissions(round_id: str, db: Client | None = None) -> None:
        """Accept predictions for a closed round again."""
        db = get_client(db)
        round_data = BracketService.get_round(round_id, db=db)
        if round_data.get("isFinalized"):
            raise StateConflictError("A finalized round cannot be reopened.")
        db.collection(ROUNDS_COLLECTION).document(round_id).update({
            "submissionsClosedAt": None,
            "submissionsClosedBy": None,
        })

    @staticmethod
    def set_round_schedule(
        round_id: str,
        opens_at: datetime.datetime | None,
        deadline: datetime.datetime | None,
        db: Client | None = None,
    ) -> None:
        """Store when a round opens and its advertised deadline."""
        db = get_client(db)
        BracketService.get_round(round_id, db=db)
        if opens_at and deadline and sort_timestamp(deadline) <= sort_timestamp(opens_at):
            raise ValidationError("The deadline must be after the opening time.")
        db.collection(ROUNDS_COLLECTION).document(round_id).update({
            "opensAt": opens_at,
            "deadline": deadline,
        })

    @staticmethod
    def update_scoring_rule(
        round_id: str,
        points_per_winner: int,
        points_exact_score: int,
        db: Client | None = None,
    ) -> dict[str, int]:
        """Replace a round's scoring rule.

        Existing scores keep the old values until the round is recalculated.
        """
        db = get_client(db)
        BracketService.get_round(round_id, db=db)
        if points_per_winner < 0 or points_exact_score < 0:
            raise ValidationError("Points cannot be negative.")
        rule = {
            "pointsPerWinner": int(points_per_winner),
            "pointsExactScore": int(points_exact_score),
        }
        db.collection(ROUNDS_COLLECTION).document(round_id).update({"scoringRule": rule})
        return rule

    @staticmethod
    def update_status(
        tournament_id: str, new_status: str, db: Client | None = None
    ) -> None:
        """Move a tournament along its lifecycle."""
        db = get_client(db)

        def _transition(transaction: Transaction) -> str:
            ref = db.collection(TOURNAMENTS_COLLECTION).document(tournament_id)
            tournament = doc_to_dict(ref.get(transaction=transaction))
            if not tournament or tournament.get("deletedAt"):
                raise NotFoundError("Tournament not found.")
            current = tournament.get("status", TOURNAMENT_DRAFT)
            if new_status not in TOURNAMENT_TRANSITIONS:
                raise ValidationError(f"Unknown status '{new_status}'.")
            if new_status not in TOURNAMENT_TRANSITIONS.get(current, set()):
                raise StateConflictError(
                    f"A {current} tournament cannot become {new_status}."
                )
            update: dict[str, Any] = {"status": new_status}
            if new_status == TOURNAMENT_ARCHIVED:
                update["closedAt"] = utcnow()
            transaction.update(ref, update)
            return current

        previous = run_in_transaction(db, _transition)
        logging.info(f"Tournament {tournament_id} moved from {previous} to {new_status}")

    @staticmethod
    def delete_tournament(tournament_id: str, db: Client | None = None) -> bool:
        """Delete a tournament. Returns True for a hard delete.

        Tournaments with predictions are only marked deleted.
        """
        db = get_client(db)
        BracketService.get_tournament(tournament_id, db=db)
        t_ref = db.collection(TOURNAMENTS_COLLECTION).document(tournament_id)

        if BracketService._has_picks(db, tournament_id):
            t_ref.update({"deletedAt": utcnow()})
            logging.info(f"Soft deleted tournament {tournament_id}")
            return False

        operations: list[tuple[str, Any, Any]] = []
        for collection in (MATCHES_COLLECTION, ROUNDS_COLLECTION):
            for doc in where_equal(db, collection, tournamentId=tournament_id):
                operations.append(("delete", db.collection(collection).document(doc["id"]), None))
        operations.append(("delete", t_ref, None))
        BracketService._commit_in_chunks(db, operations)
        logging.info(f"Deleted tournament {tournament_id}")
        return True

    @staticmethod
    def get_upcoming_deadlines(
        limit: int = UPCOMING_DEADLINES_LIMIT, db: Client | None = None
    ) -> list[dict[str, Any]]:
        """Open rounds of active tournaments with a deadline still ahead."""
        db = get_client(db)
        now = utcnow()
        tournaments = {
            t["id"]: t
            for t in BracketService._live(
                where_equal(db, TOURNAMENTS_COLLECTION, status=TOURNAMENT_ACTIVE)
            )
        }
        upcoming = []
        for round_data in where_equal(db, ROUNDS_COLLECTION, isActive=True):
            tournament = tournaments.get(round_data.get("tournamentId"))
            deadline = round_data.get("deadline")
            if not tournament or not deadline or round_data.get("submissionsClosedAt"):
                continue
            if sort_timestamp(deadline) < now:
                continue
            upcoming.append({
                "tournamentId": tournament["id"],
                "tournamentName": tournament.get("name"),
                "roundId": round_data["id"],
                "roundName": round_data.get("name"),
                "deadline": deadline,
            })
        upcoming.sort(key=lambda u: (sort_timestamp(u["deadline"]), u["roundId"]))
        return upcoming[:limit]

    @staticmethod
    def get_tournament_schedule(
        tournament_id: str, db: Client | None = None
    ) -> list[dict[str, Any]]:
        """Each round's window and progress."""
        db = get_client(db)
        BracketService.get_tournament(tournament_id, db=db)
        schedule = []
        for round_data in BracketService.get_rounds(tournament_id, db=db):
            schedule.append({
                "roundId": round_data["id"],
                "roundNumber": round_data["roundNumber"],
                "name": round_data.get("name"),
                "opensAt": round_data.get("opensAt"),
                "deadline": round_data.get("deadline"),
                "isActive": bool(round_data.get("isActive")),
                "isFinalized": bool(round_data.get("isFinalized")),
                "submissionsClosed": bool(round_data.get("submissionsClosedAt")),
            })
        return schedule

    @staticmethod
    def finalize_match(
        match_id: str,
        result: MatchResultSubmission,
        finalized_by: str,
        db: Client | None = None,
    ) -> dict[str, Any]:
        """Record a match result, advance the winner and score the picks.

        Validation, the result, advancement, scoring, streaks, achievements
        and the round's finalized flag all commit in one transaction.
        """
        db = get_client(db)

        def _finalize(transaction: Transaction) -> dict[str, Any]:
            match_ref = db.collection(MATCHES_COLLECTION).document(match_id)
            match = doc_to_dict(match_ref.get(transaction=transaction))
            if not match:
                raise NotFoundError(f"Match {match_id} not found.")
            if match.get("status") == MATCH_FINALIZED:
                raise StateConflictError("This match has already been finalized.")

            round_data = doc_to_dict(
                db.collection(ROUNDS_COLLECTION)
                .document(match["roundId"])
                .get(transaction=transaction)
            )
            tournament = doc_to_dict(
                db.collection(TOURNAMENTS_COLLECTION)
                .document(match["tournamentId"])
                .get(transaction=transaction)
            )
            if not round_data or not tournament or tournament.get("deletedAt"):
                raise NotFoundError("The match's round or tournament no longer exists.")
            if tournament.get("status") == TOURNAMENT_ARCHIVED:
                raise StateConflictError("Archived tournaments cannot be changed.")

            result.validate(match, tournament.get("format", DEFAULT_TOURNAMENT_FORMAT))

            finalized = {
                "status": MATCH_FINALIZED,
                "winnerName": result.winner_name,
                "finalScore": result.final_score,
                "setsWon": result.sets_won,
                "setsLost": result.sets_lost,
                "isRetirement": result.is_retirement,
                "finalizedAt": utcnow(),
                "finalizedBy": finalized_by,
            }
            match.update(finalized)

            advancement = AdvancementService.plan_propagation(
                db, transaction, match, round_data
            )
            siblings = where_equal(
                db, MATCHES_COLLECTION, transaction=transaction, roundId=match["roundId"]
            )
            round_complete = all(
                m["id"] == match_id or m.get("status") == MATCH_FINALIZED
                for m in siblings
            )
            pick_writes, total_writes, scored = ScoringService.plan_match_scoring(
                db, transaction, match, round_data
            )
            streak_writes = StreakService.plan_match_updates(
                db, transaction, match_id, scored
            )
            award_writes = AchievementService.plan_after_scoring(
                db, transaction, match, round_data, scored, total_writes, streak_writes
            )

            transaction.update(match_ref, finalized)
            if advancement:
                transaction.update(*advancement)
            if round_complete:
                transaction.update(
                    db.collection(ROUNDS_COLLECTION).document(match["roundId"]),
                    {"isFinalized": True},
                )
            for ref, data in pick_writes + total_writes:
                transaction.update(ref, data)
            for ref, data in streak_writes + award_writes:
                transaction.set(ref, data)

            return {
                "match": match,
                "advancedTo": advancement[0].id if advancement else None,
                "roundFinalized": round_complete,
                "picksScored": len(pick_writes),
                "streaksUpdated": len(streak_writes),
                "achievementsAwarded": len(award_writes),
            }

        summary = run_in_transaction(db, _finalize)
        logging.info(
            f"Finalized match {match_id} (winner {result.winner_name}), "
            f"scored {summary['picksScored']} picks"
        )
        return summary
