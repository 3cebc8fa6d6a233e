"""Advancement of finalized winners into the next round of a bracket."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from drawpicks.core.constants import (
    MATCH_FINALIZED,
    MATCHES_COLLECTION,
    ROUNDS_COLLECTION,
    TBD_PLAYER,
)
from drawpicks.core.firestore_utils import (
    doc_to_dict,
    get_client,
    run_in_transaction,
    where_equal,
)
from drawpicks.errors import IntegrityError, NotFoundError, StateConflictError

from .utils import destination_for, winner_seed

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction
    from drawpicks.core.types import Slot


def slot_update(
    match: dict[str, Any], destination: dict[str, Any], slot: Slot
) -> Optional[dict[str, Any]]:
    """Return the fields to write into ``destination`` for a finished match.

    None means the slot already holds the winner. A finalized destination
    can only be confirmed, never changed.
    """
    update = {
        f"{slot}Name": match.get("winnerName"),
        f"{slot}Seed": winner_seed(match),
    }
    if all(destination.get(k) == v for k, v in update.items()):
        return None
    if destination.get("status") == MATCH_FINALIZED:
        raise IntegrityError(
            f"Match {destination.get('id')} is finalized and already has "
            f"{destination.get(f'{slot}Name')} in {slot}."
        )
    return update


class AdvancementService:
    """Moves winners forward one round at a time."""

    @staticmethod
    def _next_round(
        db: Client, round_data: dict[str, Any], transaction: Transaction | None = None
    ) -> dict[str, Any] | None:
        rounds = where_equal(
            db,
            ROUNDS_COLLECTION,
            transaction=transaction,
            tournamentId=round_data["tournamentId"],
            roundNumber=round_data["roundNumber"] + 1,
        )
        return rounds[0] if rounds else None

    @staticmethod
    def plan_propagation(
        db: Client,
        transaction: Transaction,
        match: dict[str, Any],
        round_data: dict[str, Any],
    ) -> tuple[DocumentReference, dict[str, Any]] | None:
        """Read the destination of a finalized match and plan its slot write.

        Returns None for the Final or when the slot is already up to date.
        """
        if match.get("status") != MATCH_FINALIZED:
            raise StateConflictError("Only finalized matches can advance.")
        target = destination_for(round_data["matchCount"], match["matchNumber"])
        if target is None:
            return None
        destination_number, slot = target

        next_round = AdvancementService._next_round(db, round_data, transaction)
        if not next_round:
            raise IntegrityError(
                f"Round {round_data['roundNumber']} has no following round."
            )
        candidates = where_equal(
            db,
            MATCHES_COLLECTION,
            transaction=transaction,
            roundId=next_round["id"],
            matchNumber=destination_number,
        )
        if not candidates:
            raise IntegrityError(
                f"{next_round.get('name')} has no match {destination_number}."
            )
        destination = candidates[0]
        update = slot_update(match, destination, slot)
        if update is None:
            return None
        ref = db.collection(MATCHES_COLLECTION).document(destination["id"])
        return ref, update

    @staticmethod
    def propagate_winner(match_id: str, db: Client | None = None) -> bool:
        """Advance one finalized match's winner. Returns True if anything changed."""
        db = get_client(db)

        def _propagate(transaction: Transaction) -> bool:
            match = doc_to_dict(
                db.collection(MATCHES_COLLECTION)
                .document(match_id)
                .get(transaction=transaction)
            )
            if not match:
                raise NotFoundError(f"Match {match_id} not found.")
            round_data = doc_to_dict(
                db.collection(ROUNDS_COLLECTION)
                .document(match["roundId"])
                .get(transaction=transaction)
            )
            if not round_data:
                raise NotFoundError(f"Round {match['roundId']} not found.")
            planned = AdvancementService.plan_propagation(
                db, transaction, match, round_data
            )
            if planned is None:
                return False
            transaction.update(*planned)
            return True

        return run_in_transaction(db, _propagate)

    @staticmethod
    def _advance_round(
        transaction: Transaction,
        db: Client,
        round_id: str,
        dry_run: bool,
    ) -> dict[str, Any]:
        """Advance every finalized match of one round into the next."""
        round_data = doc_to_dict(
            db.collection(ROUNDS_COLLECTION).document(round_id).get(transaction=transaction)
        )
        if not round_data:
            raise NotFoundError(f"Round {round_id} not found.")
        summary: dict[str, Any] = {
            "roundId": round_id,
            "roundNumber": round_data["roundNumber"],
            "updated": [],
        }
        if round_data.get("matchCount") == 1:
            return summary

        next_round = AdvancementService._next_round(db, round_data, transaction)
        if not next_round:
            raise IntegrityError(
                f"Round {round_data['roundNumber']} has no following round."
            )
        matches = where_equal(
            db, MATCHES_COLLECTION, transaction=transaction, roundId=round_id
        )
        destinations = {
            m["matchNumber"]: m
            for m in where_equal(
                db, MATCHES_COLLECTION, transaction=transaction, roundId=next_round["id"]
            )
        }

        pending: dict[str, dict[str, Any]] = {}
        for match in sorted(matches, key=lambda m: m["matchNumber"]):
            if match.get("status") != MATCH_FINALIZED:
                continue
            try:
                target = destination_for(round_data["matchCount"], match["matchNumber"])
                if target is None:
                    continue
                destination_number, slot = target
                destination = destinations.get(destination_number)
                if destination is None:
                    raise IntegrityError(
                        f"{next_round.get('name')} has no match {destination_number}."
                    )
                update = slot_update(match, destination, slot)
            except Exception:
                logging.error(
                    f"Advancement failed for round {round_id} "
                    f"(number {round_data['roundNumber']}) at match {match['id']}"
                )
                raise
            if update is None:
                continue
            destination.update(update)
            pending.setdefault(destination["id"], {}).update(update)
            summary["updated"].append({
                "matchId": match["id"],
                "destinationMatchId": destination["id"],
                "slot": slot,
                "playerName": update[f"{slot}Name"],
            })

        if not dry_run:
            for destination_id, update in pending.items():
                transaction.update(
                    db.collection(MATCHES_COLLECTION).document(destination_id), update
                )
        return summary

    @staticmethod
    def backfill_tournament(
        tournament_id: str,
        start_round: int = 1,
        dry_run: bool = False,
        db: Client | None = None,
    ) -> list[dict[str, Any]]:
        """Re-run advancement for a tournament, one round per transaction.

        Each round is re-read after the previous one commits, so seeds placed
        by an earlier round are visible to the next. A failure leaves earlier
        rounds advanced and the run can resume from the failing round.

        A dry run reports the same updates a real run would write. Planned
        slots only ever land on unplayed matches, and those never advance, so
        no later round depends on a write the dry run skipped.
        """
        db = get_client(db)
        rounds = where_equal(db, ROUNDS_COLLECTION, tournamentId=tournament_id)
        if not rounds:
            raise NotFoundError("Tournament has no rounds.")

        results = []
        for round_data in sorted(rounds, key=lambda r: r["roundNumber"]):
            if round_data["roundNumber"] < start_round:
                continue
            try:
                summary = run_in_transaction(
                    db, AdvancementService._advance_round, db, round_data["id"], dry_run
                )
            except Exception:
                logging.error(
                    f"Backfill of tournament {tournament_id} stopped at round "
                    f"{round_data['roundNumber']} ({round_data['id']}); resume with "
                    f"start_round={round_data['roundNumber']}"
                )
                raise
            logging.info(
                f"{'Planned' if dry_run else 'Advanced'} round "
                f"{summary['roundNumber']} of tournament {tournament_id}: "
                f"{len(summary['updated'])} slot updates"
            )
            results.append(summary)
        return results


def is_waiting_on_players(match: dict[str, Any]) -> bool:
    """Return True while either slot of a match is still to be decided."""
    return TBD_PLAYER in (match.get("player1Name"), match.get("player2Name"))
