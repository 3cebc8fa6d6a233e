"""Service layer for leaderboards and user standings."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from drawpicks.core.constants import (
    MATCH_PICKS_COLLECTION,
    PODIUM_SIZE,
    ROUNDS_COLLECTION,
    TOURNAMENTS_COLLECTION,
    USER_ROUND_PICKS_COLLECTION,
)
from drawpicks.core.firestore_utils import doc_to_dict, get_client, where_equal
from drawpicks.errors import NotFoundError

from .utils import build_leaderboard, get_display_names

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client


def _stream_all(db: Client, collection: str) -> list[dict[str, Any]]:
    return [d for d in (doc_to_dict(s) for s in db.collection(collection).stream()) if d]


class LeaderboardService:
    """Rankings are recomputed from the stored round picks on every query."""

    @staticmethod
    def _require_tournament(db: Client, tournament_id: str) -> dict[str, Any]:
        tournament = doc_to_dict(
            db.collection(TOURNAMENTS_COLLECTION).document(tournament_id).get()
        )
        if not tournament or tournament.get("deletedAt"):
            raise NotFoundError("Tournament not found.")
        return tournament

    @staticmethod
    def _leaderboard(
        db: Client,
        round_picks: list[dict[str, Any]],
        match_picks: list[dict[str, Any]],
        limit: int | None,
    ) -> list[dict[str, Any]]:
        user_ids = {p["userId"] for p in round_picks if not p.get("isDraft", True)}
        entries = build_leaderboard(
            round_picks, match_picks, get_display_names(db, user_ids)
        )
        return entries[:limit] if limit else entries

    @staticmethod
    def get_tournament_leaderboard(
        tournament_id: str, limit: int | None = None, db: Client | None = None
    ) -> list[dict[str, Any]]:
        """Rank everyone with final picks in a tournament."""
        db = get_client(db)
        LeaderboardService._require_tournament(db, tournament_id)
        return LeaderboardService._leaderboard(
            db,
            where_equal(db, USER_ROUND_PICKS_COLLECTION, tournamentId=tournament_id),
            where_equal(db, MATCH_PICKS_COLLECTION, tournamentId=tournament_id),
            limit,
        )

    @staticmethod
    def get_round_leaderboard(
        round_id: str, limit: int | None = None, db: Client | None = None
    ) -> list[dict[str, Any]]:
        """Rank everyone with final picks in one round."""
        db = get_client(db)
        if not db.collection(ROUNDS_COLLECTION).document(round_id).get().exists:
            raise NotFoundError("Round not found.")
        return LeaderboardService._leaderboard(
            db,
            where_equal(db, USER_ROUND_PICKS_COLLECTION, roundId=round_id),
            where_equal(db, MATCH_PICKS_COLLECTION, roundId=round_id),
            limit,
        )

    @staticmethod
    def get_global_leaderboard(
        limit: int | None = None, db: Client | None = None
    ) -> list[dict[str, Any]]:
        """Rank everyone across all tournaments that have not been deleted."""
        db = get_client(db)
        deleted = {
            t["id"] for t in _stream_all(db, TOURNAMENTS_COLLECTION) if t.get("deletedAt")
        }
        round_picks = [
            p
            for p in _stream_all(db, USER_ROUND_PICKS_COLLECTION)
            if p.get("tournamentId") not in deleted
        ]
        match_picks = [
            p
            for p in _stream_all(db, MATCH_PICKS_COLLECTION)
            if p.get("tournamentId") not in deleted
        ]
        return LeaderboardService._leaderboard(db, round_picks, match_picks, limit)

    @staticmethod
    def get_user_tournament_stats(
        user_id: str, tournament_id: str, db: Client | None = None
    ) -> dict[str, Any]:
        """A user's rank and entry in a tournament."""
        db = get_client(db)
        leaderboard = LeaderboardService.get_tournament_leaderboard(tournament_id, db=db)
        entry = next((e for e in leaderboard if e["userId"] == user_id), None)
        return {
            "rank": entry["rank"] if entry else None,
            "totalParticipants": len(leaderboard),
            "entry": entry,
        }

    @staticmethod
    def get_tournament_summary(
        tournament_id: str, db: Client | None = None
    ) -> dict[str, Any]:
        """Podium and the top scorer of each round."""
        db = get_client(db)
        tournament = LeaderboardService._require_tournament(db, tournament_id)
        leaderboard = LeaderboardService.get_tournament_leaderboard(tournament_id, db=db)

        round_winners = []
        rounds = sorted(
            where_equal(db, ROUNDS_COLLECTION, tournamentId=tournament_id),
            key=lambda r: r["roundNumber"],
        )
        for round_data in rounds:
            top = LeaderboardService.get_round_leaderboard(round_data["id"], limit=1, db=db)
            if top and top[0]["totalPoints"] > 0:
                round_winners.append({
                    "roundId": round_data["id"],
                    "roundName": round_data.get("name"),
                    "userId": top[0]["userId"],
                    "displayName": top[0]["displayName"],
                    "totalPoints": top[0]["totalPoints"],
                })

        return {
            "tournamentId": tournament_id,
            "name": tournament.get("name"),
            "status": tournament.get("status"),
            "participants": len(leaderboard),
            "podium": leaderboard[:PODIUM_SIZE],
            "roundWinners": round_winners,
        }
