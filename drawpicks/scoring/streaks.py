"""Correct-pick streak tracking."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from drawpicks.core.constants import (
    MATCH_PICKS_COLLECTION,
    TOP_STREAKS_LIMIT,
    USER_STREAKS_COLLECTION,
)
from drawpicks.core.firestore_utils import (
    doc_to_dict,
    get_client,
    run_in_transaction,
    sort_timestamp,
    utcnow,
    where_equal,
)

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction
    from drawpicks.core.types import StreakState


def pick_order_key(pick: dict[str, Any]) -> tuple[Any, int, int, str]:
    """Stable processing order: finalize time, then bracket position."""
    return (
        sort_timestamp(pick.get("matchFinalizedAt")),
        int(pick.get("roundNumber") or 0),
        int(pick.get("matchNumber") or 0),
        str(pick.get("matchId") or ""),
    )


def fold_streak(picks: list[dict[str, Any]]) -> StreakState:
    """Replay a user's judged picks in order and return the streak state."""
    current = longest = 0
    last_match_id = None
    judged = [p for p in picks if p.get("isWinnerCorrect") is not None]
    for pick in sorted(judged, key=pick_order_key):
        current = current + 1 if pick["isWinnerCorrect"] else 0
        longest = max(longest, current)
        last_match_id = pick.get("matchId")
    return {
        "currentStreak": current,
        "longestStreak": longest,
        "lastMatchId": last_match_id,
    }


class StreakService:
    """Keeps each user's streak in step with their scored picks."""

    @staticmethod
    def _streak_ref(db: Client, user_id: str) -> DocumentReference:
        return db.collection(USER_STREAKS_COLLECTION).document(user_id)

    @staticmethod
    def plan_match_updates(
        db: Client,
        transaction: Transaction,
        match_id: str,
        scored_picks: list[dict[str, Any]],
    ) -> list[tuple[DocumentReference, dict[str, Any]]]:
        """Read what is needed to refresh streaks after a match is scored.

        ``scored_picks`` are the freshly scored picks for the match; they are
        overlaid on the stored picks because writes in the same transaction
        are not visible to its reads. A user whose streak already ends on this
        match is skipped, so replaying a finalize event changes nothing.
        """
        writes = []
        for pick in scored_picks:
            if pick.get("isWinnerCorrect") is None:
                continue
            user_id = pick["userId"]
            ref = StreakService._streak_ref(db, user_id)
            existing = doc_to_dict(ref.get(transaction=transaction))
            if existing and existing.get("lastMatchId") == match_id:
                continue

            history = where_equal(
                db, MATCH_PICKS_COLLECTION, transaction=transaction, userId=user_id
            )
            history = [p for p in history if p.get("matchId") != match_id]
            history.append(pick)
            state = {**fold_streak(history), "lastUpdatedAt": utcnow()}
            writes.append((ref, state))
        return writes

    @staticmethod
    def rebuild_user_streak(user_id: str, db: Client | None = None) -> dict[str, Any]:
        """Recompute a user's streak from all of their scored picks."""
        db = get_client(db)

        def _rebuild(transaction: Transaction) -> dict[str, Any]:
            history = where_equal(
                db, MATCH_PICKS_COLLECTION, transaction=transaction, userId=user_id
            )
            state = {**fold_streak(history), "lastUpdatedAt": utcnow()}
            transaction.set(StreakService._streak_ref(db, user_id), state)
            return state

        state = run_in_transaction(db, _rebuild)
        logging.info(
            f"Rebuilt streak for user {user_id}: current={state['currentStreak']} "
            f"longest={state['longestStreak']}"
        )
        return state

    @staticmethod
    def get_user_streak(user_id: str, db: Client | None = None) -> dict[str, Any]:
        """Fetch a user's streak, defaulting to zeros."""
        db = get_client(db)
        data = doc_to_dict(StreakService._streak_ref(db, user_id).get())
        if not data:
            return {"currentStreak": 0, "longestStreak": 0, "lastUpdatedAt": None}
        return {
            "currentStreak": data.get("currentStreak", 0),
            "longestStreak": data.get("longestStreak", 0),
            "lastUpdatedAt": data.get("lastUpdatedAt"),
        }

    @staticmethod
    def get_top_streaks(
        limit: int = TOP_STREAKS_LIMIT, db: Client | None = None
    ) -> list[dict[str, Any]]:
        """Users with the longest running current streaks."""
        db = get_client(db)
        streaks = []
        for doc in db.collection(USER_STREAKS_COLLECTION).stream():
            data = doc.to_dict() or {}
            if data.get("currentStreak", 0) > 0:
                streaks.append({
                    "userId": doc.id,
                    "currentStreak": data["currentStreak"],
                    "longestStreak": data.get("longestStreak", 0),
                })
        streaks.sort(key=lambda s: (-s["currentStreak"], -s["longestStreak"], s["userId"]))
        return streaks[:limit]
