"""Utility functions for the leaderboard blueprint."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable

from drawpicks.core.constants import USERS_COLLECTION
from drawpicks.core.firestore_utils import sort_timestamp

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client


def display_name(user: dict[str, Any] | None, user_id: str) -> str:
    """Return the name to show for a user."""
    if not user:
        return user_id
    return user.get("name") or user.get("username") or user_id


def get_display_names(db: Client, user_ids: Iterable[str]) -> dict[str, str]:
    """Look up display names for a set of users."""
    names = {}
    for uid in set(user_ids):
        doc = db.collection(USERS_COLLECTION).document(uid).get()
        names[uid] = display_name(doc.to_dict() if doc.exists else None, uid)
    return names


def ranking_key(entry: dict[str, Any]) -> tuple[int, Any, str]:
    """Points first, then the earliest submission, then user id."""
    return (
        -entry["totalPoints"],
        sort_timestamp(entry.get("earliestSubmission")),
        entry["userId"],
    )


def rank_entries(entries: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Sort entries into a strict total order and number them from 1."""
    ranked = sorted(entries, key=ranking_key)
    for position, entry in enumerate(ranked, start=1):
        entry["rank"] = position
    return ranked


def build_leaderboard(
    round_picks: list[dict[str, Any]],
    match_picks: list[dict[str, Any]],
    names: dict[str, str] | None = None,
) -> list[dict[str, Any]]:
    """Aggregate final round picks per user and rank them.

    Drafts are ignored, as are match picks that belong to them.
    """
    finals = [p for p in round_picks if not p.get("isDraft", True)]
    final_ids = {p["id"] for p in finals}
    names = names or {}

    stats: dict[str, dict[str, Any]] = {}
    for pick in finals:
        uid = pick["userId"]
        s = stats.setdefault(uid, {
            "userId": uid,
            "displayName": names.get(uid, uid),
            "totalPoints": 0,
            "correctWinners": 0,
            "exactScores": 0,
            "roundsPlayed": 0,
            "totalPredictions": 0,
            "earliestSubmission": None,
            "tournamentIds": set(),
        })
        s["totalPoints"] += int(pick.get("totalPoints") or 0)
        s["correctWinners"] += int(pick.get("correctWinners") or 0)
        s["exactScores"] += int(pick.get("exactScores") or 0)
        s["roundsPlayed"] += 1
        s["tournamentIds"].add(pick.get("tournamentId"))
        submitted = pick.get("submittedAt")
        if submitted is not None and (
            s["earliestSubmission"] is None
            or sort_timestamp(submitted) < sort_timestamp(s["earliestSubmission"])
        ):
            s["earliestSubmission"] = submitted

    for pick in match_picks:
        if pick.get("userRoundPickId") not in final_ids:
            continue
        if pick.get("isWinnerCorrect") is None:
            continue
        stats[pick["userId"]]["totalPredictions"] += 1

    entries = []
    for s in stats.values():
        total = s["totalPredictions"]
        s["accuracy"] = s["correctWinners"] / total if total else 0.0
        s["exactScoreRate"] = s["exactScores"] / total if total else 0.0
        s["tournamentsPlayed"] = len(s.pop("tournamentIds"))
        entries.append(s)
    return rank_entries(entries)
