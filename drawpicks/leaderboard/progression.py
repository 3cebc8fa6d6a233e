"""Cumulative points over the course of a tournament."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from drawpicks.core.constants import (
    MATCH_FINALIZED,
    MATCH_PICKS_COLLECTION,
    MATCHES_COLLECTION,
    PROGRESSION_TOP_N,
    USER_ROUND_PICKS_COLLECTION,
)
from drawpicks.core.firestore_utils import get_client, sort_timestamp, where_equal
from drawpicks.errors import ValidationError

from .services import LeaderboardService
from .utils import ranking_key

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

GRANULARITIES = ("match", "round")


def match_order_key(match: dict[str, Any]) -> tuple[Any, int, int, str]:
    """Order finalized matches the way their results landed."""
    return (
        sort_timestamp(match.get("finalizedAt")),
        int(match.get("roundNumber") or 0),
        int(match.get("matchNumber") or 0),
        match["id"],
    )


def build_progression(
    matches: list[dict[str, Any]],
    round_picks: list[dict[str, Any]],
    match_picks: list[dict[str, Any]],
    user_ids: list[str],
    granularity: str = "match",
) -> dict[str, Any]:
    """Replay finalized matches and snapshot points and ranks after each step.

    Every participant is ranked at every step; only ``user_ids`` are
    reported.
    """
    if granularity not in GRANULARITIES:
        raise ValidationError(f"Granularity must be one of {', '.join(GRANULARITIES)}.")

    finals = [p for p in round_picks if not p.get("isDraft", True)]
    final_ids = {p["id"] for p in finals}
    earliest: dict[str, Any] = {}
    for pick in finals:
        uid = pick["userId"]
        submitted = pick.get("submittedAt")
        if uid not in earliest or sort_timestamp(submitted) < sort_timestamp(earliest[uid]):
            earliest[uid] = submitted

    earned: dict[str, dict[str, int]] = {}
    for pick in match_picks:
        if pick.get("userRoundPickId") in final_ids:
            earned.setdefault(pick["matchId"], {})[pick["userId"]] = int(
                pick.get("pointsEarned") or 0
            )

    ordered = sorted(
        (m for m in matches if m.get("status") == MATCH_FINALIZED), key=match_order_key
    )
    steps: list[tuple[dict[str, Any], list[dict[str, Any]]]] = []
    for match in ordered:
        if granularity == "round" and steps and steps[-1][0]["roundNumber"] == match["roundNumber"]:
            steps[-1][1].append(match)
        else:
            steps.append((match, [match]))

    totals = {uid: 0 for uid in earliest}
    series = {uid: {"userId": uid, "points": [], "ranks": []} for uid in user_ids}
    points = []
    for first, step_matches in steps:
        for match in step_matches:
            for uid, value in earned.get(match["id"], {}).items():
                totals[uid] = totals.get(uid, 0) + value
        standings = sorted(
            (
                {"userId": uid, "totalPoints": total, "earliestSubmission": earliest.get(uid)}
                for uid, total in totals.items()
            ),
            key=ranking_key,
        )
        ranks = {s["userId"]: position for position, s in enumerate(standings, start=1)}
        last = step_matches[-1]
        points.append({
            "matchId": last["id"] if granularity == "match" else None,
            "roundNumber": first["roundNumber"],
            "matchNumber": last.get("matchNumber") if granularity == "match" else None,
            "finalizedAt": last.get("finalizedAt"),
        })
        for uid, line in series.items():
            line["points"].append(totals.get(uid, 0))
            line["ranks"].append(ranks.get(uid))

    return {"granularity": granularity, "dataPoints": points, "series": list(series.values())}


class ProgressionService:
    """Points-over-time series for charts."""

    @staticmethod
    def get_progression(
        tournament_id: str,
        user_ids: list[str] | None = None,
        granularity: str = "match",
        top_n: int = PROGRESSION_TOP_N,
        db: Client | None = None,
    ) -> dict[str, Any]:
        """Series for the requested users, or the current top ``top_n``."""
        db = get_client(db)
        leaderboard = LeaderboardService.get_tournament_leaderboard(tournament_id, db=db)
        if not user_ids:
            user_ids = [e["userId"] for e in leaderboard[:top_n]]

        progression = build_progression(
            where_equal(db, MATCHES_COLLECTION, tournamentId=tournament_id),
            where_equal(db, USER_ROUND_PICKS_COLLECTION, tournamentId=tournament_id),
            where_equal(db, MATCH_PICKS_COLLECTION, tournamentId=tournament_id),
            user_ids,
            granularity,
        )
        names = {e["userId"]: e["displayName"] for e in leaderboard}
        for line in progression["series"]:
            line["displayName"] = names.get(line["userId"], line["userId"])
        return progression
