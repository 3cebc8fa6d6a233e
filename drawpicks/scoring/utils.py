"""Pure scoring functions shared by the live path and the repair scripts."""

from __future__ import annotations

import math
from typing import Any

from drawpicks.core.constants import (
    DEFAULT_POINTS_PER_WINNER,
    EXACT_SCORE_MULTIPLIER,
    ROUND_POINTS_PER_WINNER,
)


def exact_score_bonus(points_per_winner: int) -> int:
    """Exact-score bonus derived from the winner points, rounded up."""
    return math.ceil(points_per_winner * EXACT_SCORE_MULTIPLIER)


def scoring_for_round(round_name: str) -> dict[str, int]:
    """Return the default progressive scoring rule for a round name.

    Deeper rounds are worth more; unknown names fall back to 10 points.
    """
    points = ROUND_POINTS_PER_WINNER.get(round_name, DEFAULT_POINTS_PER_WINNER)
    return {
        "pointsPerWinner": points,
        "pointsExactScore": exact_score_bonus(points),
    }


def score_pick(
    pick: dict[str, Any], match: dict[str, Any], rule: dict[str, Any]
) -> dict[str, Any]:
    """Score one prediction against a finalized match.

    Picks on a retired match earn nothing and stay unjudged.
    """
    if match.get("isRetirement"):
        return {"isWinnerCorrect": None, "isExactScore": None, "pointsEarned": 0}

    is_winner_correct = pick.get("predictedWinner") == match.get("winnerName")
    is_exact_score = (
        is_winner_correct
        and pick.get("predictedSetsWon") == match.get("setsWon")
        and pick.get("predictedSetsLost") == match.get("setsLost")
    )

    points = 0
    if is_winner_correct:
        points += int(rule.get("pointsPerWinner", 0))
    if is_exact_score:
        points += int(rule.get("pointsExactScore", 0))

    return {
        "isWinnerCorrect": is_winner_correct,
        "isExactScore": is_exact_score,
        "pointsEarned": points,
    }


def fold_round_pick_totals(match_picks: list[dict[str, Any]]) -> dict[str, int]:
    """Recompute a user round pick's aggregates from its match picks."""
    return {
        "totalPoints": sum(int(p.get("pointsEarned") or 0) for p in match_picks),
        "correctWinners": sum(1 for p in match_picks if p.get("isWinnerCorrect")),
        "exactScores": sum(1 for p in match_picks if p.get("isExactScore")),
    }
