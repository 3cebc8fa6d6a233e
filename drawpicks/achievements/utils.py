"""Utility functions for the achievements blueprint."""

from __future__ import annotations

import datetime
from typing import Any, Optional

from drawpicks.core.firestore_utils import sort_timestamp

from .models import (
    EXACT_MASTER,
    PERFECT_ROUND,
    STREAK_5,
    STREAK_10,
)

STREAK_THRESHOLDS = ((5, STREAK_5), (10, STREAK_10))
EXACT_MASTER_THRESHOLD = 3
CENTURY_CLUB_THRESHOLD = 100
UPSET_SEED_CUTOFF = 8
EARLY_BIRD_WINDOW = datetime.timedelta(hours=1)


def award_id(user_id: str, code: str) -> str:
    """Document id of an award; a user holds each achievement at most once."""
    return f"{user_id}_{code}"


def streak_codes(current_streak: int) -> list[str]:
    """Streak achievements earned by a running streak."""
    return [code for limit, code in STREAK_THRESHOLDS if current_streak >= limit]


def round_codes(totals: dict[str, Any], match_count: int) -> list[tuple[str, int]]:
    """Round achievements earned by a round pick's totals, with their values."""
    codes = []
    correct = int(totals.get("correctWinners") or 0)
    if match_count and correct >= match_count:
        codes.append((PERFECT_ROUND, correct))
    exact = int(totals.get("exactScores") or 0)
    if exact >= EXACT_MASTER_THRESHOLD:
        codes.append((EXACT_MASTER, exact))
    return codes


def _seeds(match: dict[str, Any]) -> tuple[Optional[int], Optional[int]]:
    """Return (winner seed, loser seed) of a finalized match."""
    winner = match.get("winnerName")
    if winner is not None and winner == match.get("player1Name"):
        return match.get("player1Seed"), match.get("player2Seed")
    if winner is not None and winner == match.get("player2Name"):
        return match.get("player2Seed"), match.get("player1Seed")
    return None, None


def is_upset(match: dict[str, Any]) -> bool:
    """A top seed lost to an unseeded or lower seeded player."""
    winner_seed, loser_seed = _seeds(match)
    if loser_seed is None or loser_seed > UPSET_SEED_CUTOFF:
        return False
    return winner_seed is None or winner_seed > loser_seed


def is_early_bird(submitted_at: Any, opens_at: Any) -> bool:
    """Submitted within the first hour after a round opened."""
    if submitted_at is None or opens_at is None:
        return False
    return sort_timestamp(submitted_at) <= sort_timestamp(opens_at) + EARLY_BIRD_WINDOW
