"""Utility functions for the bracket blueprint."""

from __future__ import annotations

import re
from typing import Any, Optional

from drawpicks.core.constants import PLAYER1_SLOT, PLAYER2_SLOT
from drawpicks.core.types import Destination, Slot
from drawpicks.errors import ValidationError


def is_power_of_two(value: int) -> bool:
    """Return True if value is a positive power of two."""
    return value > 0 and value & (value - 1) == 0


def next_slot(match_number: int) -> Destination:
    """Return the next-round match number and slot fed by a match.

    Match ``m`` feeds match ``ceil(m / 2)``; odd matches fill ``player1`` and
    even matches fill ``player2``.
    """
    if match_number < 1:
        raise ValidationError("Match numbers start at 1.")
    destination = (match_number + 1) // 2
    slot: Slot = PLAYER1_SLOT if match_number % 2 == 1 else PLAYER2_SLOT
    return destination, slot


def destination_for(match_count: int, match_number: int) -> Optional[Destination]:
    """Map a match of a round with ``match_count`` slots to its destination.

    Returns None for the Final, which has no successor.
    """
    if not is_power_of_two(match_count):
        raise ValidationError(f"A round cannot have {match_count} matches.")
    if not 1 <= match_number <= match_count:
        raise ValidationError(
            f"Match {match_number} is outside a round of {match_count} matches."
        )
    if match_count == 1:
        return None
    return next_slot(match_number)


def winner_seed(match: dict[str, Any]) -> Optional[int]:
    """Return the seed of the slot the winner played from."""
    winner = match.get("winnerName")
    if winner is not None and winner == match.get("player1Name"):
        return match.get("player1Seed")
    if winner is not None and winner == match.get("player2Name"):
        return match.get("player2Seed")
    return None


def generate_slug(name: str, year: int) -> str:
    """Generate a URL-friendly slug from a tournament name and year."""
    base = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return f"{base}-{year}"
