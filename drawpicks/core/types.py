"""Core data types for the drawpicks application."""

from typing import Any, Literal, Optional, Tuple, TypedDict  # noqa: UP035

Slot = Literal["player1", "player2"]
Destination = Tuple[int, Slot]  # noqa: UP006


class _FirestoreDocumentBase(TypedDict):
    id: str
    createdAt: Any


class FirestoreDocument(_FirestoreDocumentBase, total=False):
    """Fields every stored document carries."""

    updatedAt: Any


class StreakState(TypedDict):
    """A user's streak as folded from their judged picks."""

    currentStreak: int
    longestStreak: int
    lastMatchId: Optional[str]
