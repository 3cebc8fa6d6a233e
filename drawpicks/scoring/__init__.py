"""Scoring of predictions and streak tracking."""

from .services import ScoringService
from .streaks import StreakService

__all__ = ["ScoringService", "StreakService"]
