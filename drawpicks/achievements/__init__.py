"""Achievements blueprint."""

from flask import Blueprint

bp = Blueprint("achievements", __name__, url_prefix="/achievements")

from . import routes  # noqa: E402, F401
from .services import AchievementService  # noqa: E402

__all__ = ["AchievementService", "routes"]
