"""Picks blueprint."""

from flask import Blueprint

bp = Blueprint("picks", __name__, url_prefix="/picks")

from . import routes  # noqa: E402, F401
from .models import MatchPick, PickSubmission, UserRoundPick  # noqa: E402
from .services import PickService  # noqa: E402

__all__ = ["MatchPick", "PickService", "PickSubmission", "UserRoundPick", "routes"]
