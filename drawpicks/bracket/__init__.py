"""Bracket blueprint."""

from flask import Blueprint

bp = Blueprint("bracket", __name__, url_prefix="/tournaments")

from . import routes  # noqa: E402, F401
from .advancement import AdvancementService  # noqa: E402
from .models import Match, Round, Tournament  # noqa: E402
from .services import BracketService  # noqa: E402

__all__ = [
    "AdvancementService",
    "BracketService",
    "Match",
    "Round",
    "Tournament",
    "routes",
]
