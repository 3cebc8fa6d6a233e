"""Routes for the leaderboard blueprint."""

from typing import Any

from firebase_admin import firestore
from flask import current_app, g, jsonify, request

from drawpicks.auth.decorators import login_required
from drawpicks.scoring.streaks import StreakService

from . import bp
from .progression import ProgressionService
from .services import LeaderboardService


def _limit() -> int:
    """Page size from the query string, capped by the configured default."""
    default = current_app.config["LEADERBOARD_PAGE_SIZE"]
    limit = request.args.get("limit", default, type=int)
    return max(1, min(limit, default))


@bp.route("/", methods=["GET"])
@login_required
def global_leaderboard() -> Any:
    """All-time standings across tournaments."""
    db = firestore.client()
    entries = LeaderboardService.get_global_leaderboard(limit=_limit(), db=db)
    return jsonify({"success": True, "leaderboard": entries})


@bp.route("/tournaments/<string:tournament_id>", methods=["GET"])
@login_required
def tournament_leaderboard(tournament_id: str) -> Any:
    """Standings for one tournament."""
    db = firestore.client()
    entries = LeaderboardService.get_tournament_leaderboard(
        tournament_id, limit=_limit(), db=db
    )
    return jsonify({"success": True, "leaderboard": entries})


@bp.route("/rounds/<string:round_id>", methods=["GET"])
@login_required
def round_leaderboard(round_id: str) -> Any:
    """Standings for one round."""
    db = firestore.client()
    entries = LeaderboardService.get_round_leaderboard(round_id, limit=_limit(), db=db)
    return jsonify({"success": True, "leaderboard": entries})


@bp.route("/tournaments/<string:tournament_id>/me", methods=["GET"])
@login_required
def my_tournament_stats(tournament_id: str) -> Any:
    """The signed-in user's rank in a tournament."""
    db = firestore.client()
    stats = LeaderboardService.get_user_tournament_stats(
        g.user["uid"], tournament_id, db=db
    )
    return jsonify({"success": True, **stats})


@bp.route("/tournaments/<string:tournament_id>/progression", methods=["GET"])
@login_required
def tournament_progression(tournament_id: str) -> Any:
    """Cumulative points and ranks over the tournament."""
    db = firestore.client()
    user_ids = [u for u in request.args.getlist("user") if u]
    progression = ProgressionService.get_progression(
        tournament_id,
        user_ids=user_ids or None,
        granularity=request.args.get("granularity", "match"),
        top_n=current_app.config["PROGRESSION_TOP_N"],
        db=db,
    )
    return jsonify({"success": True, **progression})


@bp.route("/tournaments/<string:tournament_id>/summary", methods=["GET"])
@login_required
def tournament_summary(tournament_id: str) -> Any:
    """Podium and round winners."""
    db = firestore.client()
    summary = LeaderboardService.get_tournament_summary(tournament_id, db=db)
    return jsonify({"success": True, **summary})


@bp.route("/streaks", methods=["GET"])
@login_required
def top_streaks() -> Any:
    """Longest running correct-pick streaks."""
    db = firestore.client()
    return jsonify({"success": True, "streaks": StreakService.get_top_streaks(db=db)})


@bp.route("/streaks/me", methods=["GET"])
@login_required
def my_streak() -> Any:
    """The signed-in user's streak."""
    db = firestore.client()
    streak = StreakService.get_user_streak(g.user["uid"], db=db)
    return jsonify({"success": True, **streak})
