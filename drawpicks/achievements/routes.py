"""Routes for the achievements blueprint."""

from typing import Any

from firebase_admin import firestore
from flask import g, jsonify, request

from drawpicks.auth.decorators import login_required
from drawpicks.core.constants import RECENT_UNLOCKS_LIMIT, RECENT_UNLOCKS_MAX

from . import bp
from .services import AchievementService


def _limit() -> int:
    limit = request.args.get("limit", RECENT_UNLOCKS_LIMIT, type=int)
    return max(1, min(limit, RECENT_UNLOCKS_MAX))


@bp.route("/", methods=["GET"])
@login_required
def definitions() -> Any:
    """Every achievement that can be unlocked."""
    return jsonify(
        {"success": True, "achievements": AchievementService.list_definitions()}
    )


@bp.route("/me", methods=["GET"])
@login_required
def my_achievements() -> Any:
    """The signed-in user's unlocked achievements."""
    db = firestore.client()
    awards = AchievementService.get_user_achievements(g.user["uid"], db=db)
    return jsonify({"success": True, "achievements": awards})


@bp.route("/me/summary", methods=["GET"])
@login_required
def my_summary() -> Any:
    """Unlocked counts for the signed-in user."""
    db = firestore.client()
    summary = AchievementService.get_user_summary(g.user["uid"], db=db)
    return jsonify({"success": True, **summary})


@bp.route("/users/<string:user_id>", methods=["GET"])
@login_required
def user_achievements(user_id: str) -> Any:
    """Another user's unlocked achievements."""
    db = firestore.client()
    awards = AchievementService.get_user_achievements(user_id, db=db)
    return jsonify({"success": True, "achievements": awards})


@bp.route("/recent", methods=["GET"])
@login_required
def recent_unlocks() -> Any:
    """The latest unlocks across all users."""
    db = firestore.client()
    awards = AchievementService.get_recent_unlocks(limit=_limit(), db=db)
    return jsonify({"success": True, "achievements": awards})


@bp.route("/leaderboard", methods=["GET"])
@login_required
def achievement_leaderboard() -> Any:
    """Users ranked by achievements held."""
    db = firestore.client()
    entries = AchievementService.get_leaderboard(limit=_limit(), db=db)
    return jsonify({"success": True, "leaderboard": entries})
