"""Routes for the picks blueprint."""

from typing import Any

from firebase_admin import firestore
from flask import g, jsonify, request

from drawpicks.auth.decorators import login_required

from . import bp
from .models import PickSubmission
from .services import PickService


@bp.route("/rounds/<string:round_id>", methods=["GET", "POST"])
@login_required
def my_round_picks(round_id: str) -> Any:
    """Show the user's picks for a round, or save them as a draft."""
    db = firestore.client()
    if request.method == "POST":
        submission = PickSubmission.from_payload(request.get_json(silent=True) or {})
        round_pick = PickService.save_draft(g.user["uid"], round_id, submission, db=db)
        return jsonify({
            "success": True,
            "message": "Draft saved.",
            "roundPick": round_pick,
        })

    round_pick = PickService.get_user_round_picks(g.user["uid"], round_id, db=db)
    return jsonify({"success": True, "roundPick": round_pick})


@bp.route("/rounds/<string:round_id>/submit", methods=["POST"])
@login_required
def submit_round_picks(round_id: str) -> Any:
    """Lock in the user's picks for a round."""
    db = firestore.client()
    submission = PickSubmission.from_payload(request.get_json(silent=True) or {})
    round_pick = PickService.submit_final(g.user["uid"], round_id, submission, db=db)
    return (
        jsonify({
            "success": True,
            "message": "Your picks are locked in. Good luck!",
            "roundPick": round_pick,
        }),
        201,
    )


@bp.route("/rounds/<string:round_id>/users/<string:user_id>", methods=["GET"])
@login_required
def user_round_picks(round_id: str, user_id: str) -> Any:
    """Show another player's final picks for a round."""
    db = firestore.client()
    round_pick = PickService.get_other_user_round_picks(
        g.user["uid"], user_id, round_id, db=db
    )
    return jsonify({"success": True, "roundPick": round_pick})


@bp.route("/tournaments/<string:tournament_id>/compare/<string:user_id>", methods=["GET"])
@login_required
def compare_picks(tournament_id: str, user_id: str) -> Any:
    """Compare picks with another player, round by round."""
    db = firestore.client()
    rounds = PickService.compare_picks(g.user["uid"], user_id, tournament_id, db=db)
    return jsonify({"success": True, "rounds": rounds})
