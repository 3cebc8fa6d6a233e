"""Routes for the bracket blueprint."""

from __future__ import annotations

from typing import Any

from firebase_admin import firestore
from flask import jsonify, request

from drawpicks.auth.decorators import login_required

from . import bp
from .services import BracketService


@bp.route("/", methods=["GET"])
@login_required
def list_tournaments() -> Any:
    """List tournaments, optionally filtered by status."""
    db = firestore.client()
    tournaments = BracketService.list_tournaments(request.args.get("status"), db=db)
    return jsonify({"success": True, "tournaments": tournaments})


@bp.route("/upcoming", methods=["GET"])
@login_required
def upcoming_deadlines() -> Any:
    """Rounds still taking predictions, soonest deadline first."""
    db = firestore.client()
    return jsonify({
        "success": True,
        "rounds": BracketService.get_upcoming_deadlines(db=db),
    })


@bp.route("/slug/<string:slug>", methods=["GET"])
@login_required
def view_tournament_by_slug(slug: str) -> Any:
    """Show a tournament's bracket by its slug."""
    db = firestore.client()
    tournament = BracketService.get_tournament_by_slug(slug, db=db)
    return jsonify({
        "success": True,
        "tournament": BracketService.get_bracket(tournament["id"], db=db),
    })


@bp.route("/<string:tournament_id>", methods=["GET"])
@login_required
def view_tournament(tournament_id: str) -> Any:
    """Show a tournament's bracket."""
    db = firestore.client()
    return jsonify({
        "success": True,
        "tournament": BracketService.get_bracket(tournament_id, db=db),
    })


@bp.route("/<string:tournament_id>/schedule", methods=["GET"])
@login_required
def tournament_schedule(tournament_id: str) -> Any:
    """Show when each round opens and closes."""
    db = firestore.client()
    return jsonify({
        "success": True,
        "schedule": BracketService.get_tournament_schedule(tournament_id, db=db),
    })
