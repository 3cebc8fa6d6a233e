"""Admin routes for the application."""

import datetime

from firebase_admin import firestore
from flask import current_app, g, jsonify, request

from drawpicks.auth.decorators import login_required
from drawpicks.bracket.advancement import AdvancementService
from drawpicks.bracket.models import MatchResultSubmission, ParsedDraw
from drawpicks.bracket.services import BracketService
from drawpicks.errors import ValidationError
from drawpicks.scoring.services import ScoringService

from . import bp
from .forms import (
    ActiveRoundForm,
    BackfillForm,
    DrawCommitForm,
    FinalizeMatchForm,
    RoundScheduleForm,
    ScoringRuleForm,
    TournamentStatusForm,
)


def _require_valid(form):
    """Raise ValidationError with the form's first error message."""
    if form.validate_on_submit():
        return form
    messages = [
        f"{getattr(form, name).label.text}: {errors[0]}"
        for name, errors in form.errors.items()
        if errors
    ]
    raise ValidationError("; ".join(messages) or "Invalid request.")


def _as_utc(value):
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


@bp.route("/draws", methods=["POST"])
@login_required(admin_required=True)
def commit_draw():
    """Store a parsed draw as a new tournament."""
    form = _require_valid(DrawCommitForm())
    payload = request.get_json(silent=True) or {}
    draw = ParsedDraw.from_dict(payload.get("draw") or {})
    tournament_id = BracketService.commit_draw(
        draw,
        uploaded_by=g.user["uid"],
        tournament_format=form.format.data,
        overwrite_existing=form.overwrite_existing.data,
        db=firestore.client(),
    )
    current_app.logger.info(f"Draw committed by {g.user['uid']}: {tournament_id}")
    return (
        jsonify({
            "success": True,
            "message": f"{draw.tournament_name} {draw.year} created.",
            "tournamentId": tournament_id,
        }),
        201,
    )


@bp.route("/matches/<string:match_id>/finalize", methods=["POST"])
@login_required(admin_required=True)
def finalize_match(match_id):
    """Record a match result and score everyone's picks."""
    form = _require_valid(FinalizeMatchForm())
    result = MatchResultSubmission(
        winner_name=form.winner_name.data.strip(),
        sets_won=form.sets_won.data,
        sets_lost=form.sets_lost.data,
        final_score=form.final_score.data or None,
        is_retirement=form.is_retirement.data,
    )
    summary = BracketService.finalize_match(
        match_id, result, finalized_by=g.user["uid"], db=firestore.client()
    )
    return jsonify({"success": True, "message": "Match finalized.", **summary})


@bp.route("/tournaments/<string:tournament_id>/active-round", methods=["POST"])
@login_required(admin_required=True)
def set_active_round(tournament_id):
    """Open a round for predictions."""
    form = _require_valid(ActiveRoundForm())
    round_data = BracketService.set_active_round(
        tournament_id, form.round_number.data, db=firestore.client()
    )
    return jsonify({
        "success": True,
        "message": f"{round_data.get('name')} is now active.",
        "round": round_data,
    })


@bp.route("/tournaments/<string:tournament_id>/status", methods=["POST"])
@login_required(admin_required=True)
def update_status(tournament_id):
    """Move a tournament to a new status."""
    form = _require_valid(TournamentStatusForm())
    BracketService.update_status(tournament_id, form.status.data, db=firestore.client())
    return jsonify({"success": True, "message": f"Tournament is now {form.status.data}."})


@bp.route("/rounds/<string:round_id>/close", methods=["POST"])
@login_required(admin_required=True)
def close_submissions(round_id):
    """Stop taking predictions for a round."""
    BracketService.close_submissions(round_id, g.user["uid"], db=firestore.client())
    return jsonify({"success": True, "message": "Submissions closed."})


@bp.route("/rounds/<string:round_id>/reopen", methods=["POST"])
@login_required(admin_required=True)
def reopen_submissions(round_id):
    """Take predictions for a round again."""
    BracketService.reopen_submissions(round_id, db=firestore.client())
    return jsonify({"success": True, "message": "Submissions reopened."})


@bp.route("/rounds/<string:round_id>/schedule", methods=["POST"])
@login_required(admin_required=True)
def set_round_schedule(round_id):
    """Set when a round opens and its deadline."""
    form = _require_valid(RoundScheduleForm())
    BracketService.set_round_schedule(
        round_id,
        _as_utc(form.opens_at.data),
        _as_utc(form.deadline.data),
        db=firestore.client(),
    )
    return jsonify({"success": True, "message": "Schedule updated."})


@bp.route("/rounds/<string:round_id>/scoring-rule", methods=["POST"])
@login_required(admin_required=True)
def update_scoring_rule(round_id):
    """Change the points a round is worth."""
    form = _require_valid(ScoringRuleForm())
    rule = BracketService.update_scoring_rule(
        round_id,
        form.points_per_winner.data,
        form.points_exact_score.data,
        db=firestore.client(),
    )
    return jsonify({
        "success": True,
        "message": "Scoring rule updated. Recalculate the round to apply it.",
        "scoringRule": rule,
    })


@bp.route("/rounds/<string:round_id>/recalculate", methods=["POST"])
@login_required(admin_required=True)
def recalculate_round(round_id):
    """Re-score a round's finalized matches."""
    summary = ScoringService.recalculate_round_scores(round_id, db=firestore.client())
    return jsonify({"success": True, **summary})


@bp.route("/tournaments/<string:tournament_id>/recalculate", methods=["POST"])
@login_required(admin_required=True)
def recalculate_tournament(tournament_id):
    """Re-score every finalized match of a tournament."""
    summary = ScoringService.recalculate_tournament_scores(
        tournament_id, db=firestore.client()
    )
    return jsonify({"success": True, **summary})


@bp.route("/tournaments/<string:tournament_id>/backfill", methods=["POST"])
@login_required(admin_required=True)
def backfill_advancement(tournament_id):
    """Re-run winner advancement round by round."""
    form = _require_valid(BackfillForm())
    rounds = AdvancementService.backfill_tournament(
        tournament_id,
        start_round=form.start_round.data or 1,
        dry_run=form.dry_run.data,
        db=firestore.client(),
    )
    return jsonify({"success": True, "dryRun": form.dry_run.data, "rounds": rounds})


@bp.route("/tournaments/<string:tournament_id>", methods=["DELETE"])
@login_required(admin_required=True)
def delete_tournament(tournament_id):
    """Delete a tournament, keeping it on record if anyone made picks."""
    hard_deleted = BracketService.delete_tournament(tournament_id, db=firestore.client())
    message = "Tournament deleted." if hard_deleted else "Tournament archived from view."
    return jsonify({"success": True, "message": message, "hardDeleted": hard_deleted})
