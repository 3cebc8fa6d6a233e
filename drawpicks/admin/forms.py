"""Forms for the admin blueprint."""

from flask_wtf import FlaskForm
from wtforms import (
    BooleanField,
    DateTimeField,
    IntegerField,
    SelectField,
    StringField,
    ValidationError,
)
from wtforms.validators import DataRequired, NumberRange, Optional

from drawpicks.core.constants import (
    DEFAULT_TOURNAMENT_FORMAT,
    FORMAT_BEST_OF_3,
    FORMAT_BEST_OF_5,
    TOURNAMENT_ACTIVE,
    TOURNAMENT_ARCHIVED,
    TOURNAMENT_DRAFT,
)

FORMAT_CHOICES = [
    (FORMAT_BEST_OF_3, "Best of 3 sets"),
    (FORMAT_BEST_OF_5, "Best of 5 sets"),
]
DATETIME_FORMATS = ["%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M:%S"]


class DrawCommitForm(FlaskForm):
    """Options sent along with a parsed draw."""

    format = SelectField(
        "Tournament Format",
        choices=FORMAT_CHOICES,
        default=DEFAULT_TOURNAMENT_FORMAT,
    )
    overwrite_existing = BooleanField("Replace an upload that has predictions")


class FinalizeMatchForm(FlaskForm):
    """Form for recording a match result."""

    winner_name = StringField("Winner", validators=[DataRequired()])
    sets_won = IntegerField("Sets Won", validators=[NumberRange(min=0)])
    sets_lost = IntegerField("Sets Lost", validators=[NumberRange(min=0)])
    final_score = StringField("Final Score", validators=[Optional()])
    is_retirement = BooleanField("Retirement")


class ActiveRoundForm(FlaskForm):
    """Form for choosing the round that takes predictions."""

    round_number = IntegerField("Round", validators=[NumberRange(min=1)])


class RoundScheduleForm(FlaskForm):
    """Form for a round's opening time and deadline."""

    opens_at = DateTimeField(
        "Opens At", format=DATETIME_FORMATS, validators=[Optional()]
    )
    deadline = DateTimeField(
        "Deadline", format=DATETIME_FORMATS, validators=[Optional()]
    )

    def validate_deadline(self, field):
        """Validate that the deadline comes after the opening time."""
        if field.data and self.opens_at.data and field.data <= self.opens_at.data:
            raise ValidationError("The deadline must be after the opening time.")


class ScoringRuleForm(FlaskForm):
    """Form for a round's points."""

    points_per_winner = IntegerField(
        "Points per Winner", validators=[NumberRange(min=0)]
    )
    points_exact_score = IntegerField(
        "Exact Score Bonus", validators=[NumberRange(min=0)]
    )


class TournamentStatusForm(FlaskForm):
    """Form for moving a tournament through its lifecycle."""

    status = SelectField(
        "Status",
        choices=[
            (TOURNAMENT_DRAFT, "Draft"),
            (TOURNAMENT_ACTIVE, "Active"),
            (TOURNAMENT_ARCHIVED, "Archived"),
        ],
        validators=[DataRequired()],
    )


class BackfillForm(FlaskForm):
    """Options for re-running advancement."""

    start_round = IntegerField(
        "Start Round", default=1, validators=[Optional(), NumberRange(min=1)]
    )
    dry_run = BooleanField("Dry Run")
