"""Data models for the picks blueprint."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, TypedDict

from drawpicks.core.constants import MATCH_FINALIZED, TBD_PLAYER, WINNING_SETS
from drawpicks.core.types import FirestoreDocument
from drawpicks.errors import ValidationError


class UserRoundPick(FirestoreDocument, total=False):
    """A user's predictions for one round."""

    userId: str
    roundId: str
    tournamentId: str
    isDraft: bool
    submittedAt: Any
    totalPoints: int
    correctWinners: int
    exactScores: int
    scoredAt: Any


class MatchPick(FirestoreDocument, total=False):
    """A single prediction, owned by a user round pick."""

    userRoundPickId: str
    userId: str
    roundId: str
    tournamentId: str
    matchId: str
    predictedWinner: str
    predictedSetsWon: Optional[int]
    predictedSetsLost: Optional[int]
    isWinnerCorrect: Optional[bool]
    isExactScore: Optional[bool]
    pointsEarned: int
    matchFinalizedAt: Any
    roundNumber: int
    matchNumber: int


def _optional_int(value: Any, label: str) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a whole number.")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{label} must be a whole number.") from e


@dataclass
class PickEntry:
    """One predicted match outcome."""

    match_id: str
    predicted_winner: str
    predicted_sets_won: Optional[int] = None
    predicted_sets_lost: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PickEntry:
        """Build an entry from a camelCase payload."""
        match_id = str(data.get("matchId") or "").strip()
        if not match_id:
            raise ValidationError("Every pick needs a matchId.")
        return cls(
            match_id=match_id,
            predicted_winner=str(data.get("predictedWinner") or "").strip(),
            predicted_sets_won=_optional_int(
                data.get("predictedSetsWon"), "predictedSetsWon"
            ),
            predicted_sets_lost=_optional_int(
                data.get("predictedSetsLost"), "predictedSetsLost"
            ),
        )

    def validate(
        self, match: dict[str, Any], tournament_format: str, is_final: bool
    ) -> None:
        """Check the prediction against its match and the set format.

        Drafts may leave the set counts empty; anything filled in must
        still be valid.
        """
        players = (match.get("player1Name"), match.get("player2Name"))
        if not self.predicted_winner or self.predicted_winner == TBD_PLAYER:
            raise ValidationError(
                f"Choose a winner for match {match.get('matchNumber')}."
            )
        if self.predicted_winner not in players:
            raise ValidationError(
                f"{self.predicted_winner} is not playing in match "
                f"{match.get('matchNumber')}."
            )

        if not is_final and self.predicted_sets_won is None and self.predicted_sets_lost is None:
            return

        required = WINNING_SETS[tournament_format]
        if self.predicted_sets_won != required:
            raise ValidationError(
                f"The winner of a {tournament_format} match wins {required} sets."
            )
        if self.predicted_sets_lost is None or not (
            0 <= self.predicted_sets_lost < self.predicted_sets_won
        ):
            raise ValidationError(
                f"Sets lost must be between 0 and {self.predicted_sets_won - 1}."
            )


@dataclass
class PickSubmission:
    """A set of predictions for one round."""

    entries: list[PickEntry] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> PickSubmission:
        """Build a submission from ``{"picks": [...]}``."""
        raw = data.get("picks")
        if raw is None:
            raw = []
        if not isinstance(raw, list):
            raise ValidationError("picks must be a list.")
        return cls(entries=[PickEntry.from_dict(p or {}) for p in raw])

    def validate(
        self,
        matches: dict[str, dict[str, Any]],
        tournament_format: str,
        is_final: bool,
    ) -> None:
        """Validate every entry against the round's matches.

        Matches that already have a result are closed: picks on them are
        dropped and a final submission only has to cover the rest.
        """
        if tournament_format not in WINNING_SETS:
            raise ValidationError(f"Unknown tournament format '{tournament_format}'.")

        open_matches = {
            m_id: m for m_id, m in matches.items() if m.get("status") != MATCH_FINALIZED
        }
        if not open_matches:
            raise ValidationError("Every match in this round has been played.")

        seen = set()
        kept = []
        for entry in self.entries:
            if entry.match_id in seen:
                raise ValidationError("Each match can only be picked once.")
            seen.add(entry.match_id)
            if entry.match_id not in matches:
                raise ValidationError("A pick refers to a match outside this round.")
            match = open_matches.get(entry.match_id)
            if match is None:
                continue
            entry.validate(match, tournament_format, is_final)
            kept.append(entry)
        self.entries = kept

        if is_final:
            missing = [
                m.get("matchNumber")
                for m_id, m in open_matches.items()
                if m_id not in seen
            ]
            if missing:
                numbers = ", ".join(str(n) for n in sorted(missing))
                raise ValidationError(f"Picks are missing for matches {numbers}.")
