"""Data models for the bracket blueprint."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, TypedDict

from drawpicks.core.constants import TBD_PLAYER, WINNING_SETS
from drawpicks.core.types import FirestoreDocument
from drawpicks.errors import IntegrityError, StateConflictError, ValidationError

from .utils import is_power_of_two


class ScoringRule(TypedDict):
    """Points awarded for a prediction in a round."""

    pointsPerWinner: int
    pointsExactScore: int


class Tournament(FirestoreDocument, total=False):
    """A tournament document in Firestore."""

    name: str
    slug: str
    year: int
    format: str
    status: str
    currentRoundNumber: Optional[int]
    uploadedBy: str
    deletedAt: Any
    closedAt: Any


class Round(FirestoreDocument, total=False):
    """A round document in Firestore."""

    tournamentId: str
    roundNumber: int
    name: str
    matchCount: int
    isActive: bool
    isFinalized: bool
    opensAt: Any
    deadline: Any
    submissionsClosedAt: Any
    submissionsClosedBy: Optional[str]
    scoringRule: ScoringRule


class Match(FirestoreDocument, total=False):
    """A match document in Firestore."""

    tournamentId: str
    roundId: str
    roundNumber: int
    matchNumber: int
    player1Name: str
    player1Seed: Optional[int]
    player2Name: str
    player2Seed: Optional[int]
    status: str
    winnerName: Optional[str]
    finalScore: Optional[str]
    setsWon: Optional[int]
    setsLost: Optional[int]
    isRetirement: bool
    finalizedAt: Any
    finalizedBy: Optional[str]
    deletedAt: Any


def _clean_name(value: Any) -> str:
    name = str(value or "").strip()
    return name or TBD_PLAYER


def _optional_int(value: Any, label: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{label} must be an integer.") from e


@dataclass
class ParsedMatch:
    """One match slot as handed over by the draw parser."""

    match_number: int
    player1_name: str = TBD_PLAYER
    player2_name: str = TBD_PLAYER
    player1_seed: Optional[int] = None
    player2_seed: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ParsedMatch:
        """Build a parsed match from a camelCase payload."""
        match_number = _optional_int(data.get("matchNumber"), "matchNumber")
        if match_number is None:
            raise ValidationError("Every match needs a matchNumber.")
        return cls(
            match_number=match_number,
            player1_name=_clean_name(data.get("player1Name")),
            player2_name=_clean_name(data.get("player2Name")),
            player1_seed=_optional_int(data.get("player1Seed"), "player1Seed"),
            player2_seed=_optional_int(data.get("player2Seed"), "player2Seed"),
        )


@dataclass
class ParsedRound:
    """A round of a parsed draw."""

    round_number: int
    name: str
    matches: list[ParsedMatch] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ParsedRound:
        """Build a parsed round from a camelCase payload."""
        round_number = _optional_int(data.get("roundNumber"), "roundNumber")
        if round_number is None:
            raise ValidationError("Every round needs a roundNumber.")
        return cls(
            round_number=round_number,
            name=str(data.get("name") or f"Round {round_number}").strip(),
            matches=[ParsedMatch.from_dict(m) for m in data.get("matches") or []],
        )


@dataclass
class ParsedDraw:
    """The bracket structure produced by the external draw parser."""

    tournament_name: str
    year: int
    rounds: list[ParsedRound] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ParsedDraw:
        """Build a parsed draw from a camelCase payload."""
        year = _optional_int(data.get("year"), "year")
        if year is None:
            raise ValidationError("The draw needs a year.")
        return cls(
            tournament_name=str(data.get("tournamentName") or "").strip(),
            year=year,
            rounds=[ParsedRound.from_dict(r) for r in data.get("rounds") or []],
        )

    def validate(self) -> None:
        """Check that the draw forms a complete single-elimination bracket."""
        errors = []
        if not self.tournament_name:
            errors.append("Tournament name could not be extracted")
        if not self.rounds:
            errors.append("No rounds found in the draw")

        ordered = sorted(self.rounds, key=lambda r: r.round_number)
        expected_numbers = list(range(1, len(ordered) + 1))
        if [r.round_number for r in ordered] != expected_numbers:
            errors.append("Round numbers must run from 1 without gaps")

        previous_count = None
        for parsed_round in ordered:
            count = len(parsed_round.matches)
            if count == 0:
                errors.append(f"Round {parsed_round.round_number} has no matches")
                continue
            if not is_power_of_two(count):
                errors.append(
                    f"Round {parsed_round.round_number} has {count} matches, "
                    "which is not a power of two"
                )
            if previous_count is not None and count * 2 != previous_count:
                errors.append(
                    f"Round {parsed_round.round_number} must have half the "
                    f"matches of the round before it ({previous_count})"
                )
            numbers = sorted(m.match_number for m in parsed_round.matches)
            if numbers != list(range(1, count + 1)):
                errors.append(
                    f"Round {parsed_round.round_number} match numbers must run "
                    f"from 1 to {count}"
                )
            previous_count = count

        if ordered and previous_count is not None and previous_count != 1:
            errors.append("The last round must be a single Final match")

        if errors:
            raise ValidationError(f"Invalid draw: {', '.join(errors)}.")


@dataclass
class MatchResultSubmission:
    """An admin's result for a match."""

    winner_name: str
    sets_won: int
    sets_lost: int
    final_score: Optional[str] = None
    is_retirement: bool = False

    def validate(self, match: dict[str, Any], tournament_format: str) -> None:
        """Check the result against the match players and the set format."""
        players = (match.get("player1Name"), match.get("player2Name"))
        if TBD_PLAYER in players or not all(players):
            raise StateConflictError("Both players must be known before finalizing.")
        if self.winner_name not in players:
            raise ValidationError("Winner must be one of the match players.")

        required = WINNING_SETS.get(tournament_format)
        if required is None:
            raise IntegrityError(f"Unknown tournament format '{tournament_format}'.")

        if self.is_retirement:
            # A retired match may end before the winner reaches the full count.
            if not 0 <= self.sets_won <= required:
                raise IntegrityError(
                    f"Sets won must be between 0 and {required} for a retirement."
                )
            if not 0 <= self.sets_lost < required:
                raise IntegrityError(
                    f"Sets lost must be between 0 and {required - 1}."
                )
            return

        if self.sets_won != required:
            raise IntegrityError(
                f"The winner of a {tournament_format} match wins exactly "
                f"{required} sets."
            )
        if not 0 <= self.sets_lost < self.sets_won:
            raise IntegrityError(
                f"Sets lost must be between 0 and {self.sets_won - 1}."
            )
