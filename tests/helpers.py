"""Shared fixtures for service tests."""

import unittest
from typing import Any, Optional
from unittest.mock import patch

from drawpicks.bracket.models import MatchResultSubmission, ParsedDraw
from drawpicks.bracket.services import BracketService
from drawpicks.core.constants import (
    MATCHES_COLLECTION,
    ROUNDS_COLLECTION,
    TBD_PLAYER,
)
from drawpicks.core.firestore_utils import where_equal
from drawpicks.picks.models import PickSubmission
from drawpicks.picks.services import PickService
from tests.conftest import make_mock_db

ROUND_NAMES = {
    1: "Final",
    2: "Semi Finals",
    4: "Quarter Finals",
    8: "Round of 16",
    16: "Round of 32",
    32: "Round of 64",
    64: "Round of 128",
    128: "Round of 256",
    256: "Round of 512",
}
ADMIN_ID = "admin1"


def draw_payload(
    name: str = "Test Open", year: int = 2024, first_round_matches: int = 4
) -> dict[str, Any]:
    """A complete draw payload; the top half of each first-round match is seeded."""
    rounds = []
    count = first_round_matches
    number = 1
    while count >= 1:
        matches = []
        for m in range(1, count + 1):
            match = {"matchNumber": m}
            if number == 1:
                match.update({
                    "player1Name": f"Player {2 * m - 1}",
                    "player1Seed": m,
                    "player2Name": f"Player {2 * m}",
                    "player2Seed": None,
                })
            matches.append(match)
        rounds.append({"roundNumber": number, "name": ROUND_NAMES[count], "matches": matches})
        count //= 2
        number += 1
    return {"tournamentName": name, "year": year, "rounds": rounds}


class ServiceTestCase(unittest.TestCase):
    """Base class wiring the services to an in-memory Firestore."""

    def setUp(self) -> None:
        """Create the mock database and run transactions inline."""
        self.db = make_mock_db()
        patcher = patch(
            "firebase_admin.firestore.transactional", side_effect=lambda f: f
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    def create_tournament(
        self,
        first_round_matches: int = 4,
        tournament_format: str = "bo3",
        name: str = "Test Open",
    ) -> str:
        """Commit a draw and return the tournament id."""
        draw = ParsedDraw.from_dict(
            draw_payload(name=name, first_round_matches=first_round_matches)
        )
        return BracketService.commit_draw(
            draw, ADMIN_ID, tournament_format=tournament_format, db=self.db
        )

    def get_round(self, tournament_id: str, round_number: int) -> dict[str, Any]:
        rounds = where_equal(
            self.db,
            ROUNDS_COLLECTION,
            tournamentId=tournament_id,
            roundNumber=round_number,
        )
        return rounds[0]

    def get_match(
        self, tournament_id: str, round_number: int, match_number: int
    ) -> dict[str, Any]:
        round_data = self.get_round(tournament_id, round_number)
        matches = where_equal(
            self.db,
            MATCHES_COLLECTION,
            roundId=round_data["id"],
            matchNumber=match_number,
        )
        return matches[0]

    def set_players(
        self,
        match_id: str,
        player1: str,
        player2: str,
        seeds: tuple[Optional[int], Optional[int]] = (None, None),
    ) -> None:
        self.db.collection(MATCHES_COLLECTION).document(match_id).update({
            "player1Name": player1,
            "player1Seed": seeds[0],
            "player2Name": player2,
            "player2Seed": seeds[1],
        })

    def activate(self, tournament_id: str, round_number: int = 1) -> dict[str, Any]:
        return BracketService.set_active_round(tournament_id, round_number, db=self.db)

    def finalize(
        self,
        match_id: str,
        winner: str,
        sets_won: int = 2,
        sets_lost: int = 0,
        is_retirement: bool = False,
    ) -> dict[str, Any]:
        result = MatchResultSubmission(
            winner_name=winner,
            sets_won=sets_won,
            sets_lost=sets_lost,
            final_score="6-4 6-4",
            is_retirement=is_retirement,
        )
        return BracketService.finalize_match(match_id, result, ADMIN_ID, db=self.db)

    def submit(
        self,
        user_id: str,
        round_id: str,
        picks: list[dict[str, Any]],
        final: bool = True,
    ) -> dict[str, Any]:
        submission = PickSubmission.from_payload({"picks": picks})
        if final:
            return PickService.submit_final(user_id, round_id, submission, db=self.db)
        return PickService.save_draft(user_id, round_id, submission, db=self.db)

    def pick_all(
        self,
        tournament_id: str,
        round_number: int,
        choose: str = "player1",
        sets_lost: int = 1,
    ) -> list[dict[str, Any]]:
        """Predict the same slot to win every match of a round."""
        round_data = self.get_round(tournament_id, round_number)
        picks = []
        for match in where_equal(self.db, MATCHES_COLLECTION, roundId=round_data["id"]):
            winner = match[f"{choose}Name"]
            self.assertNotEqual(winner, TBD_PLAYER)
            picks.append({
                "matchId": match["id"],
                "predictedWinner": winner,
                "predictedSetsWon": 2,
                "predictedSetsLost": sets_lost,
            })
        return picks
