"""Tests for leaderboards, standings and progression."""

from __future__ import annotations

import datetime
import unittest

from drawpicks.bracket.services import BracketService
from drawpicks.core.constants import USERS_COLLECTION
from drawpicks.errors import NotFoundError, ValidationError
from drawpicks.leaderboard.progression import ProgressionService, build_progression
from drawpicks.leaderboard.services import LeaderboardService
from drawpicks.leaderboard.utils import build_leaderboard, rank_entries
from tests.helpers import ServiceTestCase

T0 = datetime.datetime(2024, 6, 1, 12, tzinfo=datetime.timezone.utc)


def _round_pick(user_id: str, points: int, minutes: int, draft: bool = False) -> dict:
    return {
        "id": f"r1_{user_id}",
        "userId": user_id,
        "tournamentId": "t1",
        "isDraft": draft,
        "submittedAt": None if draft else T0 + datetime.timedelta(minutes=minutes),
        "totalPoints": points,
        "correctWinners": points // 10,
        "exactScores": 0,
    }


class RankingTestCase(unittest.TestCase):
    """Test case for the pure ranking functions."""

    def test_ties_go_to_the_earlier_submission(self) -> None:
        """Equal points rank by submission time, then user id."""
        entries = build_leaderboard(
            [
                _round_pick("late", 20, 30),
                _round_pick("early", 20, 5),
                _round_pick("leader", 40, 60),
            ],
            [],
        )
        self.assertEqual([e["userId"] for e in entries], ["leader", "early", "late"])
        self.assertEqual([e["rank"] for e in entries], [1, 2, 3])

    def test_user_id_breaks_full_ties(self) -> None:
        """Ranks are a strict order even for identical entries."""
        entries = rank_entries([
            {"userId": "b", "totalPoints": 5, "earliestSubmission": T0},
            {"userId": "a", "totalPoints": 5, "earliestSubmission": T0},
        ])
        self.assertEqual([(e["userId"], e["rank"]) for e in entries], [("a", 1), ("b", 2)])

    def test_drafts_are_left_out(self) -> None:
        """Draft round picks never reach a leaderboard."""
        entries = build_leaderboard(
            [_round_pick("u1", 10, 1), _round_pick("u2", 0, 0, draft=True)],
            [
                {"userId": "u2", "userRoundPickId": "r1_u2", "isWinnerCorrect": True},
                {"userId": "u1", "userRoundPickId": "r1_u1", "isWinnerCorrect": True},
            ],
            {"u1": "Alice"},
        )
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0]["displayName"], "Alice")
        self.assertEqual(entries[0]["accuracy"], 1.0)

    def test_progression_rejects_unknown_granularity(self) -> None:
        """Only match and round steps are supported."""
        with self.assertRaises(ValidationError):
            build_progression([], [], [], [], granularity="set")


class LeaderboardServiceTestCase(ServiceTestCase):
    """Test case for leaderboards built from stored picks."""

    def setUp(self) -> None:
        super().setUp()
        self.db.collection(USERS_COLLECTION).document("u1").set({"name": "Alice"})
        self.tournament_id = self.create_tournament(first_round_matches=2)
        self.round = self.activate(self.tournament_id)
        self.submit("u1", self.round["id"], self.pick_all(self.tournament_id, 1))
        self.submit(
            "u2", self.round["id"], self.pick_all(self.tournament_id, 1, "player2")
        )
        self.submit(
            "u3", self.round["id"], self.pick_all(self.tournament_id, 1), final=False
        )
        # Semi Finals are worth 18 for the winner and 27 more for the score
        first = self.get_match(self.tournament_id, 1, 1)
        self.finalize(first["id"], "Player 1", 2, 1)
        second = self.get_match(self.tournament_id, 1, 2)
        self.finalize(second["id"], "Player 3", 2, 0)

    def test_tournament_leaderboard(self) -> None:
        """Final picks are ranked by points with their accuracy."""
        board = LeaderboardService.get_tournament_leaderboard(
            self.tournament_id, db=self.db
        )
        self.assertEqual([e["userId"] for e in board], ["u1", "u2"])
        leader = board[0]
        self.assertEqual(leader["displayName"], "Alice")
        self.assertEqual(leader["totalPoints"], 63)
        self.assertEqual(leader["correctWinners"], 2)
        self.assertEqual(leader["exactScores"], 1)
        self.assertEqual(leader["accuracy"], 1.0)
        self.assertEqual(leader["exactScoreRate"], 0.5)
        self.assertEqual(board[1]["totalPoints"], 0)
        self.assertEqual(board[1]["displayName"], "u2")

        limited = LeaderboardService.get_tournament_leaderboard(
            self.tournament_id, limit=1, db=self.db
        )
        self.assertEqual(len(limited), 1)

    def test_round_leaderboard(self) -> None:
        """A round board matches the tournament board for a one-round start."""
        board = LeaderboardService.get_round_leaderboard(self.round["id"], db=self.db)
        self.assertEqual([(e["userId"], e["rank"]) for e in board], [("u1", 1), ("u2", 2)])
        with self.assertRaises(NotFoundError):
            LeaderboardService.get_round_leaderboard("missing", db=self.db)

    def test_global_leaderboard_skips_deleted_tournaments(self) -> None:
        """Points from a deleted tournament no longer count."""
        other_id = self.create_tournament(first_round_matches=2, name="Other Open")
        other_round = self.activate(other_id)
        self.submit("u3", other_round["id"], self.pick_all(other_id, 1))
        board = LeaderboardService.get_global_leaderboard(db=self.db)
        self.assertIn("u3", [e["userId"] for e in board])

        self.assertFalse(BracketService.delete_tournament(other_id, db=self.db))

        board = LeaderboardService.get_global_leaderboard(db=self.db)
        self.assertEqual([e["userId"] for e in board], ["u1", "u2"])
        self.assertEqual(board[0]["tournamentsPlayed"], 1)

    def test_user_stats(self) -> None:
        """A user's rank comes with the size of the field."""
        stats = LeaderboardService.get_user_tournament_stats(
            "u2", self.tournament_id, db=self.db
        )
        self.assertEqual(stats["rank"], 2)
        self.assertEqual(stats["totalParticipants"], 2)

        missing = LeaderboardService.get_user_tournament_stats(
            "u3", self.tournament_id, db=self.db
        )
        self.assertIsNone(missing["rank"])
        self.assertIsNone(missing["entry"])

    def test_tournament_summary(self) -> None:
        """The summary lists the podium and each round's top scorer."""
        summary = LeaderboardService.get_tournament_summary(
            self.tournament_id, db=self.db
        )
        self.assertEqual(summary["participants"], 2)
        self.assertEqual([e["userId"] for e in summary["podium"]], ["u1", "u2"])
        self.assertEqual(len(summary["roundWinners"]), 1)
        self.assertEqual(summary["roundWinners"][0]["userId"], "u1")
        self.assertEqual(summary["roundWinners"][0]["totalPoints"], 63)

    def test_progression_by_match(self) -> None:
        """Points never go down and ranks are reported at each step."""
        progression = ProgressionService.get_progression(self.tournament_id, db=self.db)

        self.assertEqual(len(progression["dataPoints"]), 2)
        lines = {s["userId"]: s for s in progression["series"]}
        self.assertEqual(lines["u1"]["points"], [45, 63])
        self.assertEqual(lines["u1"]["ranks"], [1, 1])
        self.assertEqual(lines["u1"]["displayName"], "Alice")
        self.assertEqual(lines["u2"]["points"], [0, 0])
        self.assertEqual(lines["u2"]["ranks"], [2, 2])
        for line in lines.values():
            self.assertEqual(line["points"], sorted(line["points"]))

    def test_progression_by_round(self) -> None:
        """Round granularity collapses a round's matches into one step."""
        progression = ProgressionService.get_progression(
            self.tournament_id, user_ids=["u2"], granularity="round", db=self.db
        )
        self.assertEqual(len(progression["dataPoints"]), 1)
        self.assertEqual(progression["dataPoints"][0]["roundNumber"], 1)
        self.assertEqual(progression["series"][0]["userId"], "u2")
        self.assertEqual(progression["series"][0]["ranks"], [2])


if __name__ == "__main__":
    unittest.main()
