"""Tests for correct-pick streaks."""

from __future__ import annotations

import datetime
import unittest

from drawpicks.core.constants import USER_STREAKS_COLLECTION
from drawpicks.scoring.services import ScoringService
from drawpicks.scoring.streaks import StreakService, fold_streak
from tests.helpers import ServiceTestCase

T0 = datetime.datetime(2024, 6, 1, 12, tzinfo=datetime.timezone.utc)


def _judged(match_id: str, correct: bool, minutes: int) -> dict:
    return {
        "matchId": match_id,
        "isWinnerCorrect": correct,
        "matchFinalizedAt": T0 + datetime.timedelta(minutes=minutes),
        "roundNumber": 1,
        "matchNumber": minutes,
    }


class FoldStreakTestCase(unittest.TestCase):
    """Test case for the pure streak fold."""

    def test_reset_keeps_longest(self) -> None:
        """Four correct then a miss: current 0, longest 4."""
        picks = [_judged(f"m{i}", True, i) for i in range(1, 5)]
        picks.append(_judged("m5", False, 5))
        self.assertEqual(
            fold_streak(picks),
            {"currentStreak": 0, "longestStreak": 4, "lastMatchId": "m5"},
        )

    def test_order_follows_finalize_time(self) -> None:
        """Picks are replayed in finalize order, not list order."""
        picks = [_judged("late", True, 10), _judged("early", False, 1)]
        state = fold_streak(picks)
        self.assertEqual(state["currentStreak"], 1)
        self.assertEqual(state["lastMatchId"], "late")

    def test_unjudged_picks_are_ignored(self) -> None:
        """Unscored and retired picks do not touch the streak."""
        picks = [
            _judged("m1", True, 1),
            {"matchId": "m2", "isWinnerCorrect": None, "matchNumber": 2},
            _judged("m3", True, 3),
        ]
        self.assertEqual(fold_streak(picks)["currentStreak"], 2)
        self.assertEqual(fold_streak([])["longestStreak"], 0)


class StreakServiceTestCase(ServiceTestCase):
    """Test case for streak updates driven by match results."""

    def setUp(self) -> None:
        super().setUp()
        self.tournament_id = self.create_tournament(first_round_matches=8)
        self.round = self.activate(self.tournament_id)
        # u1 backs every top-half player
        self.submit("u1", self.round["id"], self.pick_all(self.tournament_id, 1))

    def test_four_correct_then_a_miss(self) -> None:
        """The streak resets on a miss and the longest run is kept."""
        for number in range(1, 5):
            match = self.get_match(self.tournament_id, 1, number)
            self.finalize(match["id"], match["player1Name"])
        streak = StreakService.get_user_streak("u1", db=self.db)
        self.assertEqual((streak["currentStreak"], streak["longestStreak"]), (4, 4))

        match = self.get_match(self.tournament_id, 1, 5)
        self.finalize(match["id"], match["player2Name"])
        streak = StreakService.get_user_streak("u1", db=self.db)
        self.assertEqual((streak["currentStreak"], streak["longestStreak"]), (0, 4))

    def test_replay_is_a_no_op(self) -> None:
        """Re-scoring the last match leaves the streak as it was."""
        match = self.get_match(self.tournament_id, 1, 1)
        self.finalize(match["id"], match["player1Name"])
        before = self.db.collection(USER_STREAKS_COLLECTION).document("u1").get().to_dict()

        ScoringService.score_match(match["id"], db=self.db)

        after = self.db.collection(USER_STREAKS_COLLECTION).document("u1").get().to_dict()
        self.assertEqual(after, before)
        self.assertEqual(after["lastMatchId"], match["id"])

    def test_rebuild_from_source(self) -> None:
        """A damaged streak is rebuilt from the scored picks."""
        for number in range(1, 4):
            match = self.get_match(self.tournament_id, 1, number)
            self.finalize(match["id"], match["player1Name"])
        self.db.collection(USER_STREAKS_COLLECTION).document("u1").set(
            {"currentStreak": 99, "longestStreak": 99, "lastMatchId": None}
        )

        state = StreakService.rebuild_user_streak("u1", db=self.db)

        self.assertEqual((state["currentStreak"], state["longestStreak"]), (3, 3))

    def test_retirement_leaves_streak_alone(self) -> None:
        """Retired matches neither extend nor break a streak."""
        match = self.get_match(self.tournament_id, 1, 1)
        self.finalize(match["id"], match["player1Name"])
        match = self.get_match(self.tournament_id, 1, 2)
        self.finalize(match["id"], match["player2Name"], 1, 0, is_retirement=True)

        streak = StreakService.get_user_streak("u1", db=self.db)
        self.assertEqual(streak["currentStreak"], 1)

    def test_top_streaks(self) -> None:
        """Only running streaks are listed, longest first."""
        self.submit("u2", self.round["id"], self.pick_all(self.tournament_id, 1, "player2"))
        for number in (1, 2):
            match = self.get_match(self.tournament_id, 1, number)
            self.finalize(match["id"], match["player1Name"])

        top = StreakService.get_top_streaks(db=self.db)
        self.assertEqual([s["userId"] for s in top], ["u1"])
        self.assertEqual(top[0]["currentStreak"], 2)
        self.assertEqual(
            StreakService.get_user_streak("nobody", db=self.db)["currentStreak"], 0
        )


if __name__ == "__main__":
    unittest.main()
