"""Tests for draw commit and tournament administration."""

from __future__ import annotations

import datetime
import unittest

from drawpicks.bracket.models import ParsedDraw
from drawpicks.bracket.services import BracketService
from drawpicks.core.constants import (
    FIRESTORE_BATCH_LIMIT,
    MATCHES_COLLECTION,
    ROUNDS_COLLECTION,
    TOURNAMENTS_COLLECTION,
)
from drawpicks.core.firestore_utils import doc_to_dict, where_equal
from drawpicks.errors import NotFoundError, StateConflictError, ValidationError
from tests.helpers import ADMIN_ID, ServiceTestCase, draw_payload


class ParsedDrawTestCase(unittest.TestCase):
    """Test case for draw shape validation."""

    def test_valid_draw(self) -> None:
        """A halving bracket ending in a single Final passes."""
        ParsedDraw.from_dict(draw_payload(first_round_matches=8)).validate()

    def test_round_must_halve(self) -> None:
        """A round that does not halve its predecessor is rejected."""
        payload = draw_payload(first_round_matches=4)
        payload["rounds"][1]["matches"].append({"matchNumber": 3})
        payload["rounds"][1]["matches"].append({"matchNumber": 4})
        with self.assertRaises(ValidationError) as ctx:
            ParsedDraw.from_dict(payload).validate()
        self.assertIn("half", ctx.exception.message)

    def test_round_numbers_must_be_contiguous(self) -> None:
        """Round numbers start at 1 without gaps."""
        payload = draw_payload(first_round_matches=2)
        payload["rounds"][1]["roundNumber"] = 3
        with self.assertRaises(ValidationError):
            ParsedDraw.from_dict(payload).validate()

    def test_missing_final(self) -> None:
        """The last round must be a single match."""
        payload = draw_payload(first_round_matches=4)
        payload["rounds"] = payload["rounds"][:2]
        with self.assertRaises(ValidationError):
            ParsedDraw.from_dict(payload).validate()

    def test_empty_draw(self) -> None:
        """A draw without a name or rounds is rejected."""
        with self.assertRaises(ValidationError) as ctx:
            ParsedDraw.from_dict({"year": 2024}).validate()
        self.assertIn("No rounds", ctx.exception.message)

    def test_empty_names_become_tbd(self) -> None:
        """Missing player names are stored as TBD."""
        draw = ParsedDraw.from_dict(draw_payload(first_round_matches=2))
        final = draw.rounds[-1].matches[0]
        self.assertEqual(final.player1_name, "TBD")
        self.assertEqual(final.player2_name, "TBD")


class BracketServiceTestCase(ServiceTestCase):
    """Test case for the bracket service."""

    def test_commit_draw_creates_bracket(self) -> None:
        """Committing a draw stores the tournament, rounds and matches."""
        tournament_id = self.create_tournament(first_round_matches=4)

        tournament = BracketService.get_tournament(tournament_id, db=self.db)
        self.assertEqual(tournament["slug"], "test-open-2024")
        self.assertEqual(tournament["status"], "draft")
        self.assertEqual(tournament["uploadedBy"], ADMIN_ID)

        bracket = BracketService.get_bracket(tournament_id, db=self.db)
        self.assertEqual([r["matchCount"] for r in bracket["rounds"]], [4, 2, 1])
        self.assertEqual(
            bracket["rounds"][0]["scoringRule"],
            {"pointsPerWinner": 12, "pointsExactScore": 18},
        )
        self.assertEqual(
            bracket["rounds"][2]["scoringRule"],
            {"pointsPerWinner": 30, "pointsExactScore": 45},
        )
        first = bracket["rounds"][0]["matches"][0]
        self.assertEqual(first["player1Name"], "Player 1")
        self.assertEqual(first["player1Seed"], 1)
        self.assertTrue(first["isReady"])
        final = bracket["rounds"][2]["matches"][0]
        self.assertEqual(final["player1Name"], "TBD")
        self.assertFalse(final["isReady"])

    def test_large_draw_commits_in_chunks(self) -> None:
        """Big draws are split across batches under the commit limit."""
        self.assertLess(FIRESTORE_BATCH_LIMIT, 500)
        tournament_id = self.create_tournament(first_round_matches=256)

        # 511 matches, 9 rounds and the tournament itself
        self.assertEqual(self.db.batch.call_count, 2)
        rounds = BracketService.get_rounds(tournament_id, db=self.db)
        self.assertEqual(sum(r["matchCount"] for r in rounds), 511)

    def test_reupload_soft_deletes_previous(self) -> None:
        """Re-uploading the same tournament replaces an untouched upload."""
        first_id = self.create_tournament()
        second_id = self.create_tournament()

        old = doc_to_dict(
            self.db.collection(TOURNAMENTS_COLLECTION).document(first_id).get()
        )
        self.assertIsNotNone(old["deletedAt"])
        self.assertEqual(
            BracketService.get_tournament_by_slug("test-open-2024", db=self.db)["id"],
            second_id,
        )

    def test_reupload_blocked_by_finalized_match(self) -> None:
        """A draw with results cannot be replaced."""
        tournament_id = self.create_tournament()
        match = self.get_match(tournament_id, 1, 1)
        self.finalize(match["id"], "Player 1")

        with self.assertRaises(StateConflictError):
            self.create_tournament()

    def test_reupload_with_picks_needs_overwrite(self) -> None:
        """Predictions block a re-upload unless overwrite is requested."""
        tournament_id = self.create_tournament()
        round_data = self.activate(tournament_id)
        self.submit("u1", round_data["id"], self.pick_all(tournament_id, 1), final=False)

        with self.assertRaises(StateConflictError):
            self.create_tournament()

        draw = ParsedDraw.from_dict(draw_payload())
        new_id = BracketService.commit_draw(
            draw, ADMIN_ID, overwrite_existing=True, db=self.db
        )
        self.assertNotEqual(new_id, tournament_id)

    def test_unknown_format_rejected(self) -> None:
        """Only best-of-3 and best-of-5 are supported."""
        with self.assertRaises(ValidationError):
            self.create_tournament(tournament_format="bo7")

    def test_set_active_round_is_exclusive(self) -> None:
        """Activating a round deactivates the others."""
        tournament_id = self.create_tournament()
        self.activate(tournament_id, 1)
        self.activate(tournament_id, 2)

        rounds = BracketService.get_rounds(tournament_id, db=self.db)
        self.assertEqual([r["isActive"] for r in rounds], [False, True, False])
        tournament = BracketService.get_tournament(tournament_id, db=self.db)
        self.assertEqual(tournament["currentRoundNumber"], 2)

        with self.assertRaises(NotFoundError):
            self.activate(tournament_id, 9)

    def test_status_transitions(self) -> None:
        """draft -> active -> archived, and archived is terminal."""
        tournament_id = self.create_tournament()
        BracketService.update_status(tournament_id, "active", db=self.db)
        with self.assertRaises(StateConflictError):
            BracketService.update_status(tournament_id, "draft", db=self.db)
        BracketService.update_status(tournament_id, "archived", db=self.db)

        tournament = BracketService.get_tournament(tournament_id, db=self.db)
        self.assertEqual(tournament["status"], "archived")
        self.assertIsNotNone(tournament["closedAt"])
        with self.assertRaises(StateConflictError):
            BracketService.update_status(tournament_id, "active", db=self.db)
        with self.assertRaises(StateConflictError):
            self.activate(tournament_id, 1)

    def test_close_and_reopen_submissions(self) -> None:
        """Closing stamps the round; reopening clears it."""
        tournament_id = self.create_tournament()
        round_id = self.get_round(tournament_id, 1)["id"]

        BracketService.close_submissions(round_id, ADMIN_ID, db=self.db)
        round_data = BracketService.get_round(round_id, db=self.db)
        self.assertIsNotNone(round_data["submissionsClosedAt"])
        self.assertEqual(round_data["submissionsClosedBy"], ADMIN_ID)
        with self.assertRaises(StateConflictError):
            BracketService.close_submissions(round_id, ADMIN_ID, db=self.db)

        BracketService.reopen_submissions(round_id, db=self.db)
        self.assertIsNone(
            BracketService.get_round(round_id, db=self.db)["submissionsClosedAt"]
        )

    def test_round_schedule(self) -> None:
        """The deadline must come after the opening time."""
        tournament_id = self.create_tournament()
        round_id = self.get_round(tournament_id, 1)["id"]
        opens = datetime.datetime(2024, 5, 26, 9, tzinfo=datetime.timezone.utc)
        deadline = opens + datetime.timedelta(hours=2)

        BracketService.set_round_schedule(round_id, opens, deadline, db=self.db)
        schedule = BracketService.get_tournament_schedule(tournament_id, db=self.db)
        self.assertEqual(schedule[0]["opensAt"], opens)
        self.assertEqual(schedule[0]["deadline"], deadline)

        with self.assertRaises(ValidationError):
            BracketService.set_round_schedule(round_id, deadline, opens, db=self.db)

    def test_upcoming_deadlines(self) -> None:
        """Only open rounds of active tournaments with a future deadline appear."""
        tournament_id = self.create_tournament()
        BracketService.update_status(tournament_id, "active", db=self.db)
        round_data = self.activate(tournament_id)
        deadline = datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(
            days=1
        )
        BracketService.set_round_schedule(round_data["id"], None, deadline, db=self.db)

        upcoming = BracketService.get_upcoming_deadlines(db=self.db)
        self.assertEqual([u["roundId"] for u in upcoming], [round_data["id"]])

        BracketService.close_submissions(round_data["id"], ADMIN_ID, db=self.db)
        self.assertEqual(BracketService.get_upcoming_deadlines(db=self.db), [])

    def test_update_scoring_rule(self) -> None:
        """Rules are stored on the round as given."""
        tournament_id = self.create_tournament()
        round_id = self.get_round(tournament_id, 1)["id"]
        BracketService.update_scoring_rule(round_id, 10, 15, db=self.db)
        self.assertEqual(
            BracketService.get_round(round_id, db=self.db)["scoringRule"],
            {"pointsPerWinner": 10, "pointsExactScore": 15},
        )
        with self.assertRaises(ValidationError):
            BracketService.update_scoring_rule(round_id, -1, 0, db=self.db)

    def test_delete_without_picks_is_hard(self) -> None:
        """An unused tournament is removed with its rounds and matches."""
        tournament_id = self.create_tournament()
        self.assertTrue(BracketService.delete_tournament(tournament_id, db=self.db))

        self.assertFalse(
            self.db.collection(TOURNAMENTS_COLLECTION).document(tournament_id).get().exists
        )
        self.assertEqual(
            where_equal(self.db, ROUNDS_COLLECTION, tournamentId=tournament_id), []
        )
        self.assertEqual(
            where_equal(self.db, MATCHES_COLLECTION, tournamentId=tournament_id), []
        )

    def test_delete_with_picks_is_soft(self) -> None:
        """A tournament with predictions is only hidden."""
        tournament_id = self.create_tournament()
        round_data = self.activate(tournament_id)
        self.submit("u1", round_data["id"], self.pick_all(tournament_id, 1))

        self.assertFalse(BracketService.delete_tournament(tournament_id, db=self.db))
        with self.assertRaises(NotFoundError):
            BracketService.get_tournament(tournament_id, db=self.db)
        self.assertEqual(BracketService.list_tournaments(db=self.db), [])


if __name__ == "__main__":
    unittest.main()
