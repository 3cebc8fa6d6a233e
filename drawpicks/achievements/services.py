"""Service layer for unlocking and reading achievements."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable

from drawpicks.core.constants import (
    RECENT_UNLOCKS_LIMIT,
    USER_ACHIEVEMENTS_COLLECTION,
    USER_ROUND_PICKS_COLLECTION,
)
from drawpicks.core.firestore_utils import (
    doc_to_dict,
    get_client,
    sort_timestamp,
    utcnow,
    where_equal,
)
from drawpicks.errors import ValidationError

from .models import (
    ACHIEVEMENTS,
    CATEGORIES,
    EARLY_BIRD,
    FIRST_100_POINTS,
    FIRST_RANK_1,
    UPSET_CALLER,
)
from .utils import (
    CENTURY_CLUB_THRESHOLD,
    award_id,
    is_early_bird,
    is_upset,
    round_codes,
    streak_codes,
)

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction

Write = tuple["DocumentReference", dict[str, Any]]


def _newest_first(awards: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(
        awards,
        key=lambda a: (sort_timestamp(a.get("unlockedAt")), a["id"]),
        reverse=True,
    )


def _with_definition(award: dict[str, Any]) -> dict[str, Any]:
    return {**ACHIEVEMENTS.get(award.get("code"), {}), **award}


class AchievementService:
    """Unlocks achievements as results come in and serves them back."""

    @staticmethod
    def plan_awards(
        db: Client,
        transaction: Transaction,
        candidates: Iterable[dict[str, Any]],
    ) -> list[Write]:
        """Read the award docs for candidate unlocks and plan the new ones.

        A candidate carries ``userId`` and ``code`` plus any context fields.
        Awards a user already holds are left alone.
        """
        now = utcnow()
        planned: dict[str, dict[str, Any]] = {}
        for candidate in candidates:
            doc_id = award_id(candidate["userId"], candidate["code"])
            planned.setdefault(doc_id, candidate)

        writes: list[Write] = []
        for doc_id in sorted(planned):
            ref = db.collection(USER_ACHIEVEMENTS_COLLECTION).document(doc_id)
            if doc_to_dict(ref.get(transaction=transaction)):
                continue
            candidate = planned[doc_id]
            writes.append((
                ref,
                {
                    "userId": candidate["userId"],
                    "code": candidate["code"],
                    "tournamentId": candidate.get("tournamentId"),
                    "roundId": candidate.get("roundId"),
                    "matchId": candidate.get("matchId"),
                    "value": candidate.get("value"),
                    "unlockedAt": now,
                },
            ))
        return writes

    @staticmethod
    def _overlay_totals(
        round_picks: list[dict[str, Any]], total_writes: list[Write]
    ) -> list[dict[str, Any]]:
        fresh = {ref.id: totals for ref, totals in total_writes}
        return [{**p, **fresh.get(p["id"], {})} for p in round_picks]

    @staticmethod
    def plan_after_scoring(
        db: Client,
        transaction: Transaction,
        match: dict[str, Any],
        round_data: dict[str, Any],
        scored_picks: list[dict[str, Any]],
        total_writes: list[Write],
        streak_writes: list[Write],
    ) -> list[Write]:
        """Plan the unlocks earned by scoring one match.

        Reads only; runs after the scoring and streak plans so their fresh
        totals count toward milestones.
        """
        from drawpicks.leaderboard.utils import build_leaderboard

        context = {
            "tournamentId": match.get("tournamentId"),
            "roundId": match.get("roundId"),
            "matchId": match.get("id"),
        }
        candidates: list[dict[str, Any]] = []

        for ref, state in streak_writes:
            current = int(state.get("currentStreak") or 0)
            for code in streak_codes(current):
                candidates.append(
                    {**context, "userId": ref.id, "code": code, "value": current}
                )

        owners = {p["userRoundPickId"]: p["userId"] for p in scored_picks}
        match_count = int(round_data.get("matchCount") or 0)
        for ref, totals in total_writes:
            for code, value in round_codes(totals, match_count):
                candidates.append(
                    {**context, "userId": owners[ref.id], "code": code, "value": value}
                )

        if is_upset(match):
            for pick in scored_picks:
                if pick.get("isWinnerCorrect"):
                    candidates.append(
                        {**context, "userId": pick["userId"], "code": UPSET_CALLER}
                    )

        for user_id in sorted(set(owners.values())):
            round_picks = AchievementService._overlay_totals(
                where_equal(
                    db,
                    USER_ROUND_PICKS_COLLECTION,
                    transaction=transaction,
                    userId=user_id,
                ),
                total_writes,
            )
            points = sum(
                int(p.get("totalPoints") or 0)
                for p in round_picks
                if not p.get("isDraft", True)
            )
            if points >= CENTURY_CLUB_THRESHOLD:
                candidates.append({
                    **context,
                    "userId": user_id,
                    "code": FIRST_100_POINTS,
                    "value": points,
                })

        if owners and match.get("tournamentId"):
            standings = build_leaderboard(
                AchievementService._overlay_totals(
                    where_equal(
                        db,
                        USER_ROUND_PICKS_COLLECTION,
                        transaction=transaction,
                        tournamentId=match["tournamentId"],
                    ),
                    total_writes,
                ),
                [],
            )
            if standings and standings[0]["totalPoints"] > 0:
                leader = standings[0]
                candidates.append({
                    **context,
                    "userId": leader["userId"],
                    "code": FIRST_RANK_1,
                    "value": leader["totalPoints"],
                })

        return AchievementService.plan_awards(db, transaction, candidates)

    @staticmethod
    def plan_early_bird(
        db: Client,
        transaction: Transaction,
        user_id: str,
        round_data: dict[str, Any],
        submitted_at: Any,
    ) -> list[Write]:
        """Plan the early bird unlock for a final submission, if earned."""
        if not is_early_bird(submitted_at, round_data.get("opensAt")):
            return []
        return AchievementService.plan_awards(
            db,
            transaction,
            [{
                "userId": user_id,
                "code": EARLY_BIRD,
                "tournamentId": round_data.get("tournamentId"),
                "roundId": round_data.get("id"),
            }],
        )

    @staticmethod
    def list_definitions() -> list[dict[str, Any]]:
        """Every achievement that can be unlocked."""
        return [{"code": code, **entry} for code, entry in ACHIEVEMENTS.items()]

    @staticmethod
    def get_user_achievements(
        user_id: str, db: Client | None = None
    ) -> list[dict[str, Any]]:
        """A user's unlocked achievements, newest first."""
        db = get_client(db)
        awards = where_equal(db, USER_ACHIEVEMENTS_COLLECTION, userId=user_id)
        return [_with_definition(a) for a in _newest_first(awards)]

    @staticmethod
    def get_recent_unlocks(
        limit: int = RECENT_UNLOCKS_LIMIT, db: Client | None = None
    ) -> list[dict[str, Any]]:
        """The latest unlocks across all users."""
        from drawpicks.leaderboard.utils import get_display_names

        if limit < 1:
            raise ValidationError("Limit must be at least 1.")
        db = get_client(db)
        awards = [
            a
            for a in (
                doc_to_dict(s)
                for s in db.collection(USER_ACHIEVEMENTS_COLLECTION).stream()
            )
            if a
        ]
        recent = _newest_first(awards)[:limit]
        names = get_display_names(db, (a["userId"] for a in recent))
        return [
            {**_with_definition(a), "displayName": names[a["userId"]]} for a in recent
        ]

    @staticmethod
    def get_user_summary(user_id: str, db: Client | None = None) -> dict[str, Any]:
        """How many achievements a user holds, overall and per category."""
        awards = AchievementService.get_user_achievements(user_id, db=db)
        by_category = {
            category: {
                "unlocked": sum(1 for a in awards if a.get("category") == category),
                "total": sum(
                    1 for d in ACHIEVEMENTS.values() if d["category"] == category
                ),
            }
            for category in CATEGORIES
        }
        return {
            "userId": user_id,
            "unlocked": len(awards),
            "total": len(ACHIEVEMENTS),
            "byCategory": by_category,
        }

    @staticmethod
    def get_leaderboard(
        limit: int = RECENT_UNLOCKS_LIMIT, db: Client | None = None
    ) -> list[dict[str, Any]]:
        """Users ranked by how many achievements they hold."""
        db = get_client(db)
        counts: dict[str, int] = {}
        for snapshot in db.collection(USER_ACHIEVEMENTS_COLLECTION).stream():
            award = doc_to_dict(snapshot)
            if award:
                counts[award["userId"]] = counts.get(award["userId"], 0) + 1
        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return [
            {"rank": position, "userId": uid, "achievements": count}
            for position, (uid, count) in enumerate(ranked[:limit], start=1)
        ]
