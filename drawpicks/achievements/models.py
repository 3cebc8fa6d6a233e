"""Achievement definitions for the drawpicks application."""

from __future__ import annotations

PERFECT_ROUND = "PERFECT_ROUND"
EXACT_MASTER = "EXACT_MASTER"
STREAK_5 = "STREAK_5"
STREAK_10 = "STREAK_10"
FIRST_100_POINTS = "FIRST_100_POINTS"
FIRST_RANK_1 = "FIRST_RANK_1"
UPSET_CALLER = "UPSET_CALLER"
EARLY_BIRD = "EARLY_BIRD"

CATEGORIES = ("round", "streak", "milestone", "special")

ACHIEVEMENTS = {
    PERFECT_ROUND: {
        "name": "Perfect Round",
        "desc": "Picked every winner of a round",
        "category": "round",
        "badgeColor": "gold",
    },
    EXACT_MASTER: {
        "name": "Exact Master",
        "desc": "Called 3 or more exact scores in one round",
        "category": "round",
        "badgeColor": "purple",
    },
    STREAK_5: {
        "name": "On Fire",
        "desc": "5 correct winners in a row",
        "category": "streak",
        "badgeColor": "orange",
    },
    STREAK_10: {
        "name": "Streak Master",
        "desc": "10 correct winners in a row",
        "category": "streak",
        "badgeColor": "red",
    },
    FIRST_100_POINTS: {
        "name": "Century Club",
        "desc": "Earned 100 points in total",
        "category": "milestone",
        "badgeColor": "blue",
    },
    FIRST_RANK_1: {
        "name": "Champion",
        "desc": "Reached #1 on a tournament leaderboard",
        "category": "milestone",
        "badgeColor": "gold",
    },
    UPSET_CALLER: {
        "name": "Upset Caller",
        "desc": "Backed the winner against a top 8 seed",
        "category": "special",
        "badgeColor": "teal",
    },
    EARLY_BIRD: {
        "name": "Early Bird",
        "desc": "Locked in picks within an hour of a round opening",
        "category": "special",
        "badgeColor": "green",
    },
}
