"""Global constants for the drawpicks application."""

# Collection names
TOURNAMENTS_COLLECTION = "tournaments"
ROUNDS_COLLECTION = "rounds"
MATCHES_COLLECTION = "matches"
USER_ROUND_PICKS_COLLECTION = "userRoundPicks"
MATCH_PICKS_COLLECTION = "matchPicks"
USER_STREAKS_COLLECTION = "userStreaks"
USERS_COLLECTION = "users"
USER_ACHIEVEMENTS_COLLECTION = "userAchievements"

# Writes per batch commit, kept below the 500-write limit of a Firestore commit
FIRESTORE_BATCH_LIMIT = 400

# Tournament formats and the number of sets needed to win a match
FORMAT_BEST_OF_3 = "bo3"
FORMAT_BEST_OF_5 = "bo5"
WINNING_SETS = {FORMAT_BEST_OF_3: 2, FORMAT_BEST_OF_5: 3}
DEFAULT_TOURNAMENT_FORMAT = FORMAT_BEST_OF_3

# Tournament lifecycle
TOURNAMENT_DRAFT = "draft"
TOURNAMENT_ACTIVE = "active"
TOURNAMENT_ARCHIVED = "archived"
TOURNAMENT_TRANSITIONS = {
    TOURNAMENT_DRAFT: {TOURNAMENT_ACTIVE, TOURNAMENT_ARCHIVED},
    TOURNAMENT_ACTIVE: {TOURNAMENT_ARCHIVED},
    TOURNAMENT_ARCHIVED: set(),
}

# Match lifecycle
MATCH_PENDING = "pending"
MATCH_FINALIZED = "finalized"

# Placeholder for a slot whose player is not known yet
TBD_PLAYER = "TBD"

# Slot names in a match document
PLAYER1_SLOT = "player1"
PLAYER2_SLOT = "player2"

# Progressive scoring schedule (points for a correct winner)
ROUND_POINTS_PER_WINNER = {
    "Round of 128": 2,
    "Round of 64": 3,
    "Round of 32": 5,
    "Round of 16": 8,
    "Quarter Finals": 12,
    "Semi Finals": 18,
    "Final": 30,
}
DEFAULT_POINTS_PER_WINNER = 10
EXACT_SCORE_MULTIPLIER = 1.5

# Leaderboard-related constants
PROGRESSION_TOP_N = 10
PODIUM_SIZE = 3
TOP_STREAKS_LIMIT = 10
UPCOMING_DEADLINES_LIMIT = 10
RECENT_UNLOCKS_LIMIT = 10
RECENT_UNLOCKS_MAX = 50
