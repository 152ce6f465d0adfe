"""Global constants for the volleyroster application."""

# Collection names
USERS_COLLECTION = "users"
ACTIVE_MATCHES_COLLECTION = "activeMatches"
SESSIONS_COLLECTION = "sessions"

# Firestore caps a write batch at 500 operations
FIRESTORE_BATCH_LIMIT = 400

# Roster limits
MAX_PARTICIPANTS = 14
MAX_GUESTS_PER_USER = 3
GUEST_ID_PREFIX = "guest_"

# Match status values
MATCH_STATUS_ACTIVE = "active"

# Roster entry kinds
ENTRY_KIND_USER = "user"
ENTRY_KIND_GUEST = "guest"

# Default schedule: next Tuesday at 20:30
DEFAULT_MATCH_WEEKDAY = 1
DEFAULT_MATCH_TIME = "20:30"

# Attendance counters rebuilt from session history
ATTENDANCE_STAT_FIELDS = (
    "totalSessions",
    "asParticipant",
    "asReserve",
    "friendsBrought",
)

# Counters that only admins or external tools feed
RESULT_STAT_FIELDS = (
    "setsPlayed",
    "setsWon",
    "setsLost",
    "pointDifference",
)

STAT_FIELDS = ATTENDANCE_STAT_FIELDS + RESULT_STAT_FIELDS

LEADERBOARD_LIMIT = 20
