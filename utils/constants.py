"""
Application-wide constants for ShuttleMatch.

Enumerations mirror the check constraints of the hosted Supabase schema.
"""

from zoneinfo import ZoneInfo

# Player levels, lowest first
LEVELS = ["beginner", "intermediate", "advanced"]
DEFAULT_LEVEL = "beginner"

# XP range per level (inclusive); advanced has no hard ceiling but
# 3000 is used to draw the progress bar
LEVEL_XP_RANGES = {
    "beginner": (0, 500),
    "intermediate": (501, 1500),
    "advanced": (1501, 3000),
}

MATCH_MODES = ["friendly", "competitive", "tournament"]

REQUEST_STATUSES = ["open", "matched", "arrived", "completed", "cancelled"]
PARTICIPANT_STATUSES = ["joined", "arrived", "cancelled"]
CHALLENGE_STATUSES = ["pending", "accepted", "rejected"]
PAYMENT_STATUSES = ["pending", "approved", "rejected"]
MEMBERSHIP_STATUSES = ["trial", "active", "inactive"]
ROLES = ["admin", "user", "workshop"]
GENDERS = ["male", "female", "other"]

# Fallback experience rules when the experience_rules table has no row
DEFAULT_WIN_POINTS = 15
DEFAULT_LOSE_POINTS = 10
DEFAULT_FRIENDLY_POINTS = 5

# Penalties
PENALTY_REASON = "No-show / Cancellation"
PENALTY_PERCENT = 3
SUSPENSION_THRESHOLD = 5
SUSPENSION_DAYS = 30

CHALLENGE_EXPIRY_DAYS = 7
TRIAL_MONTHS = 3

# Notification types
NOTIFY_PLAYER_JOINED = "player_joined"
NOTIFY_MATCH_CONFIRMATION = "match_confirmation"
NOTIFY_MATCH_CONFIRMED = "match_confirmed"
NOTIFY_MATCH_DISPUTED = "match_disputed"
NOTIFY_CHALLENGE_RECEIVED = "challenge_received"
NOTIFY_CHALLENGE_ACCEPTED = "challenge_accepted"
NOTIFY_CHALLENGE_REJECTED = "challenge_rejected"
NOTIFY_PENALTY = "penalty"

# Uploads
MAX_UPLOAD_BYTES = 5 * 1024 * 1024
RECEIPTS_BUCKET = "receipts"
PROFILE_PHOTOS_BUCKET = "profile-photos"
RECEIPT_MIME_TYPES = ["image/png", "image/jpeg", "image/webp", "application/pdf"]

# Validation limits
MIN_PASSWORD_LENGTH = 6
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
PHONE_MAX_LENGTH = 20
POST_MAX_LENGTH = 1000
MESSAGE_MAX_LENGTH = 2000

CURRENCY = "MMK"
DEFAULT_COURT_RATING = 4.5
RANKING_TOP_N = 10

# Mandalay city centre
MAP_CENTER = (21.9588, 96.0891)

# Request dates and times are Mandalay wall-clock times
LOCAL_TZ = ZoneInfo("Asia/Yangon")

# Realtime fallback polling interval for badges
POLL_INTERVAL_SECONDS = 10

# Table order for the SQL export; parents before children
EXPORT_TABLES = [
    "shop_categories",
    "products",
    "courts",
    "profiles",
    "user_roles",
    "experience_rules",
    "posts",
    "post_likes",
    "notifications",
    "direct_messages",
    "partner_requests",
    "partner_request_participants",
    "challenges",
    "matches",
    "orders",
    "order_items",
    "cart",
    "favorites",
    "penalty_logs",
]
