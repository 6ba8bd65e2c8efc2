"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SIDE_EFFECT_WORKERS = 4
DEFAULT_SIDE_EFFECT_RETRIES = 2
DEFAULT_SIDE_EFFECT_RETRY_DELAY = 0.2
MAX_RETRY_DELAY_SECONDS = 5.0
DEFAULT_DB_TIMEOUT_SECONDS = 10
DEFAULT_RECORD_LIST_LIMIT = 200

HOMEWORK_MIN = 0
HOMEWORK_MAX = 100

# Column widths from database/schema.sql; longer values are rejected before any write.
ID_MAX_LENGTH = 64
NAME_MAX_LENGTH = 150
STUDENT_CODE_MAX_LENGTH = 32
NOTE_MAX_LENGTH = 500
PUNCTUALITY_MAX_LENGTH = 20
CREATED_BY_MAX_LENGTH = 100
SCORE_MIN = 0
SCORE_MAX = 999.99
BONUS_POINTS_LIMIT = 9999.99
