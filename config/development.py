import os

from config import env_flag

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "training_center_db"),
    "timeout": int(os.getenv("DB_TIMEOUT_SECONDS", "10")),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = env_flag("AUTO_INIT_DB", "1")
# Optional: also seed demo data on startup
AUTO_SEED_DB = env_flag("AUTO_SEED_DB", "0")

# Follow-up steps after an attendance submission
SIDE_EFFECT_WORKERS = int(os.getenv("SIDE_EFFECT_WORKERS", "4"))
SIDE_EFFECT_RETRIES = int(os.getenv("SIDE_EFFECT_RETRIES", "2"))
SIDE_EFFECT_RETRY_DELAY = float(os.getenv("SIDE_EFFECT_RETRY_DELAY", "0.2"))
DEDUPE_TUTORING_REQUESTS = env_flag("DEDUPE_TUTORING_REQUESTS", "0")
