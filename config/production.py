import os

from config import env_flag

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "training_center_db"),
    "timeout": int(os.getenv("DB_TIMEOUT_SECONDS", "5")),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = env_flag("AUTO_INIT_DB", "0")
AUTO_SEED_DB = env_flag("AUTO_SEED_DB", "0")

SIDE_EFFECT_WORKERS = int(os.getenv("SIDE_EFFECT_WORKERS", "8"))
SIDE_EFFECT_RETRIES = int(os.getenv("SIDE_EFFECT_RETRIES", "3"))
SIDE_EFFECT_RETRY_DELAY = float(os.getenv("SIDE_EFFECT_RETRY_DELAY", "0.5"))
DEDUPE_TUTORING_REQUESTS = env_flag("DEDUPE_TUTORING_REQUESTS", "0")
