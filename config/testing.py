import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "training_center_test"),
    "timeout": 5,
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False
AUTO_SEED_DB = False

SIDE_EFFECT_WORKERS = 1
SIDE_EFFECT_RETRIES = 0
SIDE_EFFECT_RETRY_DELAY = 0.0
DEDUPE_TUTORING_REQUESTS = False
