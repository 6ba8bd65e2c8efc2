from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .container import build_container, pipeline_from_settings
from .database.bootstrap import prepare_database

logger = logging.getLogger(__name__)

DATABASE_DIR = Path(__file__).resolve().parents[3] / "database"


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.json.ensure_ascii = False

    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        seed = bool(getattr(settings, "AUTO_SEED_DB", False))
        tables = prepare_database(
            db_config,
            schema_path=DATABASE_DIR / "schema.sql",
            seed_path=(DATABASE_DIR / "seed.sql") if seed else None,
        )
        logger.info("database ready (tables=%s, seeded=%s)", len(tables), seed)

    container = build_container(db_config=db_config, pipeline=pipeline_from_settings(settings))
    register_attendance(app, container)

    return app
