"""Create the database, apply database/schema.sql and optionally the demo seed.

    python scripts/init_db.py           # schema only
    python scripts/init_db.py --seed    # schema + demo students/sessions
"""

from __future__ import annotations

import argparse
import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.training_center.training_center.database.bootstrap import prepare_database
from src.training_center.training_center.main import configure_logging


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--seed", action="store_true", help="also load database/seed.sql")
    args = parser.parse_args(argv)

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    db_config = dict(settings.DB_CONFIG)

    tables = prepare_database(
        db_config,
        schema_path=REPO_ROOT / "database" / "schema.sql",
        seed_path=(REPO_ROOT / "database" / "seed.sql") if args.seed else None,
    )
    print(
        f"OK: {db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')} "
        f"ready (tables={len(tables)}, seeded={'yes' if args.seed else 'no'})"
    )


if __name__ == "__main__":
    main()
