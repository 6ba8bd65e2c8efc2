"""Rebuild students.attended_sessions from stored attendance entries.

Chạy lại quy tắc nợ phí cho mọi cặp (học viên, lớp) đã có điểm danh. An toàn
khi chạy nhiều lần: số buổi luôn được đếm lại từ dữ liệu gốc.
"""

from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.training_center.training_center.container import build_container
from src.training_center.training_center.core.exceptions import DomainError
from src.training_center.training_center.main import configure_logging


def main() -> int:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    container = build_container(db_config=dict(settings.DB_CONFIG))

    pairs = container.attendance_repo.list_student_class_pairs()
    print(f"Found {len(pairs)} (student, class) pairs")

    updated = 0
    moved_to_debt = 0
    failed = 0
    for student_id, class_id in pairs:
        try:
            outcome = container.debt_service.recompute(student_id, class_id)
        except DomainError as exc:
            logging.getLogger(__name__).error("Recompute failed for %s/%s: %s", student_id, class_id, exc)
            failed += 1
            continue
        updated += 1
        if outcome.transitioned:
            moved_to_debt += 1
            print(f"  {student_id} @ {class_id}: attended={outcome.attended_sessions} -> debt (+{outcome.debt_sessions})")

    print(f"OK: recomputed={updated} moved_to_debt={moved_to_debt} failed={failed}")
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
