from __future__ import annotations

from dataclasses import dataclass

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .class_sessions.mysql_class_session_repository import MySQLClassSessionRepository
from .common.locks import KeyedLocks
from .core.constants import (
    DEFAULT_DB_TIMEOUT_SECONDS,
    DEFAULT_SIDE_EFFECT_RETRIES,
    DEFAULT_SIDE_EFFECT_RETRY_DELAY,
    DEFAULT_SIDE_EFFECT_WORKERS,
)
from .database.connection import DBConfig, DatabaseConnection
from .students.debt_service import DebtRecalculationService
from .students.mysql_student_repository import MySQLStudentRepository
from .tutoring.mysql_tutoring_repository import MySQLTutoringRepository
from .tutoring.service import RemedialWorkDispatcher


@dataclass(frozen=True)
class PipelineSettings:
    workers: int = DEFAULT_SIDE_EFFECT_WORKERS
    retries: int = DEFAULT_SIDE_EFFECT_RETRIES
    retry_delay: float = DEFAULT_SIDE_EFFECT_RETRY_DELAY
    dedupe_tutoring: bool = False


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    attendance_repo: MySQLAttendanceRepository
    students_repo: MySQLStudentRepository
    tutoring_repo: MySQLTutoringRepository
    class_sessions_repo: MySQLClassSessionRepository

    debt_service: DebtRecalculationService
    remedial_dispatcher: RemedialWorkDispatcher
    attendance_service: AttendanceService


def build_container(*, db_config: dict, pipeline: PipelineSettings | None = None) -> Container:
    pipeline = pipeline or PipelineSettings()
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
        timeout=int(db_config.get("timeout", DEFAULT_DB_TIMEOUT_SECONDS)),
    )
    conn = DatabaseConnection.get_instance(config)

    attendance_repo = MySQLAttendanceRepository(conn)
    students_repo = MySQLStudentRepository(conn)
    tutoring_repo = MySQLTutoringRepository(conn)
    class_sessions_repo = MySQLClassSessionRepository(conn)

    # Debt and tutoring writes for one student share the same lock.
    student_locks = KeyedLocks()
    debt_service = DebtRecalculationService(attendance_repo, students_repo, locks=student_locks)
    remedial_dispatcher = RemedialWorkDispatcher(
        tutoring_repo,
        dedupe=pipeline.dedupe_tutoring,
        locks=student_locks,
    )
    attendance_service = AttendanceService(
        attendance_repo,
        debt_service,
        remedial_dispatcher,
        class_sessions_repo,
        workers=pipeline.workers,
        retries=pipeline.retries,
        retry_delay=pipeline.retry_delay,
    )

    return Container(
        conn=conn,
        attendance_repo=attendance_repo,
        students_repo=students_repo,
        tutoring_repo=tutoring_repo,
        class_sessions_repo=class_sessions_repo,
        debt_service=debt_service,
        remedial_dispatcher=remedial_dispatcher,
        attendance_service=attendance_service,
    )


def pipeline_from_settings(settings) -> PipelineSettings:
    return PipelineSettings(
        workers=int(getattr(settings, "SIDE_EFFECT_WORKERS", DEFAULT_SIDE_EFFECT_WORKERS)),
        retries=int(getattr(settings, "SIDE_EFFECT_RETRIES", DEFAULT_SIDE_EFFECT_RETRIES)),
        retry_delay=float(getattr(settings, "SIDE_EFFECT_RETRY_DELAY", DEFAULT_SIDE_EFFECT_RETRY_DELAY)),
        dedupe_tutoring=bool(getattr(settings, "DEDUPE_TUTORING_REQUESTS", False)),
    )
