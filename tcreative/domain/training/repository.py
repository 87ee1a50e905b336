"""Training repository - Database operations for programs, sessions and enrollments"""

from datetime import datetime
from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session, joinedload

from ...models import (
    Certificate,
    Enrollment,
    TrainingLesson,
    TrainingModule,
    TrainingProgram,
    TrainingSession,
)


class TrainingRepository:
    """Repository for training database operations"""

    # ------------------------------------------------------------------
    # Programs
    # ------------------------------------------------------------------

    @staticmethod
    def get_programs(db: Session, active_only: bool = False) -> list[TrainingProgram]:
        query = db.query(TrainingProgram).options(joinedload(TrainingProgram.modules))
        if active_only:
            query = query.filter(TrainingProgram.is_active == True)  # noqa: E712
        return query.order_by(TrainingProgram.sort_order, TrainingProgram.name).all()

    @staticmethod
    def get_program_by_id(db: Session, program_id: int) -> Optional[TrainingProgram]:
        return db.query(TrainingProgram).filter(TrainingProgram.id == program_id).first()

    @staticmethod
    def create_program(db: Session, session_starts: list[datetime], **data) -> TrainingProgram:
        program = TrainingProgram(**data)
        for starts_at in session_starts:
            program.sessions.append(TrainingSession(starts_at=starts_at))
        db.add(program)
        db.commit()
        db.refresh(program)
        return program

    @staticmethod
    def update_program(db: Session, program: TrainingProgram, **updates) -> TrainingProgram:
        for key, value in updates.items():
            setattr(program, key, value)
        db.commit()
        db.refresh(program)
        return program

    @staticmethod
    def delete_program(db: Session, program: TrainingProgram) -> None:
        """Removes withdrawn enrollments with the program; callers check for active ones first"""
        db.query(Enrollment).filter(Enrollment.program_id == program.id).delete(synchronize_session=False)
        db.delete(program)
        db.commit()

    @staticmethod
    def get_session_counts(db: Session) -> dict[int, int]:
        rows = (
            db.query(TrainingSession.program_id, func.count(TrainingSession.id))
            .group_by(TrainingSession.program_id)
            .all()
        )
        return {program_id: count for program_id, count in rows}

    @staticmethod
    def get_next_sessions(db: Session, now: datetime) -> dict[int, TrainingSession]:
        """Earliest scheduled future session per program"""
        sessions = (
            db.query(TrainingSession)
            .filter(TrainingSession.status == "scheduled", TrainingSession.starts_at >= now)
            .order_by(TrainingSession.starts_at)
            .all()
        )
        next_sessions: dict[int, TrainingSession] = {}
        for s in sessions:
            next_sessions.setdefault(s.program_id, s)
        return next_sessions

    @staticmethod
    def get_lesson_counts(db: Session) -> dict[int, int]:
        rows = (
            db.query(TrainingLesson.module_id, func.count(TrainingLesson.id))
            .group_by(TrainingLesson.module_id)
            .all()
        )
        return {module_id: count for module_id, count in rows}

    @staticmethod
    def get_modules(db: Session) -> list[TrainingModule]:
        return db.query(TrainingModule).order_by(TrainingModule.program_id, TrainingModule.sort_order).all()

    # ------------------------------------------------------------------
    # Enrollments
    # ------------------------------------------------------------------

    @staticmethod
    def count_active_by_session(db: Session) -> dict[int, int]:
        rows = (
            db.query(Enrollment.session_id, func.count(Enrollment.id))
            .filter(Enrollment.status != "withdrawn", Enrollment.session_id.isnot(None))
            .group_by(Enrollment.session_id)
            .all()
        )
        return {session_id: count for session_id, count in rows}

    @staticmethod
    def count_active_by_program(db: Session) -> dict[int, int]:
        rows = (
            db.query(Enrollment.program_id, func.count(Enrollment.id))
            .filter(Enrollment.status != "withdrawn")
            .group_by(Enrollment.program_id)
            .all()
        )
        return {program_id: count for program_id, count in rows}

    @staticmethod
    def get_active_enrollment(db: Session, client_id: str, program_id: int) -> Optional[Enrollment]:
        return (
            db.query(Enrollment)
            .filter(
                Enrollment.client_id == client_id,
                Enrollment.program_id == program_id,
                Enrollment.status != "withdrawn",
            )
            .first()
        )

    @staticmethod
    def get_enrollment_by_id(db: Session, enrollment_id: int) -> Optional[Enrollment]:
        return db.query(Enrollment).filter(Enrollment.id == enrollment_id).first()

    @staticmethod
    def get_enrollments(db: Session, client_id: Optional[str] = None) -> list[Enrollment]:
        query = db.query(Enrollment).options(
            joinedload(Enrollment.client),
            joinedload(Enrollment.program),
            joinedload(Enrollment.session),
            joinedload(Enrollment.certificate),
        )
        if client_id:
            query = query.filter(Enrollment.client_id == client_id)
        return query.order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc()).all()

    @staticmethod
    def create_enrollment(db: Session, **data) -> Enrollment:
        enrollment = Enrollment(**data)
        db.add(enrollment)
        db.commit()
        db.refresh(enrollment)
        return enrollment

    @staticmethod
    def update_enrollment(
        db: Session, enrollment: Enrollment, certificate_code: Optional[str] = None, **updates
    ) -> Enrollment:
        """Status change and certificate land in the same commit"""
        for key, value in updates.items():
            setattr(enrollment, key, value)
        if certificate_code:
            db.add(Certificate(enrollment_id=enrollment.id, code=certificate_code))
        db.commit()
        db.refresh(enrollment)
        return enrollment

    @staticmethod
    def delete_enrollment(db: Session, enrollment: Enrollment) -> None:
        db.delete(enrollment)
        db.commit()

    @staticmethod
    def get_enrollment_summary(db: Session):
        return db.query(
            func.coalesce(func.sum(case((Enrollment.status.in_(["enrolled", "in_progress"]), 1), else_=0)), 0).label(
                "active"
            ),
            func.coalesce(func.sum(case((Enrollment.status == "waitlisted", 1), else_=0)), 0).label("waitlist"),
            func.coalesce(func.sum(Enrollment.amount_paid_in_cents), 0).label("revenue"),
        ).one()

    # ------------------------------------------------------------------
    # Certificates
    # ------------------------------------------------------------------

    @staticmethod
    def count_certificates(db: Session) -> int:
        return db.query(func.count(Certificate.id)).scalar() or 0

    @staticmethod
    def get_certificate_codes(db: Session, code_prefix: str) -> list[str]:
        rows = db.query(Certificate.code).filter(Certificate.code.like(f"{code_prefix}%")).all()
        return [code for (code,) in rows]
