"""Training service - Programs, client enrollment and the admin student roster"""

import logging
import re
import time
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Enrollment, Profile, TrainingProgram
from ...services import zoho_service
from .repository import TrainingRepository
from .schemas import EnrollmentCreate, ProgramCreate, ProgramUpdate

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 10

PROGRAM_FIELD_MAP = {
    "name": "name",
    "type": "type",
    "description": "description",
    "format": "format",
    "priceInCents": "price_in_cents",
    "depositInCents": "deposit_in_cents",
    "durationHours": "duration_hours",
    "durationDays": "duration_days",
    "maxStudents": "max_students",
    "certificationProvided": "certification_provided",
    "kitIncluded": "kit_included",
    "isActive": "is_active",
    "waitlistOpen": "waitlist_open",
    "sortOrder": "sort_order",
}

CLIENT_STATUS_LABELS = {
    "waitlisted": "waitlist",
    "enrolled": "enrolled",
    "in_progress": "in_progress",
    "completed": "completed",
}

ADMIN_STATUS_LABELS = {
    "waitlisted": "waitlist",
    "enrolled": "active",
    "in_progress": "active",
    "completed": "completed",
    "withdrawn": "paused",
}


def display_category(category: Optional[str]) -> str:
    """Client-facing label; the consulting category is shown as business"""
    if category in ("lash", "jewelry", "crochet"):
        return category
    return "business"


def slugify(name: str) -> str:
    base = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")[:200]
    return f"{base}-{int(time.time() * 1000)}"


def format_long_date(value: datetime) -> str:
    return value.strftime("%a, %b %-d, %Y")


def format_short_date(value: Optional[datetime]) -> Optional[str]:
    return value.strftime("%b %-d, %Y") if value else None


def initials_for(first: str, last: str) -> str:
    return "".join(part[0] for part in (first, last) if part).upper() or "?"


class TrainingService:
    """Service layer for training programs and enrollments"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TrainingRepository()

    def get_program(self, program_id: int) -> TrainingProgram:
        program = self.repo.get_program_by_id(self.db, program_id)
        if not program:
            raise HTTPException(status_code=404, detail="Program not found")
        return program

    # ========================================================================
    # PUBLIC
    # ========================================================================

    def get_public_programs(self, now: Optional[datetime] = None) -> list[dict]:
        """Active programs with their next scheduled session and module names"""
        next_sessions = self.repo.get_next_sessions(self.db, now or datetime.utcnow())

        programs = []
        for p in self.repo.get_programs(self.db, active_only=True):
            session = next_sessions.get(p.id)
            programs.append(
                {
                    "id": p.id,
                    "name": p.name,
                    "slug": p.slug,
                    "description": p.description,
                    "category": p.type,
                    "format": p.format,
                    "durationHours": p.duration_hours,
                    "durationDays": p.duration_days,
                    "priceInCents": p.price_in_cents,
                    "certificationProvided": p.certification_provided,
                    "kitIncluded": p.kit_included,
                    "maxStudents": p.max_students,
                    "nextSession": (
                        {"startsAt": session.starts_at.isoformat(), "location": session.location}
                        if session
                        else None
                    ),
                    "curriculum": [m.name for m in p.modules],
                }
            )
        return programs

    # ========================================================================
    # CLIENT
    # ========================================================================

    def get_client_training(self, client_id: str, now: Optional[datetime] = None) -> dict:
        next_sessions = self.repo.get_next_sessions(self.db, now or datetime.utcnow())
        by_session = self.repo.count_active_by_session(self.db)
        by_program = self.repo.count_active_by_program(self.db)
        lesson_counts = self.repo.get_lesson_counts(self.db)

        enrollments = self.repo.get_enrollments(self.db, client_id=client_id)
        own_status = {}
        for e in enrollments:
            if e.status != "withdrawn":
                own_status.setdefault(e.program_id, CLIENT_STATUS_LABELS.get(e.status))

        programs = []
        for p in self.repo.get_programs(self.db, active_only=True):
            session = next_sessions.get(p.id)
            capacity = (session.max_students if session else None) or p.max_students or DEFAULT_CAPACITY
            taken = by_session.get(session.id, 0) if session else by_program.get(p.id, 0)
            programs.append(
                {
                    "id": p.id,
                    "name": p.name,
                    "type": display_category(p.type),
                    "price": (p.price_in_cents or 0) / 100,
                    "description": p.description or "",
                    "format": p.format,
                    "certificationProvided": p.certification_provided,
                    "kitIncluded": p.kit_included,
                    "maxSpots": capacity,
                    "spotsLeft": max(0, capacity - taken),
                    "waitlistOpen": p.waitlist_open if p.waitlist_open is not None else True,
                    "modules": [
                        {
                            "name": m.name,
                            "description": m.description,
                            "lessonCount": lesson_counts.get(m.id, 0),
                        }
                        for m in p.modules
                    ],
                    "nextSession": (
                        {"startsAt": format_long_date(session.starts_at), "location": session.location}
                        if session
                        else None
                    ),
                    "enrollmentStatus": own_status.get(p.id),
                }
            )

        return {
            "programs": programs,
            "enrollments": [
                {
                    "id": e.id,
                    "programId": e.program_id,
                    "programName": e.program.name if e.program else "Program",
                    "programType": display_category(e.program.type if e.program else None),
                    "status": CLIENT_STATUS_LABELS.get(e.status),
                    "amountPaidCents": e.amount_paid_in_cents,
                    "totalPriceCents": (e.program.price_in_cents if e.program else None) or 0,
                    "sessionStartsAt": format_long_date(e.session.starts_at) if e.session else None,
                    "sessionLocation": e.session.location if e.session else None,
                }
                for e in enrollments
            ],
            "certificates": [
                {
                    "id": e.certificate.id,
                    "programName": e.program.name if e.program else "Program",
                    "programType": display_category(e.program.type if e.program else None),
                    "certificateCode": e.certificate.code,
                    "issuedAt": format_short_date(e.certificate.issued_at) or "",
                }
                for e in enrollments
                if e.certificate
            ],
        }

    async def client_enroll(self, client: Profile, program_id: int) -> Enrollment:
        program = self.get_program(program_id)
        if self.repo.get_active_enrollment(self.db, client.id, program_id):
            raise HTTPException(status_code=400, detail="Already enrolled in this program")

        session = self.repo.get_next_sessions(self.db, datetime.utcnow()).get(program_id)
        enrollment = self.repo.create_enrollment(
            self.db,
            client_id=client.id,
            program_id=program_id,
            session_id=session.id if session else None,
            status="enrolled",
        )
        logger.info(f"🎓 Client {client.id} enrolled in program {program_id}")

        await zoho_service.create_zoho_deal(
            self.db,
            contact_email=client.email,
            deal_name=f"Training: {program.name} — {client.first_name}",
            stage="Enrolled",
            amount_in_cents=program.price_in_cents,
            pipeline="Training",
            external_id=f"enrollment-{enrollment.id}",
        )
        return enrollment

    def client_join_waitlist(self, client_id: str, program_id: int) -> Enrollment:
        self.get_program(program_id)
        if self.repo.get_active_enrollment(self.db, client_id, program_id):
            raise HTTPException(status_code=400, detail="Already enrolled or waitlisted for this program")

        enrollment = self.repo.create_enrollment(
            self.db, client_id=client_id, program_id=program_id, status="waitlisted"
        )
        logger.info(f"📝 Client {client_id} joined the waitlist for program {program_id}")
        return enrollment

    # ========================================================================
    # ADMIN: PROGRAMS
    # ========================================================================

    def list_programs(self) -> list[dict]:
        session_counts = self.repo.get_session_counts(self.db)
        return [
            {
                "id": p.id,
                "name": p.name,
                "type": p.type,
                "price": (p.price_in_cents or 0) / 100,
                "sessions": session_counts.get(p.id, 0),
                "description": p.description or "",
                "active": p.is_active,
                "maxSpots": p.max_students or DEFAULT_CAPACITY,
                "waitlistOpen": p.waitlist_open if p.waitlist_open is not None else True,
            }
            for p in self.repo.get_programs(self.db)
        ]

    def create_program(self, data: ProgramCreate) -> TrainingProgram:
        """New program; optional placeholder sessions are spaced a week apart"""
        values = {column: getattr(data, field) for field, column in PROGRAM_FIELD_MAP.items()}
        now = datetime.utcnow()
        session_starts = [now + timedelta(weeks=i + 1) for i in range(data.sessions)]
        program = self.repo.create_program(self.db, session_starts, slug=slugify(data.name), **values)
        logger.info(f"✅ Created training program {program.id}: {program.name}")
        return program

    def update_program(self, program_id: int, data: ProgramUpdate) -> TrainingProgram:
        program = self.get_program(program_id)
        provided = data.model_dump(exclude_unset=True)
        updates = {PROGRAM_FIELD_MAP[field]: value for field, value in provided.items()}
        return self.repo.update_program(self.db, program, **updates)

    def delete_program(self, program_id: int) -> dict:
        program = self.get_program(program_id)
        active = self.repo.count_active_by_program(self.db).get(program_id, 0)
        if active:
            plural = "s" if active != 1 else ""
            raise HTTPException(
                status_code=400,
                detail=f"Cannot delete: {active} student{plural} enrolled. Remove all enrollments first.",
            )
        self.repo.delete_program(self.db, program)
        logger.info(f"🗑️ Deleted training program {program_id}")
        return {"message": "Program deleted"}

    def toggle_waitlist(self, program_id: int) -> TrainingProgram:
        program = self.get_program(program_id)
        current = program.waitlist_open if program.waitlist_open is not None else True
        return self.repo.update_program(self.db, program, waitlist_open=not current)

    # ========================================================================
    # ADMIN: STUDENTS
    # ========================================================================

    def list_enrollments(self) -> list[dict]:
        rows = []
        for e in self.repo.get_enrollments(self.db):
            first = (e.client.first_name if e.client else "") or ""
            last = (e.client.last_name if e.client else "") or ""
            rows.append(
                {
                    "id": e.id,
                    "clientId": e.client_id,
                    "name": " ".join(part for part in (first, last) if part),
                    "initials": initials_for(first, last),
                    "program": e.program.type if e.program else "lash",
                    "programId": e.program_id,
                    "status": ADMIN_STATUS_LABELS.get(e.status, "active"),
                    "enrolled": format_short_date(e.enrolled_at) or "",
                    "amountPaid": e.amount_paid_in_cents / 100,
                    "amountTotal": ((e.program.price_in_cents if e.program else None) or 0) / 100,
                    "certified": e.certificate is not None,
                    "certDate": format_short_date(e.certificate.issued_at) if e.certificate else None,
                    "certificateCode": e.certificate.code if e.certificate else None,
                }
            )
        return rows

    def create_enrollment(self, data: EnrollmentCreate) -> Enrollment:
        self.get_program(data.programId)
        if not self.db.query(Profile.id).filter(Profile.id == data.clientId).first():
            raise HTTPException(status_code=404, detail="Client not found")

        enrollment = self.repo.create_enrollment(
            self.db,
            client_id=data.clientId,
            program_id=data.programId,
            status=data.status,
            amount_paid_in_cents=data.amountPaidInCents,
        )
        if data.status == "completed":
            return self.update_enrollment_status(enrollment.id, "completed")
        return enrollment

    def update_enrollment_status(self, enrollment_id: int, status: str) -> Enrollment:
        """Completing an enrollment issues its certificate when the program certifies"""
        enrollment = self.repo.get_enrollment_by_id(self.db, enrollment_id)
        if not enrollment:
            raise HTTPException(status_code=404, detail="Enrollment not found")

        updates: dict = {"status": status}
        if status == "completed":
            updates["completed_at"] = datetime.utcnow()
        elif status == "withdrawn":
            updates["withdrawn_at"] = datetime.utcnow()
        program = enrollment.program
        certificate_code = None
        if status == "completed" and enrollment.certificate is None and program and program.certification_provided:
            certificate_code = self._next_certificate_code(program)

        enrollment = self.repo.update_enrollment(self.db, enrollment, certificate_code=certificate_code, **updates)
        if certificate_code:
            logger.info(f"📜 Issued certificate {certificate_code} for enrollment {enrollment.id}")
        return enrollment

    def _next_certificate_code(self, program: TrainingProgram) -> str:
        """Sequential per type and year, e.g. TC-LASH-2026-001; numbers freed by deletions are not reused"""
        prefix = f"TC-{program.type.upper()}-{datetime.utcnow().year}-"
        issued = [
            int(code[len(prefix):])
            for code in self.repo.get_certificate_codes(self.db, prefix)
            if code[len(prefix):].isdigit()
        ]
        return f"{prefix}{max(issued, default=0) + 1:03d}"

    def delete_enrollment(self, enrollment_id: int) -> dict:
        enrollment = self.repo.get_enrollment_by_id(self.db, enrollment_id)
        if not enrollment:
            raise HTTPException(status_code=404, detail="Enrollment not found")
        self.repo.delete_enrollment(self.db, enrollment)
        return {"message": "Enrollment deleted"}

    def get_stats(self) -> dict:
        summary = self.repo.get_enrollment_summary(self.db)
        return {
            "activeStudents": int(summary.active),
            "waitlistStudents": int(summary.waitlist),
            "certified": self.repo.count_certificates(self.db),
            "revenue": int(summary.revenue) / 100,
        }
