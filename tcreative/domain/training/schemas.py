"""Training domain schemas - Pydantic models for programs and enrollments"""

from typing import Optional

from pydantic import BaseModel, field_validator

from ..catalog.schemas import SERVICE_CATEGORIES

PROGRAM_FORMATS = ("in_person", "hybrid", "online")
ENROLLMENT_STATUSES = ("waitlisted", "enrolled", "in_progress", "completed", "withdrawn")


class ProgramCreate(BaseModel):
    name: str
    type: str
    description: Optional[str] = None
    format: str = "in_person"
    priceInCents: Optional[int] = None
    depositInCents: Optional[int] = None
    durationHours: Optional[int] = None
    durationDays: Optional[int] = None
    maxStudents: Optional[int] = None
    certificationProvided: bool = True
    kitIncluded: bool = False
    isActive: bool = True
    waitlistOpen: bool = True
    sortOrder: int = 0
    sessions: int = 0  # Placeholder weekly sessions to schedule

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Program name is required")
        return v.strip()

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        if v not in SERVICE_CATEGORIES:
            raise ValueError(f"Type must be one of: {', '.join(SERVICE_CATEGORIES)}")
        return v

    @field_validator("format")
    @classmethod
    def validate_format(cls, v):
        if v not in PROGRAM_FORMATS:
            raise ValueError(f"Format must be one of: {', '.join(PROGRAM_FORMATS)}")
        return v

    @field_validator("priceInCents", "depositInCents", "maxStudents", "sessions")
    @classmethod
    def validate_non_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError("Value cannot be negative")
        return v


class ProgramUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = None
    format: Optional[str] = None
    priceInCents: Optional[int] = None
    depositInCents: Optional[int] = None
    durationHours: Optional[int] = None
    durationDays: Optional[int] = None
    maxStudents: Optional[int] = None
    certificationProvided: Optional[bool] = None
    kitIncluded: Optional[bool] = None
    isActive: Optional[bool] = None
    waitlistOpen: Optional[bool] = None
    sortOrder: Optional[int] = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        if v is not None and v not in SERVICE_CATEGORIES:
            raise ValueError(f"Type must be one of: {', '.join(SERVICE_CATEGORIES)}")
        return v

    @field_validator("format")
    @classmethod
    def validate_format(cls, v):
        if v is not None and v not in PROGRAM_FORMATS:
            raise ValueError(f"Format must be one of: {', '.join(PROGRAM_FORMATS)}")
        return v


class EnrollmentCreate(BaseModel):
    """Admin-created enrollment"""

    clientId: str
    programId: int
    status: str = "enrolled"
    amountPaidInCents: int = 0

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in ENROLLMENT_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(ENROLLMENT_STATUSES)}")
        return v


class EnrollmentStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in ENROLLMENT_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(ENROLLMENT_STATUSES)}")
        return v


class NextSession(BaseModel):
    startsAt: str
    location: Optional[str] = None


class PublicProgram(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    category: str
    format: str
    durationHours: Optional[int] = None
    durationDays: Optional[int] = None
    priceInCents: Optional[int] = None
    certificationProvided: bool
    kitIncluded: bool
    maxStudents: Optional[int] = None
    nextSession: Optional[NextSession] = None
    curriculum: list[str] = []


class ProgramModuleSummary(BaseModel):
    name: str
    description: Optional[str] = None
    lessonCount: int


class ClientProgram(BaseModel):
    id: int
    name: str
    type: str
    price: float
    description: str
    format: str
    certificationProvided: bool
    kitIncluded: bool
    maxSpots: int
    spotsLeft: int
    waitlistOpen: bool
    modules: list[ProgramModuleSummary]
    nextSession: Optional[NextSession] = None
    enrollmentStatus: Optional[str] = None


class ClientEnrollment(BaseModel):
    id: int
    programId: int
    programName: str
    programType: str
    status: Optional[str] = None
    amountPaidCents: int
    totalPriceCents: int
    sessionStartsAt: Optional[str] = None
    sessionLocation: Optional[str] = None


class ClientCertificate(BaseModel):
    id: int
    programName: str
    programType: str
    certificateCode: str
    issuedAt: str


class ClientTrainingResponse(BaseModel):
    programs: list[ClientProgram]
    enrollments: list[ClientEnrollment]
    certificates: list[ClientCertificate]


class ProgramRow(BaseModel):
    id: int
    name: str
    type: str
    price: float
    sessions: int
    description: str
    active: bool
    maxSpots: int
    waitlistOpen: bool


class StudentRow(BaseModel):
    id: int
    clientId: str
    name: str
    initials: str
    program: str
    programId: int
    status: str
    enrolled: str
    amountPaid: float
    amountTotal: float
    certified: bool
    certDate: Optional[str] = None
    certificateCode: Optional[str] = None


class TrainingStats(BaseModel):
    activeStudents: int
    waitlistStudents: int
    certified: int
    revenue: float
