"""Training router - FastAPI endpoints for programs and enrollments"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...models import Profile
from .schemas import (
    ClientTrainingResponse,
    EnrollmentCreate,
    EnrollmentStatusUpdate,
    ProgramCreate,
    ProgramRow,
    ProgramUpdate,
    PublicProgram,
    StudentRow,
    TrainingStats,
)
from .service import TrainingService

router = APIRouter(prefix="/training", tags=["Training"])


def get_training_service(db: Session = Depends(get_db)) -> TrainingService:
    """Dependency injection for TrainingService"""
    return TrainingService(db)


def _enrollment_result(enrollment) -> dict:
    return {"success": True, "enrollmentId": enrollment.id, "status": enrollment.status}


# ============================================================================
# PUBLIC & CLIENT
# ============================================================================


@router.get("/programs", response_model=list[PublicProgram])
async def get_public_programs(service: TrainingService = Depends(get_training_service)):
    return service.get_public_programs()


@router.get("/me", response_model=ClientTrainingResponse)
async def get_my_training(
    current_user: Profile = Depends(get_current_user),
    service: TrainingService = Depends(get_training_service),
):
    """Programs with open spots plus the client's enrollments and certificates"""
    return service.get_client_training(current_user.id)


@router.post("/programs/{program_id}/enroll")
async def enroll(
    program_id: int,
    current_user: Profile = Depends(get_current_user),
    service: TrainingService = Depends(get_training_service),
):
    return _enrollment_result(await service.client_enroll(current_user, program_id))


@router.post("/programs/{program_id}/waitlist")
async def join_waitlist(
    program_id: int,
    current_user: Profile = Depends(get_current_user),
    service: TrainingService = Depends(get_training_service),
):
    return _enrollment_result(service.client_join_waitlist(current_user.id, program_id))


# ============================================================================
# ADMIN
# ============================================================================


@router.get("/admin/programs", response_model=list[ProgramRow])
async def list_programs(
    _: Profile = Depends(require_admin),
    service: TrainingService = Depends(get_training_service),
):
    return service.list_programs()


@router.post("/admin/programs")
async def create_program(
    data: ProgramCreate,
    _: Profile = Depends(require_admin),
    service: TrainingService = Depends(get_training_service),
):
    program = service.create_program(data)
    return {"id": program.id, "slug": program.slug}


@router.patch("/admin/programs/{program_id}")
async def update_program(
    program_id: int,
    data: ProgramUpdate,
    _: Profile = Depends(require_admin),
    service: TrainingService = Depends(get_training_service),
):
    program = service.update_program(program_id, data)
    return {"id": program.id, "slug": program.slug}


@router.delete("/admin/programs/{program_id}")
async def delete_program(
    program_id: int,
    _: Profile = Depends(require_admin),
    service: TrainingService = Depends(get_training_service),
):
    return service.delete_program(program_id)


@router.post("/admin/programs/{program_id}/waitlist-toggle")
async def toggle_waitlist(
    program_id: int,
    _: Profile = Depends(require_admin),
    service: TrainingService = Depends(get_training_service),
):
    program = service.toggle_waitlist(program_id)
    return {"id": program.id, "waitlistOpen": program.waitlist_open}


@router.get("/admin/enrollments", response_model=list[StudentRow])
async def list_enrollments(
    _: Profile = Depends(require_admin),
    service: TrainingService = Depends(get_training_service),
):
    return service.list_enrollments()


@router.post("/admin/enrollments")
async def create_enrollment(
    data: EnrollmentCreate,
    _: Profile = Depends(require_admin),
    service: TrainingService = Depends(get_training_service),
):
    return _enrollment_result(service.create_enrollment(data))


@router.patch("/admin/enrollments/{enrollment_id}")
async def update_enrollment_status(
    enrollment_id: int,
    data: EnrollmentStatusUpdate,
    _: Profile = Depends(require_admin),
    service: TrainingService = Depends(get_training_service),
):
    enrollment = service.update_enrollment_status(enrollment_id, data.status)
    result = _enrollment_result(enrollment)
    result["certificateCode"] = enrollment.certificate.code if enrollment.certificate else None
    return result


@router.delete("/admin/enrollments/{enrollment_id}")
async def delete_enrollment(
    enrollment_id: int,
    _: Profile = Depends(require_admin),
    service: TrainingService = Depends(get_training_service),
):
    return service.delete_enrollment(enrollment_id)


@router.get("/admin/stats", response_model=TrainingStats)
async def get_training_stats(
    _: Profile = Depends(require_admin),
    service: TrainingService = Depends(get_training_service),
):
    return service.get_stats()
