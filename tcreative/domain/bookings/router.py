"""Booking router - FastAPI endpoints for booking operations"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin, require_staff
from ...database import get_db
from ...models import Profile
from .schemas import (
    AssistantBookingsResponse,
    BookingCreate,
    BookingFormOptions,
    BookingResponse,
    BookingRow,
    BookingStatusUpdate,
    BookingUpdate,
    ClientBookingsResponse,
    ClientReviewCreate,
    PaymentLinkRequest,
    PaymentLinkResponse,
    TerminalOrderResponse,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


# ============================================================================
# CLIENT
# ============================================================================


@router.get("/me", response_model=ClientBookingsResponse)
async def get_my_bookings(
    current_user: Profile = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Bookings for the signed-in client, newest first"""
    return service.get_client_bookings(current_user.id)


@router.post("/{booking_id}/cancel")
async def cancel_my_booking(
    booking_id: int,
    current_user: Profile = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return service.cancel_client_booking(current_user.id, booking_id)


@router.post("/{booking_id}/review")
async def review_my_booking(
    booking_id: int,
    data: ClientReviewCreate,
    current_user: Profile = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return service.submit_client_review(current_user, booking_id, data.rating, data.comment)


# ============================================================================
# ASSISTANT
# ============================================================================


@router.get("/assistant", response_model=AssistantBookingsResponse)
async def get_assistant_bookings(
    current_user: Profile = Depends(require_staff),
    service: BookingService = Depends(get_booking_service),
):
    """The signed-in assistant's schedule with summary stats"""
    return service.get_assistant_bookings(current_user.id)


@router.patch("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: int,
    data: BookingStatusUpdate,
    _: Profile = Depends(require_staff),
    service: BookingService = Depends(get_booking_service),
):
    return await service.update_booking_status(booking_id, data.status, data.cancellationReason)


@router.post("/{booking_id}/payment-link", response_model=PaymentLinkResponse)
async def create_payment_link(
    booking_id: int,
    data: PaymentLinkRequest,
    _: Profile = Depends(require_staff),
    service: BookingService = Depends(get_booking_service),
):
    """Square checkout link for the deposit or remaining balance"""
    return await service.create_payment_link(booking_id, data.type)


@router.post("/{booking_id}/terminal-order", response_model=TerminalOrderResponse)
async def create_terminal_order(
    booking_id: int,
    _: Profile = Depends(require_staff),
    service: BookingService = Depends(get_booking_service),
):
    """Square order to push to the studio Terminal for the remaining balance"""
    return await service.create_terminal_order(booking_id)


# ============================================================================
# ADMIN
# ============================================================================


@router.get("", response_model=list[BookingRow])
async def list_bookings(
    _: Profile = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    return service.list_bookings()


@router.get("/options", response_model=BookingFormOptions)
async def get_booking_form_options(
    _: Profile = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    """Client, service and staff choices for the booking form"""
    return service.get_select_options()


@router.post("", response_model=BookingResponse)
async def create_booking(
    data: BookingCreate,
    _: Profile = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    return service.create_booking(data)


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: int,
    data: BookingUpdate,
    _: Profile = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    return service.update_booking(booking_id, data)


@router.delete("/{booking_id}")
async def delete_booking(
    booking_id: int,
    _: Profile = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    return service.delete_booking(booking_id)
