"""
Cron endpoints for the external scheduler.
Each call is guarded by the shared x-cron-secret header; the same jobs also run in the ARQ worker.
"""

import logging

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from ..config import CRON_SECRET
from ..database import get_db
from ..services import notification_jobs
from ..webhook_security import constant_time_compare

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", tags=["Cron"])


async def verify_cron_secret(x_cron_secret: str = Header(default="")) -> None:
    if not CRON_SECRET or not constant_time_compare(x_cron_secret, CRON_SECRET):
        logger.warning("🚫 Cron request with invalid secret")
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.get("/booking-reminders", dependencies=[Depends(verify_cron_secret)])
async def booking_reminders(db: Session = Depends(get_db)):
    return await notification_jobs.send_booking_reminders(db)


@router.get("/review-requests", dependencies=[Depends(verify_cron_secret)])
async def review_requests(db: Session = Depends(get_db)):
    return await notification_jobs.send_review_requests(db)


@router.get("/birthdays", dependencies=[Depends(verify_cron_secret)])
async def birthdays(db: Session = Depends(get_db)):
    return await notification_jobs.send_birthday_greetings(db)
