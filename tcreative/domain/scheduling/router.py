"""Availability router - public slot lookup for the booking page"""

from fastapi import APIRouter, HTTPException, Query

from .availability import get_available_slots, get_work_days

router = APIRouter(prefix="/availability", tags=["Availability"])


@router.get("/slots")
async def get_slots(
    date: str = Query(..., description="YYYY-MM-DD"),
    assistant: str = Query(...),
):
    """Open time slots for an assistant on a date"""
    try:
        slots = get_available_slots(date, assistant)
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Invalid date, expected YYYY-MM-DD") from e
    return {"date": date, "assistant": assistant, "workDays": get_work_days(assistant), "slots": slots}
