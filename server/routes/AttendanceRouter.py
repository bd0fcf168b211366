import logging
from fastapi import APIRouter, HTTPException, Depends
from fastapi.responses import JSONResponse
from typing import Optional
from pydantic import BaseModel
from datetime import datetime
import uuid

from config.config import ENFORCE_UNIQUE_ATTENDANCE
from database.DB import get_db
from helpers.PointsManager import POINTS_CONFIG, award_for_record
from models.models import AttendanceStatus, Email
from .dependencies import require_senior

logger = logging.getLogger(__name__)

router = APIRouter()


# Pydantic models
class AttendanceMark(BaseModel):
    eventId: str
    userEmail: Email
    userName: Optional[str] = None
    status: AttendanceStatus


async def _mark_unique(db, payload: AttendanceMark, marker: dict):
    """
    One record per (event, user): re-marking overwrites the status. Points are
    claimed through the pointsAwarded flag so a pair is scored at most once.
    """
    pair = {"eventId": payload.eventId, "userEmail": payload.userEmail}
    await db.update(
        "attendance",
        pair,
        {
            "$set": {
                "userName": payload.userName,
                "status": payload.status.value,
                "markedByEmail": Email(marker["email"]),
                "markedByName": marker.get("name"),
                "markedAt": datetime.utcnow(),
            },
            "$setOnInsert": {"id": str(uuid.uuid4()), "pointsAwarded": False},
        },
        upsert=True
    )

    should_award = False
    if payload.status == AttendanceStatus.PRESENT:
        claim = await db.update(
            "attendance",
            {**pair, "pointsAwarded": {"$ne": True}},
            {"$set": {"pointsAwarded": True}}
        )
        should_award = claim["modified_count"] > 0

    record = await db.find_one("attendance", pair)
    return record, should_award


async def _mark_append(db, payload: AttendanceMark, marker: dict):
    """Every mark is a new record and every Present mark is scored."""
    is_present = payload.status == AttendanceStatus.PRESENT
    record = {
        "id": str(uuid.uuid4()),
        "eventId": payload.eventId,
        "userEmail": payload.userEmail,
        "userName": payload.userName,
        "status": payload.status.value,
        "markedByEmail": Email(marker["email"]),
        "markedByName": marker.get("name"),
        "markedAt": datetime.utcnow(),
        "pointsAwarded": is_present,
    }
    result = await db.add("attendance", record)
    if result["status"] != 200:
        raise HTTPException(status_code=500, detail="Failed to mark attendance")
    return result["data"], is_present


@router.post("/mark")
async def mark_attendance(payload: AttendanceMark, user: dict = Depends(require_senior), db = Depends(get_db)):
    """
    Record a member's attendance for an event (EB/EC/Core only).
    Present marks earn the member attendance points once the record is stored.
    """
    event = await db.find_one("events", {"id": payload.eventId})
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")

    if ENFORCE_UNIQUE_ATTENDANCE:
        record, should_award = await _mark_unique(db, payload, user)
    else:
        record, should_award = await _mark_append(db, payload, user)

    points_awarded = 0
    if should_award:
        awarded = await award_for_record(
            db, "attendance", record["id"], payload.userEmail, POINTS_CONFIG["ATTENDANCE"]
        )
        if awarded:
            points_awarded = POINTS_CONFIG["ATTENDANCE"]

    logger.info(
        "%s marked %s %s for event %s",
        user.get("email"), payload.userEmail, payload.status.value, payload.eventId
    )
    return JSONResponse(content={
        "message": f"Marked {payload.status.value}",
        "attendance": record,
        "points_awarded": points_awarded
    })


@router.get("/{event_id}")
async def get_event_attendance(event_id: str, user: dict = Depends(require_senior), db = Depends(get_db)):
    """Attendance records for one event (EB/EC/Core only)"""
    records = await db.get_where("attendance", "eventId", event_id)
    return JSONResponse(content={"attendance": records})
