import logging
from fastapi import APIRouter, HTTPException, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from datetime import datetime, timezone
import uuid

from database.DB import get_db
from database.errors import StoreUnavailableError
from models.models import Event, EventType, Priority
from .dependencies import get_current_user, require_senior

logger = logging.getLogger(__name__)

router = APIRouter()


def as_utc_naive(value: datetime) -> datetime:
    """Stored datetimes are naive UTC, like datetime.utcnow()."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# Pydantic models
class EventCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    date: datetime
    time: str = ""
    venue: str = ""
    priority: Priority = Priority.MEDIUM
    type: EventType = EventType.EVENT


@router.post('')
async def create_event(event_data: EventCreate, user: dict = Depends(require_senior), db = Depends(get_db)):
    """Create an event and announce it (EB/EC/Core only)"""
    try:
        now = datetime.utcnow()
        event_date = as_utc_naive(event_data.date)
        event = {
            "id": str(uuid.uuid4()),
            "title": event_data.title,
            "description": event_data.description,
            "date": event_date,
            "time": event_data.time,
            "venue": event_data.venue,
            "priority": event_data.priority.value,
            "type": event_data.type.value,
            "createdBy": user.get("name"),
            "createdAt": now,
        }

        result = await db.add("events", event)
        if result["status"] != 200:
            raise HTTPException(status_code=500, detail="Failed to create event")

        announcement = {
            "id": str(uuid.uuid4()),
            "title": f"New {event_data.type.value}: {event_data.title}",
            "content": event_data.description,
            "priority": event_data.priority.value,
            "eventDate": event_date.date().isoformat(),
            "eventTime": event_data.time,
            "venue": event_data.venue,
            "createdBy": user.get("name"),
            "createdAt": now,
        }
        await db.add("announcements", announcement)
        logger.info("Event %s created by %s", event["id"], user.get("email"))

        return JSONResponse(status_code=201, content={"message": "Event created successfully", "event": result["data"]})

    except (HTTPException, StoreUnavailableError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating event: {str(e)}")


@router.get('')
async def get_events(user: dict = Depends(get_current_user), db = Depends(get_db)):
    """All events, soonest first"""
    events = await db.get_all("events", sort=[("date", 1)])
    return JSONResponse(content={"events": events})


@router.delete('/{event_id}')
async def delete_event(event_id: str, user: dict = Depends(require_senior), db = Depends(get_db)):
    """
    Delete an event (EB/EC/Core only).
    Attendance for an event that has not happened yet goes with it; points already
    awarded are kept.
    """
    document = await db.find_one("events", {"id": event_id})
    if not document:
        raise HTTPException(status_code=404, detail="Event not found")
    event = Event(**document)

    await db.delete("events", {"id": event_id})

    removed_attendance = 0
    if as_utc_naive(event.date) > datetime.utcnow():
        result = await db.delete_many("attendance", {"eventId": event_id})
        removed_attendance = result["deleted_count"]

    logger.info("Event %s deleted by %s (%d attendance records removed)", event_id, user.get("email"), removed_attendance)
    return JSONResponse(content={
        "message": "Event deleted successfully",
        "attendance_removed": removed_attendance
    })
