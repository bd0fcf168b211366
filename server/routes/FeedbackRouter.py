from fastapi import APIRouter, HTTPException, Depends, Query
from fastapi.responses import JSONResponse
from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime
import uuid

from database.DB import get_db
from helpers.PointsManager import POINTS_CONFIG, award_for_record
from models.models import Email
from .dependencies import get_current_user, require_analytics_viewer

router = APIRouter()


# Pydantic models
class FeedbackCreate(BaseModel):
    eventId: str
    rating: int = Field(ge=1, le=5)
    comments: str = ""


@router.post('')
async def submit_feedback(payload: FeedbackCreate, user: dict = Depends(get_current_user), db = Depends(get_db)):
    """Submit feedback for an event as the signed-in user; each submission is scored."""
    event = await db.find_one("events", {"id": payload.eventId})
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")

    email = Email(user["email"])
    feedback = {
        "id": str(uuid.uuid4()),
        "eventId": payload.eventId,
        "userEmail": email,
        "userName": user.get("name"),
        "rating": payload.rating,
        "comments": payload.comments,
        "createdAt": datetime.utcnow(),
    }

    result = await db.add("feedback", feedback)
    if result["status"] != 200:
        raise HTTPException(status_code=500, detail="Failed to submit feedback")

    awarded = await award_for_record(db, "feedback", feedback["id"], email, POINTS_CONFIG["FEEDBACK"])

    return JSONResponse(status_code=201, content={
        "message": "Thank you for your feedback!",
        "feedback": result["data"],
        "points_awarded": POINTS_CONFIG["FEEDBACK"] if awarded else 0
    })


@router.get('')
async def get_feedback(
    user: dict = Depends(require_analytics_viewer),
    eventId: Optional[str] = Query(None),
    db = Depends(get_db)
):
    """Feedback for every event, or one event (EB/EC only)"""
    if eventId:
        records = await db.get_where("feedback", "eventId", eventId, sort=[("createdAt", -1)])
    else:
        records = await db.get_all("feedback", sort=[("createdAt", -1)])
    return JSONResponse(content={"feedback": records})
