import logging
from fastapi import APIRouter, HTTPException, Depends
from fastapi.responses import JSONResponse
from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime
import uuid

from database.DB import get_db
from models.models import Announcement, Priority
from .dependencies import get_current_user, require_senior

logger = logging.getLogger(__name__)

router = APIRouter()


# Pydantic models
class AnnouncementCreate(BaseModel):
    title: str = Field(min_length=1)
    content: str = ""
    priority: Priority = Priority.MEDIUM
    eventDate: Optional[str] = None
    eventTime: Optional[str] = None
    venue: Optional[str] = None


class AnnouncementUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    priority: Optional[Priority] = None
    eventDate: Optional[str] = None
    eventTime: Optional[str] = None
    venue: Optional[str] = None


@router.get('')
async def get_announcements(user: dict = Depends(get_current_user), db = Depends(get_db)):
    """Newest first"""
    announcements = await db.get_all("announcements", sort=[("createdAt", -1)])
    return JSONResponse(content={"announcements": announcements})


@router.post('')
async def create_announcement(payload: AnnouncementCreate, user: dict = Depends(require_senior), db = Depends(get_db)):
    announcement = payload.model_dump(mode="json")
    announcement.update({
        "id": str(uuid.uuid4()),
        "createdBy": user.get("name"),
        "createdAt": datetime.utcnow(),
    })

    result = await db.add("announcements", announcement)
    if result["status"] != 200:
        raise HTTPException(status_code=500, detail="Failed to create announcement")
    return JSONResponse(status_code=201, content={"message": "Announcement created successfully", "announcement": result["data"]})


@router.put('/{announcement_id}')
async def update_announcement(announcement_id: str, payload: AnnouncementUpdate, user: dict = Depends(require_senior), db = Depends(get_db)):
    update_data = payload.model_dump(mode="json", exclude_none=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")

    document = await db.find_one("announcements", {"id": announcement_id})
    if not document:
        raise HTTPException(status_code=404, detail="Announcement not found")
    announcement = Announcement(**document)

    update_data["updatedAt"] = datetime.utcnow()
    await db.update("announcements", {"id": announcement_id}, {"$set": update_data})
    logger.info("Announcement '%s' edited by %s", announcement.title, user.get("email"))

    updated = Announcement(**await db.find_one("announcements", {"id": announcement_id}))
    return JSONResponse(content={
        "message": "Announcement updated successfully",
        "announcement": updated.model_dump(mode="json")
    })


@router.delete('/{announcement_id}')
async def delete_announcement(announcement_id: str, user: dict = Depends(require_senior), db = Depends(get_db)):
    result = await db.delete("announcements", {"id": announcement_id})
    if result["deleted_count"] == 0:
        raise HTTPException(status_code=404, detail="Announcement not found")
    return JSONResponse(content={"message": "Announcement deleted successfully"})
