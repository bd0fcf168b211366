import logging
from fastapi import APIRouter, HTTPException, Depends, Query
from fastapi.responses import JSONResponse
from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime
import uuid

from database.DB import get_db
from helpers.PointsManager import POINTS_CONFIG, award_for_record
from models.models import SENIOR_ROLES, Email, Priority, Task, TaskStatus
from .dependencies import get_current_user, require_senior
from .EventRouter import as_utc_naive

logger = logging.getLogger(__name__)

router = APIRouter()

UNASSIGN_FIELDS = ("assignedToEmail", "assignedToName")


# Pydantic models
class TaskCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    eventId: Optional[str] = None
    domain: str = ""
    priority: Priority = Priority.MEDIUM
    status: TaskStatus = TaskStatus.UPCOMING
    assignedToEmail: Optional[Email] = None
    assignedToName: Optional[str] = None
    dueDate: datetime


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    eventId: Optional[str] = None
    domain: Optional[str] = None
    priority: Optional[Priority] = None
    status: Optional[TaskStatus] = None
    assignedToEmail: Optional[Email] = None
    assignedToName: Optional[str] = None
    dueDate: Optional[datetime] = None


@router.post('')
async def create_task(payload: TaskCreate, user: dict = Depends(require_senior), db = Depends(get_db)):
    """Create a task (EB/EC/Core only). Tasks cannot be born Completed."""
    if payload.status == TaskStatus.COMPLETED:
        raise HTTPException(status_code=400, detail="New tasks cannot start as Completed")

    task = {
        "id": str(uuid.uuid4()),
        "title": payload.title,
        "description": payload.description,
        "eventId": payload.eventId,
        "domain": payload.domain,
        "priority": payload.priority.value,
        "status": payload.status.value,
        "assignedToEmail": payload.assignedToEmail,
        "assignedToName": payload.assignedToName,
        "dueDate": as_utc_naive(payload.dueDate),
        "createdByEmail": Email(user["email"]),
        "createdByName": user.get("name"),
        "createdAt": datetime.utcnow(),
    }

    result = await db.add("tasks", task)
    if result["status"] != 200:
        raise HTTPException(status_code=500, detail="Failed to create task")
    return JSONResponse(status_code=201, content={"message": "Task created successfully", "task": result["data"]})


@router.get('')
async def get_tasks(
    user: dict = Depends(get_current_user),
    domain: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    db = Depends(get_db)
):
    """Tasks, newest first, optionally filtered; "All" disables a filter"""
    query = {}
    for field, value in (("domain", domain), ("priority", priority), ("status", status)):
        if value and value != "All":
            query[field] = value

    result = await db.find_many("tasks", query, sort=[("createdAt", -1)])
    return JSONResponse(content={"tasks": result["data"]})


@router.put('/{task_id}')
async def update_task(task_id: str, payload: TaskUpdate, user: dict = Depends(require_senior), db = Depends(get_db)):
    """
    Edit a task (EB/EC/Core only).
    Completion goes through /complete so the assignee is scored exactly once.
    """
    document = await db.find_one("tasks", {"id": task_id})
    if not document:
        raise HTTPException(status_code=404, detail="Task not found")
    task = Task(**document)

    update_data = payload.model_dump(exclude_unset=True)
    nulled = sorted(field for field, value in update_data.items() if value is None and field not in UNASSIGN_FIELDS)
    if nulled:
        raise HTTPException(status_code=400, detail=f"Fields cannot be null: {', '.join(nulled)}")
    # Unassigning clears the cached name as well
    if "assignedToEmail" in update_data and update_data["assignedToEmail"] is None:
        update_data["assignedToName"] = None
    if "status" in update_data:
        new_status = update_data["status"]
        if new_status == TaskStatus.COMPLETED:
            raise HTTPException(status_code=400, detail="Use the complete endpoint to mark a task Completed")
        if task.status == TaskStatus.COMPLETED:
            raise HTTPException(status_code=409, detail="Completed tasks cannot change status")
        update_data["status"] = new_status.value
    if update_data.get("priority") is not None:
        update_data["priority"] = update_data["priority"].value
    if update_data.get("dueDate") is not None:
        update_data["dueDate"] = as_utc_naive(update_data["dueDate"])
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")

    update_data["updatedAt"] = datetime.utcnow()
    await db.update("tasks", {"id": task_id}, {"$set": update_data})

    updated = await db.find_one("tasks", {"id": task_id})
    return JSONResponse(content={"message": "Task updated successfully", "task": updated})


@router.post('/{task_id}/complete')
async def complete_task(task_id: str, user: dict = Depends(get_current_user), db = Depends(get_db)):
    """
    Mark a task Completed (senior roles or the assignee) and score the assignee.
    The status filter on the update makes the transition happen once.
    """
    document = await db.find_one("tasks", {"id": task_id})
    if not document:
        raise HTTPException(status_code=404, detail="Task not found")
    task = Task(**document)

    is_assignee = task.assignedToEmail is not None and task.assignedToEmail == Email(user["email"])
    if user.get("role") not in SENIOR_ROLES and not is_assignee:
        raise HTTPException(status_code=403, detail="Only senior roles or the assignee can complete this task")

    result = await db.update(
        "tasks",
        {"id": task_id, "status": {"$ne": TaskStatus.COMPLETED.value}},
        {"$set": {"status": TaskStatus.COMPLETED.value, "updatedAt": datetime.utcnow()}}
    )
    if result["modified_count"] == 0:
        raise HTTPException(status_code=409, detail="Task already completed")

    points_awarded = False
    if task.assignedToEmail:
        points_awarded = await award_for_record(
            db, "tasks", task_id, task.assignedToEmail, POINTS_CONFIG["TASK_COMPLETION"]
        )
    logger.info("Task %s completed by %s", task_id, user.get("email"))

    return JSONResponse(content={
        "message": "Task marked as completed",
        "task_id": task_id,
        "points_awarded": POINTS_CONFIG["TASK_COMPLETION"] if points_awarded else 0
    })


@router.delete('/{task_id}')
async def delete_task(task_id: str, user: dict = Depends(require_senior), db = Depends(get_db)):
    result = await db.delete("tasks", {"id": task_id})
    if result["deleted_count"] == 0:
        raise HTTPException(status_code=404, detail="Task not found")
    return JSONResponse(content={"message": "Task deleted successfully"})
