import asyncio
import json
import logging
from fastapi import APIRouter, Request, HTTPException, Depends, Query
from fastapi.responses import JSONResponse, StreamingResponse
from typing import Optional

from database.DB import get_db
from database.errors import StoreUnavailableError
from helpers.Leaderboard import compute_leaderboard, watch_leaderboard
from helpers.PointsManager import get_user_points
from helpers.UserAnalytics import build_user_report, compute_all_users_analytics, filter_reports
from models.models import Attendance, Email, Feedback, Task, User
from .dependencies import get_current_user, require_analytics_viewer

logger = logging.getLogger(__name__)

router = APIRouter()


def _dump(models):
    return [model.model_dump(mode="json") for model in models]


@router.get("/analytics/me")
async def my_analytics(user: dict = Depends(get_current_user), db = Depends(get_db)):
    """Task, attendance and feedback analytics for the signed-in user"""
    email = Email(user["email"])
    document = await db.find_one("users", {"email": email})
    if not document:
        raise HTTPException(status_code=404, detail="User record not found")

    # Any failed fetch fails the whole view; partial data is never aggregated
    tasks, attendance, feedback = await asyncio.gather(
        db.get_where("tasks", "assignedToEmail", email),
        db.get_where("attendance", "userEmail", email),
        db.get_where("feedback", "userEmail", email),
    )

    report = build_user_report(
        User(**document),
        [Task(**doc) for doc in tasks],
        [Attendance(**doc) for doc in attendance],
        [Feedback(**doc) for doc in feedback],
    )
    return JSONResponse(content=report.model_dump(mode="json"))


@router.get("/analytics/users")
async def all_users_analytics(
    user: dict = Depends(require_analytics_viewer),
    search: Optional[str] = Query(None),
    role: Optional[str] = Query(None),
    db = Depends(get_db)
):
    """Analytics for every user, EB first down to Member (EB/EC only)"""
    users, tasks, attendance, feedback = await asyncio.gather(
        db.get_all("users"),
        db.get_all("tasks"),
        db.get_all("attendance"),
        db.get_all("feedback"),
    )

    reports = compute_all_users_analytics(
        [User(**doc) for doc in users],
        [Task(**doc) for doc in tasks],
        [Attendance(**doc) for doc in attendance],
        [Feedback(**doc) for doc in feedback],
    )
    reports = filter_reports(reports, search=search, role=role)
    return JSONResponse(content={"users": _dump(reports)})


@router.get("/leaderboard")
async def leaderboard(
    user: dict = Depends(get_current_user),
    limit: Optional[int] = Query(None, ge=1),
    db = Depends(get_db)
):
    """All users ranked by points, highest first"""
    users = await db.get_all("users")
    entries = compute_leaderboard(User(**doc) for doc in users)
    if limit:
        entries = entries[:limit]
    return JSONResponse(content={"leaderboard": _dump(entries)})


@router.get("/leaderboard/live")
async def leaderboard_live(request: Request, user: dict = Depends(get_current_user), db = Depends(get_db)):
    """Server-Sent Events stream: one full leaderboard per change to the users collection"""

    async def stream():
        updates = watch_leaderboard(db)
        try:
            async for entries in updates:
                if await request.is_disconnected():
                    break
                yield f"data: {json.dumps(_dump(entries))}\n\n"
        except StoreUnavailableError as e:
            logger.error("Live leaderboard stopped: %s", e)
            yield f"event: error\ndata: {json.dumps({'error': 'store_unavailable'})}\n\n"
        finally:
            await updates.aclose()

    return StreamingResponse(stream(), media_type="text/event-stream")


@router.get("/users/{email}/points")
async def user_points(email: str, user: dict = Depends(get_current_user), db = Depends(get_db)):
    normalized = Email(email)
    return JSONResponse(content={"email": normalized, "points": await get_user_points(db, normalized)})
