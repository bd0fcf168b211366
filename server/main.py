import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware
from contextlib import asynccontextmanager

from config.config import SESSION_SECRET_KEY, FRONTEND_URL, LOG_LEVEL
from config.logging_config import setup_logging
from database.DB import Database
from database.errors import StoreUnavailableError, PointsNotAwardedError
from routes import (
    AuthRouter, EventRouter, AnnouncementRouter, TaskRouter,
    AttendanceRouter, FeedbackRouter, AnalyticsRouter, AcademicsRouter,
)

''' The backend API Endpoints setup '''

setup_logging(LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: reuse an injected store (tests) or connect to MongoDB
    owns_db = not hasattr(app.state, "db")
    if owns_db:
        db = Database()
        db.check_connection()
        db.connect()
        await db.ensure_indexes()
        app.state.db = db
        logger.info("Database connected successfully")

    yield

    # Shutdown
    if owns_db:
        app.state.db.close()
        del app.state.db
    logger.info("Application shutting down")

app = FastAPI(title="Society Organiser API", lifespan=lifespan)

allowed_origins = [FRONTEND_URL]
if FRONTEND_URL != "http://localhost:5173":
    allowed_origins.append("http://localhost:5173")

logger.info("Allowed CORS origins: %s", allowed_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
    max_age=3600,
)

if not SESSION_SECRET_KEY:
    raise ValueError("SESSION_SECRET_KEY environment variable not set!")

app.add_middleware(
    SessionMiddleware,
    secret_key=SESSION_SECRET_KEY,
    session_cookie="session",
    max_age=3600,
    same_site="none",
    https_only=True
)


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
    # Distinct from an empty result: the client must show an error, not zeros
    return JSONResponse(status_code=503, content={
        "error": "store_unavailable",
        "detail": f"Could not reach the database ({exc.operation} on {exc.collection})"
    })


@app.exception_handler(PointsNotAwardedError)
async def points_not_awarded_handler(request: Request, exc: PointsNotAwardedError):
    return JSONResponse(status_code=502, content={
        "error": "points_not_awarded",
        "detail": str(exc),
        "record_id": exc.record_id,
        "collection": exc.collection
    })


# Include routers
app.include_router(AuthRouter.router, prefix="/api", tags=["Authentication"])
app.include_router(EventRouter.router, prefix="/api/events", tags=["Events"])
app.include_router(AnnouncementRouter.router, prefix="/api/announcements", tags=["Announcements"])
app.include_router(TaskRouter.router, prefix="/api/tasks", tags=["Tasks"])
app.include_router(AttendanceRouter.router, prefix="/api/attendance", tags=["Attendance"])
app.include_router(FeedbackRouter.router, prefix="/api/feedback", tags=["Feedback"])
app.include_router(AcademicsRouter.router, prefix="/api/academics", tags=["Academics"])
app.include_router(AnalyticsRouter.router, prefix="/api", tags=["Analytics"])
