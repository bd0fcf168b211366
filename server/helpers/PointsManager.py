"""
Scoring engine: fixed point awards persisted as an atomic increment on the user record.

Callers must award exactly once per successfully persisted qualifying record
(attendance marked Present, task completed, feedback submitted) and only after
that record's write succeeded.
"""
import logging

from database.errors import PointsNotAwardedError, StoreUnavailableError
from models.models import Email

logger = logging.getLogger(__name__)

POINTS_CONFIG = {
    "ATTENDANCE": 20,
    "TASK_COMPLETION": 10,
    "FEEDBACK": 10,
}

USERS_COLLECTION = "users"


async def award_points(db, user_email, points: int) -> bool:
    """
    Add points to the user whose email matches user_email (case-insensitive).

    Returns False, without touching the store further, when no such user exists.
    StoreUnavailableError from the increment propagates.
    """
    if isinstance(points, bool) or not isinstance(points, int) or points <= 0:
        raise ValueError(f"points must be a positive integer, got {points!r}")

    email = Email(user_email)
    matched = await db.increment(USERS_COLLECTION, {"email": email}, "points", points)
    if not matched:
        logger.warning("Cannot award %d points: user not found for %s", points, email)
        return False

    logger.info("Awarded %d points to %s", points, email)
    return True


async def get_user_points(db, user_email) -> int:
    """Current points for the user, 0 when the user or the field is missing."""
    user = await db.find_one(USERS_COLLECTION, {"email": Email(user_email)})
    if not user:
        return 0
    return user.get("points") or 0


async def award_for_record(db, collection_name, record_id, user_email, points: int) -> bool:
    """
    Award points for a record that has already been written.

    The record write and the increment are not one transaction. If the increment
    fails the record stays and PointsNotAwardedError reports the under-count.
    """
    try:
        return await award_points(db, user_email, points)
    except StoreUnavailableError as e:
        error = PointsNotAwardedError(collection_name, record_id, Email(user_email), points)
        logger.error("Inconsistent write: %s", error)
        raise error from e
