import logging
from typing import AsyncIterator, Iterable, List

from models.models import LeaderboardEntry, User, UserSummary

logger = logging.getLogger(__name__)

TOP_RANKS = 3


def compute_leaderboard(users: Iterable[User]) -> List[LeaderboardEntry]:
    """
    Rank users by points, highest first.

    sorted() is stable, so users with equal points keep the order the store
    returned them in. Ranks are 1-based positions; the first three are flagged.
    """
    ranked = sorted(users, key=lambda user: user.points or 0, reverse=True)
    return [
        LeaderboardEntry(
            user=UserSummary.from_user(user),
            rank=position,
            points=user.points or 0,
            topThree=position <= TOP_RANKS,
        )
        for position, user in enumerate(ranked, start=1)
    ]


async def watch_leaderboard(db) -> AsyncIterator[List[LeaderboardEntry]]:
    """Recompute the leaderboard for every users snapshot pushed by the store."""
    snapshots = db.subscribe("users")
    try:
        async for documents in snapshots:
            yield compute_leaderboard(User(**doc) for doc in documents)
    finally:
        await snapshots.aclose()
        logger.debug("Leaderboard subscription released")
