from .DocumentSerializer import DocumentSerializerVisitor
from .Leaderboard import compute_leaderboard, watch_leaderboard
from .PointsManager import POINTS_CONFIG, award_points, get_user_points
from .RoleAllowList import resolve_role
from .UserAnalytics import (
    build_user_report,
    compute_all_users_analytics,
    compute_user_analytics,
    filter_reports,
)

__all__ = [
    'DocumentSerializerVisitor',
    'compute_leaderboard',
    'watch_leaderboard',
    'POINTS_CONFIG',
    'award_points',
    'get_user_points',
    'resolve_role',
    'build_user_report',
    'compute_all_users_analytics',
    'compute_user_analytics',
    'filter_reports',
]
