"""
Per-user performance analytics.

Tasks, attendance and feedback reference users by email rather than by id, so
each metric is a filter of its collection against the user's normalized email.
Everything here is a pure function over already-fetched records: the caller
fetches, this module only counts.
"""
from typing import Iterable, List, Optional, Sequence

from models.models import (
    ROLE_PRIORITY, UNKNOWN_ROLE_PRIORITY,
    Attendance, AttendanceStatus, Feedback, PerformanceTiers, Task, TaskStatus,
    User, UserAnalytics, UserAnalyticsReport, UserSummary,
)

EXCELLENT = "Excellent"
GOOD = "Good"
NEEDS_IMPROVEMENT = "Needs Improvement"

ACTIVE = "Active"
MODERATE = "Moderate"
LOW = "Low"


def rate(part: int, total: int) -> float:
    """Percentage of part in total, 0 when total is 0."""
    if total <= 0:
        return 0.0
    return part * 100 / total


def task_performance(completion_rate: float) -> str:
    if completion_rate >= 75:
        return EXCELLENT
    if completion_rate >= 50:
        return GOOD
    return NEEDS_IMPROVEMENT


def attendance_performance(attendance_rate: float) -> str:
    if attendance_rate >= 80:
        return EXCELLENT
    if attendance_rate >= 60:
        return GOOD
    return NEEDS_IMPROVEMENT


def feedback_engagement(feedback_count: int) -> str:
    if feedback_count >= 5:
        return ACTIVE
    if feedback_count >= 3:
        return MODERATE
    return LOW


def compute_user_analytics(
    user: User,
    tasks: Iterable[Task],
    attendance_records: Iterable[Attendance],
    feedback_records: Iterable[Feedback],
) -> UserAnalytics:
    email = user.email

    user_tasks = [task for task in tasks if task.assignedToEmail == email]
    completed_tasks = sum(1 for task in user_tasks if task.status == TaskStatus.COMPLETED)

    user_attendance = [record for record in attendance_records if record.userEmail == email]
    attended_events = sum(1 for record in user_attendance if record.status == AttendanceStatus.PRESENT)

    total_feedbacks = sum(1 for record in feedback_records if record.userEmail == email)

    return UserAnalytics(
        totalTasks=len(user_tasks),
        completedTasks=completed_tasks,
        pendingTasks=len(user_tasks) - completed_tasks,
        taskCompletionRate=rate(completed_tasks, len(user_tasks)),
        totalAttendance=len(user_attendance),
        attendedEvents=attended_events,
        attendanceRate=rate(attended_events, len(user_attendance)),
        totalFeedbacks=total_feedbacks,
    )


def performance_tiers(analytics: UserAnalytics) -> PerformanceTiers:
    return PerformanceTiers(
        task=task_performance(analytics.taskCompletionRate),
        attendance=attendance_performance(analytics.attendanceRate),
        feedback=feedback_engagement(analytics.totalFeedbacks),
    )


def build_user_report(
    user: User,
    tasks: Iterable[Task],
    attendance_records: Iterable[Attendance],
    feedback_records: Iterable[Feedback],
) -> UserAnalyticsReport:
    analytics = compute_user_analytics(user, tasks, attendance_records, feedback_records)
    return UserAnalyticsReport(
        user=UserSummary.from_user(user),
        analytics=analytics,
        tiers=performance_tiers(analytics),
    )


def role_priority(role: Optional[str]) -> int:
    return ROLE_PRIORITY.get(role, UNKNOWN_ROLE_PRIORITY)


def compute_all_users_analytics(
    users: Iterable[User],
    tasks: Sequence[Task],
    attendance_records: Sequence[Attendance],
    feedback_records: Sequence[Feedback],
) -> List[UserAnalyticsReport]:
    """
    Reports for every user, ordered EB, EC, Core, Member, then unknown roles.

    The ordering is stable within a role and has nothing to do with points;
    the leaderboard ranks by merit, this view by hierarchy.
    """
    # The record collections are walked once per user
    tasks = list(tasks)
    attendance_records = list(attendance_records)
    feedback_records = list(feedback_records)

    reports = [
        build_user_report(user, tasks, attendance_records, feedback_records)
        for user in users
    ]
    return sorted(reports, key=lambda report: role_priority(report.user.role))


def filter_reports(
    reports: Iterable[UserAnalyticsReport],
    search: Optional[str] = None,
    role: Optional[str] = None,
) -> List[UserAnalyticsReport]:
    """Narrow reports by a name/email substring and an exact role ("All" means any)."""
    needle = (search or "").strip().lower()
    results = []
    for report in reports:
        if needle and needle not in report.user.name.lower() and needle not in report.user.email:
            continue
        if role and role != "All" and report.user.role != role:
            continue
        results.append(report)
    return results
