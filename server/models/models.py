from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, GetCoreSchemaHandler
from pydantic_core import core_schema
from datetime import datetime


class Email(str):
    """
    Normalized email identity. Lower-cased and stripped on construction so that
    two Emails compare equal whenever the addresses match case-insensitively.
    """

    def __new__(cls, value):
        if value is None:
            raise ValueError("email must not be None")
        return super().__new__(cls, str(value).strip().lower())

    def __repr__(self):
        return f"Email({str.__repr__(self)})"

    @classmethod
    def _validate(cls, value):
        email = cls(value)
        if not email:
            raise ValueError("email must not be blank")
        return email

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: GetCoreSchemaHandler):
        return core_schema.no_info_after_validator_function(
            cls._validate,
            core_schema.str_schema(),
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )


class Role(str, Enum):
    EB = "EB"
    EC = "EC"
    CORE = "Core"
    MEMBER = "Member"


SENIOR_ROLES = [Role.EB.value, Role.EC.value, Role.CORE.value]
ANALYTICS_ROLES = [Role.EB.value, Role.EC.value]

ROLE_PRIORITY = {
    Role.EB.value: 0,
    Role.EC.value: 1,
    Role.CORE.value: 2,
    Role.MEMBER.value: 3,
}
UNKNOWN_ROLE_PRIORITY = 4


class TaskStatus(str, Enum):
    UPCOMING = "Upcoming"
    TODAY = "Today"
    COMPLETED = "Completed"


class AttendanceStatus(str, Enum):
    PRESENT = "Present"
    ABSENT = "Absent"


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class MaterialCategory(str, Enum):
    PYQ = "PYQ"
    SOLUTION = "Solution"
    MATERIAL = "Material"


class EventType(str, Enum):
    WORKSHOP = "Workshop"
    HACKATHON = "Hackathon"
    MEET = "Meet"
    EVENT = "Event"


class Record(BaseModel):
    """Base for documents read back from the store; unknown fields are ignored."""
    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    id: str


class User(Record):
    email: Email
    name: str = ""
    shortName: Optional[str] = None
    photoURL: Optional[str] = None
    # Kept as a plain string so records with an unexpected role still load
    role: str = Role.MEMBER.value
    points: int = 0
    createdAt: Optional[datetime] = None

    def __init__(self, **data):
        if data.get("points") is None:
            data["points"] = 0
        super().__init__(**data)


class Task(Record):
    title: str = ""
    description: str = ""
    eventId: Optional[str] = None
    domain: str = ""
    priority: Priority = Priority.MEDIUM
    status: TaskStatus = TaskStatus.UPCOMING
    assignedToEmail: Optional[Email] = None
    assignedToName: Optional[str] = None
    dueDate: Optional[datetime] = None
    createdByEmail: Optional[Email] = None
    createdByName: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class Attendance(Record):
    eventId: str
    userEmail: Email
    userName: Optional[str] = None
    status: AttendanceStatus
    markedByEmail: Optional[Email] = None
    markedByName: Optional[str] = None
    markedAt: Optional[datetime] = None
    pointsAwarded: bool = False


class Feedback(Record):
    eventId: str
    userEmail: Email
    userName: Optional[str] = None
    rating: int = Field(ge=1, le=5)
    comments: str = ""
    createdAt: Optional[datetime] = None


class Event(Record):
    title: str
    description: str = ""
    date: datetime
    time: str = ""
    venue: str = ""
    priority: Priority = Priority.MEDIUM
    type: EventType = EventType.EVENT
    createdBy: Optional[str] = None
    createdAt: Optional[datetime] = None


class Announcement(Record):
    title: str
    content: str = ""
    priority: Priority = Priority.MEDIUM
    eventDate: Optional[str] = None
    eventTime: Optional[str] = None
    venue: Optional[str] = None
    createdBy: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class Academic(Record):
    """Shared study material; the file itself lives elsewhere and url points to it."""
    title: str
    description: str = ""
    url: str
    category: MaterialCategory
    subject: Optional[str] = None
    semester: Optional[str] = None
    year: Optional[str] = None
    createdBy: Optional[str] = None
    createdAt: Optional[datetime] = None


# Computed results handed to the presentation layer

class UserSummary(BaseModel):
    id: str
    email: Email
    name: str
    shortName: Optional[str] = None
    photoURL: Optional[str] = None
    role: str

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            shortName=user.shortName,
            photoURL=user.photoURL,
            role=user.role,
        )


class UserAnalytics(BaseModel):
    totalTasks: int = 0
    completedTasks: int = 0
    pendingTasks: int = 0
    taskCompletionRate: float = 0.0
    totalAttendance: int = 0
    attendedEvents: int = 0
    attendanceRate: float = 0.0
    totalFeedbacks: int = 0


class PerformanceTiers(BaseModel):
    task: str
    attendance: str
    feedback: str


class UserAnalyticsReport(BaseModel):
    user: UserSummary
    analytics: UserAnalytics
    tiers: PerformanceTiers


class LeaderboardEntry(BaseModel):
    user: UserSummary
    rank: int
    points: int
    topThree: bool = False
