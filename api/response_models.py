"""
Shared Pydantic models for the billboard API.

Usage:
    from api.response_models import BillboardResponse, MutationResponse

    @router.get("/billboard/{day}", response_model=BillboardResponse)
    async def billboard(day: str): ...
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

# ==== Billboard ====


class BillboardResponse(BaseModel):
    """Every teacher's day, in roster order."""

    date: str = Field(description="YYYY-MM-DD")
    teachers: list[dict[str, Any]] = Field(default_factory=list, description="One queue per teacher")
    flag_time: str | None = Field(default=None, description="Earliest first lesson across teachers")
    unassigned_bookings: list[str] = Field(
        default_factory=list, description="Bookings with a lesson that has no teacher"
    )


class StatsResponse(BaseModel):
    date: str
    revenue: dict[str, float]
    lessons: dict[str, float]
    teachers: dict[str, dict[str, Any]] = Field(default_factory=dict)


# ==== Conflicts ====


class ConflictCheckRequest(BaseModel):
    """A proposed lesson to check against a teacher's day."""

    start_time: str = Field(..., description="HH:MM", examples=["13:30"])
    duration_minutes: int = Field(..., gt=0)
    location: str | None = None


# ==== Queue planning ====

QueueOp = Literal[
    "move_up",
    "move_down",
    "remove",
    "adjust_duration",
    "adjust_offset",
    "close_gap",
    "compact",
    "shift",
    "align",
]


class QueueOperation(BaseModel):
    op: QueueOp
    entry_id: str | None = Field(default=None, description="Event id, or lesson id for unsaved entries")
    delta_minutes: int = 0
    time: str | None = Field(default=None, description="HH:MM, for align")


class PlanRequest(BaseModel):
    operations: list[QueueOperation] = Field(default_factory=list)
    commit: bool = Field(default=False, description="Persist changed entries")


class PlanResponse(BaseModel):
    queue: dict[str, Any]
    applied: list[bool]
    pending_changes: list[dict[str, Any]] = Field(default_factory=list)
    pending_deletions: list[str] = Field(default_factory=list)
    submitted: list[dict[str, Any]] = Field(default_factory=list)


# ==== Day flag ====


class FlagRequest(BaseModel):
    """Move the first lesson of the selected teachers to one time."""

    time: str = Field(..., description="HH:MM", examples=["09:30"])
    teacher_ids: list[str] | None = Field(default=None, description="All teachers when omitted")
    commit: bool = Field(default=False, description="Persist the shifted lessons")


class FlagResponse(BaseModel):
    date: str
    flag_time: str | None
    applied: dict[str, bool]
    teachers: list[dict[str, Any]] = Field(default_factory=list)
    pending_changes: list[dict[str, Any]] = Field(default_factory=list)
    submitted: list[dict[str, Any]] = Field(default_factory=list)


# ==== Events ====


class CreateEventRequest(BaseModel):
    lesson_id: str
    date: str = Field(..., description="YYYY-MM-DD")
    start_time: str = Field(..., description="HH:MM")
    duration_minutes: int = Field(..., gt=0)
    location: str
    status: str = "planned"
    force: bool = Field(
        default=False,
        description="Create even if it overlaps the teacher's day or falls outside operating hours",
    )


class UpdateEventRequest(BaseModel):
    date: str | None = Field(default=None, description="ISO datetime")
    duration: int | None = Field(default=None, gt=0)
    location: str | None = None
    status: str | None = None


# ==== Mutation Result ====


class MutationResponse(BaseModel):
    """Standard mutation result."""

    success: bool = Field(description="Whether the operation succeeded")
    message: str = ""

    model_config = {"extra": "allow"}


# ==== Health Check ====


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str
