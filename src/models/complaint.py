"""Complaint data models."""

from enum import Enum

from pydantic import BaseModel, Field, field_validator


class ComplaintStatus(str, Enum):
    """Triage status of a complaint."""

    PENDING = "pending"  # Newly submitted
    WORKING = "working"  # Picked up by an admin
    FINISHED = "finished"  # Resolved


class AdminComment(BaseModel):
    """An entry in a complaint's admin comment log."""

    text: str
    timestamp: str = Field(..., description="ISO timestamp when the comment was added")
    admin_id: str


class Complaint(BaseModel):
    """Stored complaint record."""

    complaint_id: str = Field(..., description="ULID, sortable by creation time")
    user_id: str = Field(..., description="Owner identity id")
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    status: ComplaintStatus = ComplaintStatus.PENDING
    tags: list[str] = Field(default_factory=list)
    image_url: str | None = None
    upvotes: int = Field(default=0, ge=0)
    admin_comments: list[AdminComment] = Field(default_factory=list)
    assigned_to: str | None = None
    created_at: str
    updated_at: str | None = None


class ComplaintCreate(BaseModel):
    """Validated input for creating a complaint."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    tags: list[str] = Field(default_factory=list)

    @field_validator("title", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class ComplaintStatusUpdate(BaseModel):
    """Request body for PUT /admin/complaints/{id}/status."""

    status: ComplaintStatus


class ComplaintAssignment(BaseModel):
    """Request body for PUT /admin/complaints/{id}/assign."""

    assigned_to: str = Field(..., min_length=1, max_length=200)


class AdminCommentRequest(BaseModel):
    """Request body for POST /admin/complaints/{id}/comment."""

    text: str = Field(..., min_length=1, max_length=2000)

    @field_validator("text")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class ComplaintFilters(BaseModel):
    """Conjunctive filters for the admin complaint listing."""

    status: ComplaintStatus | None = None
    date: str | None = Field(None, pattern=r"^\d{4}-\d{2}-\d{2}$")
    user_id: str | None = None
    tag: str | None = None
