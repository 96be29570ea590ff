"""Data models for the Complaint Tracker."""

from .complaint import (
    AdminComment,
    AdminCommentRequest,
    Complaint,
    ComplaintAssignment,
    ComplaintCreate,
    ComplaintFilters,
    ComplaintStatus,
    ComplaintStatusUpdate,
)
from .user import LoginRequest, Profile, ProfileUpdateRequest, SignupRequest

__all__ = [
    "AdminComment",
    "AdminCommentRequest",
    "Complaint",
    "ComplaintAssignment",
    "ComplaintCreate",
    "ComplaintFilters",
    "ComplaintStatus",
    "ComplaintStatusUpdate",
    "LoginRequest",
    "Profile",
    "ProfileUpdateRequest",
    "SignupRequest",
]
