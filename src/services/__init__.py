"""Services for the Complaint Tracker backend."""

from .auth_service import AuthService
from .complaint_service import ComplaintService
from .image_service import ImageService
from .profile_service import ProfileService

__all__ = [
    "AuthService",
    "ComplaintService",
    "ImageService",
    "ProfileService",
]
