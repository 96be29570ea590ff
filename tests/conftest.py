"""Pytest configuration and shared fixtures."""

import io
from decimal import Decimal
from unittest.mock import Mock

import pytest
from PIL import Image

from models.complaint import Complaint, ComplaintStatus
from models.user import Profile
from services.auth_service import SessionIdentity

TEST_JWT_SECRET = "unit-test-secret-key"


@pytest.fixture
def jwt_secret():
    """Signing secret shared by token tests."""
    return TEST_JWT_SECRET


@pytest.fixture
def sample_identity():
    """A regular (non-admin) identity."""
    return SessionIdentity(
        user_id="user-123", email="student@example.com", is_admin=False, name="Sam"
    )


@pytest.fixture
def admin_identity():
    """An admin identity."""
    return SessionIdentity(
        user_id="admin-1", email="admin@example.com", is_admin=True, name="Ada"
    )


@pytest.fixture
def sample_complaint():
    """A freshly submitted complaint."""
    return Complaint(
        complaint_id="01JABCDEFGHJKMNPQRSTVWXYZ0",
        user_id="user-123",
        title="Broken light",
        description="Hallway B",
        status=ComplaintStatus.PENDING,
        tags=["electricity"],
        image_url=None,
        upvotes=0,
        admin_comments=[],
        created_at="2026-10-18T08:00:00+00:00",
        updated_at="2026-10-18T08:00:00+00:00",
    )


@pytest.fixture
def sample_complaint_item():
    """The DynamoDB item form of sample_complaint."""
    return {
        "complaint_id": "01JABCDEFGHJKMNPQRSTVWXYZ0",
        "user_id": "user-123",
        "title": "Broken light",
        "description": "Hallway B",
        "status": "pending",
        "tags": ["electricity"],
        "upvotes": Decimal("0"),
        "admin_comments": [],
        "created_at": "2026-10-18T08:00:00+00:00",
        "updated_at": "2026-10-18T08:00:00+00:00",
    }


@pytest.fixture
def sample_profile():
    """A profile created at signup."""
    return Profile(
        user_id="user-123",
        email="student@example.com",
        display_name="Sam",
        created_at="2026-10-01T08:00:00+00:00",
        updated_at="2026-10-01T08:00:00+00:00",
    )


@pytest.fixture
def mock_dynamodb_table():
    """Create a mock DynamoDB table for testing."""
    mock_table = Mock()
    mock_table.put_item.return_value = {}
    mock_table.get_item.return_value = {}
    mock_table.query.return_value = {"Items": []}
    mock_table.scan.return_value = {"Items": []}
    mock_table.delete_item.return_value = {}
    mock_table.update_item.return_value = {}
    return mock_table


@pytest.fixture
def make_image():
    """Factory producing encoded image bytes of a given size and format."""

    def _make(
        width: int = 100,
        height: int = 80,
        fmt: str = "PNG",
        mode: str = "RGB",
        color=(200, 30, 30),
    ) -> bytes:
        if mode == "RGBA" and len(color) == 3:
            color = (*color, 128)
        img = Image.new(mode, (width, height), color)
        buffer = io.BytesIO()
        img.save(buffer, format=fmt)
        return buffer.getvalue()

    return _make
