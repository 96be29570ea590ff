"""Tests for ComplaintService."""

from decimal import Decimal
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from models.complaint import ComplaintCreate, ComplaintFilters, ComplaintStatus
from services.complaint_service import (
    USER_ID_INDEX,
    ComplaintNotFoundError,
    ComplaintService,
    ComplaintStoreError,
)
from services.image_service import ImageStorageError, UnsupportedMediaError


def _client_error(code: str, operation: str = "Operation") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestComplaintService:
    """Test cases for ComplaintService."""

    @pytest.fixture
    def mock_image_service(self):
        image_service = Mock()
        image_service.process_upload.return_value = (
            "https://images.example.com/complaints/abc.jpg"
        )
        image_service.delete_image.return_value = True
        return image_service

    @pytest.fixture
    def service(self, mock_dynamodb_table, mock_image_service):
        return ComplaintService(
            table=mock_dynamodb_table, image_service=mock_image_service
        )

    # -----------------------------------------------------------------------
    # submit_complaint
    # -----------------------------------------------------------------------

    def test_submit_complaint(self, service, mock_dynamodb_table):
        """Broken light scenario: pending, zero upvotes, filtered tags."""
        data = ComplaintCreate(
            title="Broken light", description="Hallway B", tags=["electricity"]
        )

        complaint = service.submit_complaint("user-123", data)

        assert complaint.user_id == "user-123"
        assert complaint.status == ComplaintStatus.PENDING
        assert complaint.upvotes == 0
        assert complaint.tags == ["electricity"]
        assert complaint.image_url is None
        assert complaint.complaint_id

        item = mock_dynamodb_table.put_item.call_args.kwargs["Item"]
        assert item["user_id"] == "user-123"
        assert item["status"] == "pending"
        assert item["upvotes"] == Decimal("0")
        assert item["tags"] == ["electricity"]
        assert "image_url" not in item
        assert (
            mock_dynamodb_table.put_item.call_args.kwargs["ConditionExpression"]
            == "attribute_not_exists(complaint_id)"
        )

    def test_submit_drops_unknown_tags(self, service, mock_dynamodb_table):
        data = ComplaintCreate(title="t", description="d", tags=["canteen", "bogus"])

        complaint = service.submit_complaint("user-123", data)

        assert complaint.tags == ["canteen"]

    def test_submit_with_image(
        self, service, mock_dynamodb_table, mock_image_service
    ):
        data = ComplaintCreate(title="Wobbly chair", description="Room 4")

        complaint = service.submit_complaint(
            "user-123", data, image=("image/png", b"png-bytes")
        )

        mock_image_service.process_upload.assert_called_once_with(
            "image/png", b"png-bytes"
        )
        assert complaint.image_url == "https://images.example.com/complaints/abc.jpg"
        item = mock_dynamodb_table.put_item.call_args.kwargs["Item"]
        assert item["image_url"] == complaint.image_url

    def test_submit_rejected_image_writes_nothing(
        self, service, mock_dynamodb_table, mock_image_service
    ):
        mock_image_service.process_upload.side_effect = UnsupportedMediaError("no")

        with pytest.raises(UnsupportedMediaError):
            service.submit_complaint(
                "user-123",
                ComplaintCreate(title="t", description="d"),
                image=("text/plain", b"x"),
            )

        mock_dynamodb_table.put_item.assert_not_called()

    def test_submit_record_failure_discards_uploaded_image(
        self, service, mock_dynamodb_table, mock_image_service
    ):
        mock_dynamodb_table.put_item.side_effect = _client_error("InternalServerError")

        with pytest.raises(ComplaintStoreError):
            service.submit_complaint(
                "user-123",
                ComplaintCreate(title="t", description="d"),
                image=("image/png", b"png"),
            )

        mock_image_service.delete_image.assert_called_once_with(
            "https://images.example.com/complaints/abc.jpg"
        )

    def test_submit_record_failure_with_cleanup_failure(
        self, service, mock_dynamodb_table, mock_image_service, caplog
    ):
        mock_dynamodb_table.put_item.side_effect = _client_error("InternalServerError")
        mock_image_service.delete_image.side_effect = ImageStorageError("down")

        with pytest.raises(ComplaintStoreError):
            service.submit_complaint(
                "user-123",
                ComplaintCreate(title="t", description="d"),
                image=("image/png", b"png"),
            )

        assert "RECONCILE" in caplog.text

    def test_submit_image_without_storage(self, mock_dynamodb_table):
        service = ComplaintService(table=mock_dynamodb_table)

        with pytest.raises(ImageStorageError):
            service.submit_complaint(
                "user-123",
                ComplaintCreate(title="t", description="d"),
                image=("image/png", b"png"),
            )

    # -----------------------------------------------------------------------
    # reads
    # -----------------------------------------------------------------------

    def test_get_complaint(self, service, mock_dynamodb_table, sample_complaint_item):
        mock_dynamodb_table.get_item.return_value = {"Item": sample_complaint_item}

        complaint = service.get_complaint("01JABCDEFGHJKMNPQRSTVWXYZ0")

        assert complaint.title == "Broken light"
        assert complaint.upvotes == 0
        assert isinstance(complaint.upvotes, int)

    def test_get_complaint_missing(self, service, mock_dynamodb_table):
        mock_dynamodb_table.get_item.return_value = {}

        assert service.get_complaint("nope") is None

    def test_list_user_complaints_queries_owner_index(
        self, service, mock_dynamodb_table, sample_complaint_item
    ):
        older = {
            **sample_complaint_item,
            "complaint_id": "older",
            "created_at": "2026-10-01T08:00:00+00:00",
        }
        mock_dynamodb_table.query.return_value = {
            "Items": [older, sample_complaint_item]
        }

        complaints = service.list_user_complaints("user-123")

        kwargs = mock_dynamodb_table.query.call_args.kwargs
        assert kwargs["IndexName"] == USER_ID_INDEX
        assert kwargs["ScanIndexForward"] is False
        assert "FilterExpression" not in kwargs
        assert [c.complaint_id for c in complaints] == [
            "01JABCDEFGHJKMNPQRSTVWXYZ0",
            "older",
        ]

    def test_list_user_complaints_with_tag(self, service, mock_dynamodb_table):
        service.list_user_complaints("user-123", tag="canteen")

        assert "FilterExpression" in mock_dynamodb_table.query.call_args.kwargs

    def test_list_user_complaints_unknown_tag_ignored(
        self, service, mock_dynamodb_table
    ):
        service.list_user_complaints("user-123", tag="bogus")

        assert "FilterExpression" not in mock_dynamodb_table.query.call_args.kwargs

    def test_list_user_complaints_paginates(
        self, service, mock_dynamodb_table, sample_complaint_item
    ):
        second = {**sample_complaint_item, "complaint_id": "second"}
        mock_dynamodb_table.query.side_effect = [
            {"Items": [sample_complaint_item], "LastEvaluatedKey": {"k": "1"}},
            {"Items": [second]},
        ]

        complaints = service.list_user_complaints("user-123")

        assert len(complaints) == 2
        assert mock_dynamodb_table.query.call_count == 2
        assert mock_dynamodb_table.query.call_args.kwargs["ExclusiveStartKey"] == {
            "k": "1"
        }

    def test_list_complaints_without_filters(self, service, mock_dynamodb_table):
        service.list_complaints(ComplaintFilters())

        mock_dynamodb_table.scan.assert_called_once_with()

    def test_list_complaints_with_filters(self, service, mock_dynamodb_table):
        service.list_complaints(
            ComplaintFilters(
                status=ComplaintStatus.WORKING,
                date="2026-10-18",
                user_id="user-123",
                tag="campus",
            )
        )

        assert "FilterExpression" in mock_dynamodb_table.scan.call_args.kwargs

    def test_list_complaints_store_error(self, service, mock_dynamodb_table):
        mock_dynamodb_table.scan.side_effect = _client_error("InternalServerError")

        with pytest.raises(ComplaintStoreError):
            service.list_complaints(ComplaintFilters())

    # -----------------------------------------------------------------------
    # atomic updates
    # -----------------------------------------------------------------------

    def test_upvote_is_single_atomic_update(
        self, service, mock_dynamodb_table, sample_complaint_item
    ):
        mock_dynamodb_table.update_item.return_value = {
            "Attributes": {**sample_complaint_item, "upvotes": Decimal("1")}
        }

        complaint = service.upvote("01JABCDEFGHJKMNPQRSTVWXYZ0")

        assert complaint.upvotes == 1
        mock_dynamodb_table.get_item.assert_not_called()
        kwargs = mock_dynamodb_table.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"].startswith("ADD upvotes :one")
        assert kwargs["ExpressionAttributeValues"][":one"] == Decimal("1")
        assert kwargs["ConditionExpression"] == "attribute_exists(complaint_id)"

    def test_upvote_missing(self, service, mock_dynamodb_table):
        mock_dynamodb_table.update_item.side_effect = _client_error(
            "ConditionalCheckFailedException"
        )

        with pytest.raises(ComplaintNotFoundError):
            service.upvote("nope")

    def test_add_comment_uses_list_append(
        self, service, mock_dynamodb_table, sample_complaint_item
    ):
        comment = {
            "text": "On it",
            "timestamp": "2026-10-18T09:00:00+00:00",
            "admin_id": "admin-1",
        }
        mock_dynamodb_table.update_item.return_value = {
            "Attributes": {**sample_complaint_item, "admin_comments": [comment]}
        }

        complaint = service.add_comment("01JABCDEFGHJKMNPQRSTVWXYZ0", "admin-1", "On it")

        kwargs = mock_dynamodb_table.update_item.call_args.kwargs
        assert "list_append" in kwargs["UpdateExpression"]
        appended = kwargs["ExpressionAttributeValues"][":comment"]
        assert len(appended) == 1
        assert appended[0]["text"] == "On it"
        assert appended[0]["admin_id"] == "admin-1"
        assert complaint.admin_comments[0].text == "On it"

    def test_update_status(self, service, mock_dynamodb_table, sample_complaint_item):
        mock_dynamodb_table.update_item.return_value = {
            "Attributes": {**sample_complaint_item, "status": "working"}
        }

        complaint = service.update_status(
            "01JABCDEFGHJKMNPQRSTVWXYZ0", ComplaintStatus.WORKING
        )

        assert complaint.status == ComplaintStatus.WORKING
        kwargs = mock_dynamodb_table.update_item.call_args.kwargs
        assert kwargs["ExpressionAttributeNames"] == {"#status": "status"}
        assert kwargs["ExpressionAttributeValues"][":status"] == "working"

    def test_update_status_rejects_unknown_value(self, service, mock_dynamodb_table):
        with pytest.raises(ValueError):
            service.update_status("01JABCDEFGHJKMNPQRSTVWXYZ0", "closed")

        mock_dynamodb_table.update_item.assert_not_called()

    def test_assign(self, service, mock_dynamodb_table, sample_complaint_item):
        mock_dynamodb_table.update_item.return_value = {
            "Attributes": {**sample_complaint_item, "assigned_to": "electrician-7"}
        }

        complaint = service.assign("01JABCDEFGHJKMNPQRSTVWXYZ0", "electrician-7")

        assert complaint.assigned_to == "electrician-7"

    def test_update_store_error(self, service, mock_dynamodb_table):
        mock_dynamodb_table.update_item.side_effect = _client_error(
            "ProvisionedThroughputExceededException"
        )

        with pytest.raises(ComplaintStoreError):
            service.assign("id", "someone")

    # -----------------------------------------------------------------------
    # deletion
    # -----------------------------------------------------------------------

    def test_delete_own_complaint_checks_owner(
        self, service, mock_dynamodb_table, sample_complaint_item
    ):
        mock_dynamodb_table.delete_item.return_value = {
            "Attributes": sample_complaint_item
        }

        complaint = service.delete_own_complaint("01JABCDEFGHJKMNPQRSTVWXYZ0", "user-123")

        assert complaint.complaint_id == "01JABCDEFGHJKMNPQRSTVWXYZ0"
        kwargs = mock_dynamodb_table.delete_item.call_args.kwargs
        assert "user_id = :uid" in kwargs["ConditionExpression"]
        assert kwargs["ExpressionAttributeValues"] == {":uid": "user-123"}

    def test_delete_own_complaint_not_owner(self, service, mock_dynamodb_table):
        mock_dynamodb_table.delete_item.side_effect = _client_error(
            "ConditionalCheckFailedException"
        )

        with pytest.raises(ComplaintNotFoundError):
            service.delete_own_complaint("01JABCDEFGHJKMNPQRSTVWXYZ0", "intruder")

    def test_delete_removes_image(
        self, service, mock_dynamodb_table, mock_image_service, sample_complaint_item
    ):
        url = "https://images.example.com/complaints/abc.jpg"
        mock_dynamodb_table.delete_item.return_value = {
            "Attributes": {**sample_complaint_item, "image_url": url}
        }

        service.delete_complaint("01JABCDEFGHJKMNPQRSTVWXYZ0")

        mock_image_service.delete_image.assert_called_once_with(url)

    def test_delete_complaint_missing(self, service, mock_dynamodb_table):
        mock_dynamodb_table.delete_item.side_effect = _client_error(
            "ConditionalCheckFailedException"
        )

        with pytest.raises(ComplaintNotFoundError):
            service.delete_complaint("nope")

    def test_remove_image(
        self, service, mock_dynamodb_table, mock_image_service, sample_complaint_item
    ):
        url = "https://images.example.com/complaints/abc.jpg"
        mock_dynamodb_table.get_item.return_value = {
            "Item": {**sample_complaint_item, "image_url": url}
        }
        mock_dynamodb_table.update_item.return_value = {
            "Attributes": sample_complaint_item
        }

        complaint = service.remove_image("01JABCDEFGHJKMNPQRSTVWXYZ0", "user-123")

        assert complaint.image_url is None
        mock_image_service.delete_image.assert_called_once_with(url)
        kwargs = mock_dynamodb_table.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"].startswith("REMOVE image_url")

    def test_remove_image_not_owner(
        self, service, mock_dynamodb_table, mock_image_service, sample_complaint_item
    ):
        mock_dynamodb_table.get_item.return_value = {
            "Item": {
                **sample_complaint_item,
                "image_url": "https://images.example.com/complaints/abc.jpg",
            }
        }

        with pytest.raises(ComplaintNotFoundError):
            service.remove_image("01JABCDEFGHJKMNPQRSTVWXYZ0", "intruder")

        mock_image_service.delete_image.assert_not_called()
        mock_dynamodb_table.update_item.assert_not_called()

    def test_remove_image_when_none(
        self, service, mock_dynamodb_table, sample_complaint_item
    ):
        mock_dynamodb_table.get_item.return_value = {"Item": sample_complaint_item}

        with pytest.raises(ComplaintNotFoundError):
            service.remove_image("01JABCDEFGHJKMNPQRSTVWXYZ0", "user-123")

    def test_remove_image_field_clear_failure_logged(
        self,
        service,
        mock_dynamodb_table,
        mock_image_service,
        sample_complaint_item,
        caplog,
    ):
        mock_dynamodb_table.get_item.return_value = {
            "Item": {
                **sample_complaint_item,
                "image_url": "https://images.example.com/complaints/abc.jpg",
            }
        }
        mock_dynamodb_table.update_item.side_effect = _client_error(
            "InternalServerError"
        )

        with pytest.raises(ComplaintStoreError):
            service.remove_image("01JABCDEFGHJKMNPQRSTVWXYZ0", "user-123")

        mock_image_service.delete_image.assert_called_once()
        assert "RECONCILE" in caplog.text

    # -----------------------------------------------------------------------
    # statistics
    # -----------------------------------------------------------------------

    def test_get_statistics(self, service, mock_dynamodb_table, sample_complaint_item):
        mock_dynamodb_table.scan.return_value = {
            "Items": [
                sample_complaint_item,
                {
                    **sample_complaint_item,
                    "complaint_id": "2",
                    "status": "finished",
                    "tags": ["canteen", "electricity"],
                    "upvotes": Decimal("4"),
                    "assigned_to": "team-a",
                    "image_url": "https://images.example.com/complaints/x.jpg",
                },
            ]
        }

        stats = service.get_statistics()

        assert stats["total"] == 2
        assert stats["by_status"] == {"pending": 1, "working": 0, "finished": 1}
        assert stats["by_tag"]["electricity"] == 2
        assert stats["by_tag"]["canteen"] == 1
        assert stats["by_tag"]["furniture"] == 0
        assert stats["total_upvotes"] == 4
        assert stats["assigned"] == 1
        assert stats["unassigned"] == 1
        assert stats["with_image"] == 1
