"""Service for submitting, triaging and deleting complaints."""

import logging
from datetime import UTC, datetime
from typing import Any

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError
from ulid import ULID

from models.complaint import (
    AdminComment,
    Complaint,
    ComplaintCreate,
    ComplaintFilters,
    ComplaintStatus,
)
from services.image_service import ImageStorageError
from utils.constants import VALID_TAGS
from utils.dynamodb_utils import (
    combine_conditions,
    parse_from_dynamodb,
    parse_items_from_dynamodb,
    prepare_for_dynamodb,
    query_all,
    scan_all,
)
from utils.tags import parse_tag_filter

logger = logging.getLogger(__name__)

USER_ID_INDEX = "UserIdIndex"


class ComplaintNotFoundError(Exception):
    """Complaint does not exist, or is not owned by the requester."""

    pass


class ComplaintStoreError(Exception):
    """The record store failed."""

    pass


class ComplaintService:
    """Complaint operations against the DynamoDB complaints table.

    Counter and comment-log mutations are single update expressions so that
    concurrent requests cannot lose writes.
    """

    def __init__(self, table, image_service=None):
        """Initialize the complaint service.

        Args:
            table: DynamoDB table for complaints
            image_service: Optional ImageService for image uploads and cleanup
        """
        self.table = table
        self.image_service = image_service

    # ============================================
    # Create / Read
    # ============================================

    def submit_complaint(
        self,
        user_id: str,
        data: ComplaintCreate,
        image: tuple[str | None, bytes] | None = None,
    ) -> Complaint:
        """Create a complaint, running the image pipeline first if needed.

        Args:
            user_id: Authenticated owner (never taken from the request body)
            data: Validated title, description and tags
            image: Optional (content_type, bytes) of a single upload

        Returns:
            Created Complaint

        Raises:
            ImageValidationError: If the upload is rejected
            ImageStorageError: If the upload cannot be stored
            ComplaintStoreError: If the record cannot be written
        """
        image_url = None
        if image is not None:
            if self.image_service is None:
                raise ImageStorageError("Image storage is not configured")
            content_type, payload = image
            image_url = self.image_service.process_upload(content_type, payload)

        now = datetime.now(UTC).isoformat()
        complaint = Complaint(
            complaint_id=str(ULID()),
            user_id=user_id,
            title=data.title,
            description=data.description,
            status=ComplaintStatus.PENDING,
            tags=[tag for tag in data.tags if tag in VALID_TAGS],
            image_url=image_url,
            upvotes=0,
            admin_comments=[],
            created_at=now,
            updated_at=now,
        )

        try:
            item = prepare_for_dynamodb(complaint.model_dump(mode="json"))
            self.table.put_item(
                Item=item, ConditionExpression="attribute_not_exists(complaint_id)"
            )
        except ClientError as e:
            logger.error("Failed to store complaint for user %s: %s", user_id, e)
            if image_url:
                self._discard_image(image_url, complaint.complaint_id)
            raise ComplaintStoreError(f"Failed to submit complaint: {e}")

        logger.info("Complaint %s submitted by %s", complaint.complaint_id, user_id)
        return complaint

    def get_complaint(self, complaint_id: str) -> Complaint | None:
        """Get a complaint by ID."""
        try:
            response = self.table.get_item(Key={"complaint_id": complaint_id})
        except ClientError as e:
            logger.error("Failed to get complaint %s: %s", complaint_id, e)
            raise ComplaintStoreError(f"Failed to get complaint: {e}")

        item = response.get("Item")
        if not item:
            return None
        return Complaint(**parse_from_dynamodb(item))

    def list_user_complaints(
        self, user_id: str, tag: str | None = None
    ) -> list[Complaint]:
        """List a user's own complaints, newest first.

        Args:
            user_id: Owner ID
            tag: Optional tag; values outside the vocabulary are ignored

        Returns:
            List of Complaint objects
        """
        kwargs: dict[str, Any] = {
            "IndexName": USER_ID_INDEX,
            "KeyConditionExpression": Key("user_id").eq(user_id),
            "ScanIndexForward": False,
        }
        tag = parse_tag_filter(tag)
        if tag:
            kwargs["FilterExpression"] = Attr("tags").contains(tag)

        try:
            items = query_all(self.table, **kwargs)
        except ClientError as e:
            logger.error("Failed to list complaints for user %s: %s", user_id, e)
            raise ComplaintStoreError(f"Failed to list complaints: {e}")

        return self._to_sorted_complaints(items)

    def list_complaints(self, filters: ComplaintFilters) -> list[Complaint]:
        """List all complaints matching every supplied filter, newest first."""
        conditions = []
        if filters.status:
            conditions.append(Attr("status").eq(filters.status.value))
        if filters.date:
            conditions.append(Attr("created_at").begins_with(filters.date))
        if filters.user_id:
            conditions.append(Attr("user_id").eq(filters.user_id))
        tag = parse_tag_filter(filters.tag)
        if tag:
            conditions.append(Attr("tags").contains(tag))

        kwargs: dict[str, Any] = {}
        filter_expression = combine_conditions(conditions)
        if filter_expression is not None:
            kwargs["FilterExpression"] = filter_expression

        try:
            items = scan_all(self.table, **kwargs)
        except ClientError as e:
            logger.error("Failed to list complaints: %s", e)
            raise ComplaintStoreError(f"Failed to list complaints: {e}")

        return self._to_sorted_complaints(items)

    # ============================================
    # Atomic updates
    # ============================================

    def upvote(self, complaint_id: str) -> Complaint:
        """Increment the upvote counter in a single update expression."""
        return self._update(
            complaint_id,
            UpdateExpression="ADD upvotes :one SET updated_at = :now",
            ExpressionAttributeValues={":one": 1},
        )

    def add_comment(self, complaint_id: str, admin_id: str, text: str) -> Complaint:
        """Append an admin comment in a single update expression."""
        comment = AdminComment(
            text=text, timestamp=datetime.now(UTC).isoformat(), admin_id=admin_id
        )
        return self._update(
            complaint_id,
            UpdateExpression=(
                "SET admin_comments = list_append("
                "if_not_exists(admin_comments, :empty), :comment), "
                "updated_at = :now"
            ),
            ExpressionAttributeValues={
                ":empty": [],
                ":comment": [comment.model_dump()],
            },
        )

    def update_status(self, complaint_id: str, status: ComplaintStatus) -> Complaint:
        """Set the triage status."""
        return self._update(
            complaint_id,
            UpdateExpression="SET #status = :status, updated_at = :now",
            ExpressionAttributeNames={"#status": "status"},
            ExpressionAttributeValues={":status": ComplaintStatus(status).value},
        )

    def assign(self, complaint_id: str, assigned_to: str) -> Complaint:
        """Set the assignee. The assignee is not checked against any roster."""
        return self._update(
            complaint_id,
            UpdateExpression="SET assigned_to = :assignee, updated_at = :now",
            ExpressionAttributeValues={":assignee": assigned_to},
        )

    # ============================================
    # Deletion
    # ============================================

    def delete_own_complaint(self, complaint_id: str, user_id: str) -> Complaint:
        """Delete a complaint only if the stored owner is the requester.

        Raises:
            ComplaintNotFoundError: If absent or owned by someone else
        """
        try:
            response = self.table.delete_item(
                Key={"complaint_id": complaint_id},
                ConditionExpression="attribute_exists(complaint_id) AND user_id = :uid",
                ExpressionAttributeValues={":uid": user_id},
                ReturnValues="ALL_OLD",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise ComplaintNotFoundError(f"Complaint {complaint_id} not found")
            logger.error("Failed to delete complaint %s: %s", complaint_id, e)
            raise ComplaintStoreError(f"Failed to delete complaint: {e}")

        return self._after_delete(response)

    def delete_complaint(self, complaint_id: str) -> Complaint:
        """Delete any complaint (admin).

        Raises:
            ComplaintNotFoundError: If absent
        """
        try:
            response = self.table.delete_item(
                Key={"complaint_id": complaint_id},
                ConditionExpression="attribute_exists(complaint_id)",
                ReturnValues="ALL_OLD",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise ComplaintNotFoundError(f"Complaint {complaint_id} not found")
            logger.error("Failed to delete complaint %s: %s", complaint_id, e)
            raise ComplaintStoreError(f"Failed to delete complaint: {e}")

        return self._after_delete(response)

    def remove_image(self, complaint_id: str, user_id: str) -> Complaint:
        """Delete a complaint's image and clear its URL (owner only).

        The object delete and the field clear are separate calls; a failure
        between them is logged for reconciliation.

        Raises:
            ComplaintNotFoundError: If absent, not owned, or without an image
        """
        complaint = self.get_complaint(complaint_id)
        if complaint is None or complaint.user_id != user_id:
            raise ComplaintNotFoundError(f"Complaint {complaint_id} not found")
        if not complaint.image_url:
            raise ComplaintNotFoundError(f"Complaint {complaint_id} has no image")

        if self.image_service is not None:
            self.image_service.delete_image(complaint.image_url)

        try:
            response = self.table.update_item(
                Key={"complaint_id": complaint_id},
                UpdateExpression="REMOVE image_url SET updated_at = :now",
                ConditionExpression="attribute_exists(complaint_id) AND user_id = :uid",
                ExpressionAttributeValues={
                    ":uid": user_id,
                    ":now": datetime.now(UTC).isoformat(),
                },
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            logger.warning(
                "RECONCILE: image %s deleted but complaint %s still references it: %s",
                complaint.image_url,
                complaint_id,
                e,
            )
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise ComplaintNotFoundError(f"Complaint {complaint_id} not found")
            raise ComplaintStoreError(f"Failed to clear image: {e}")

        return Complaint(**parse_from_dynamodb(response["Attributes"]))

    # ============================================
    # Statistics
    # ============================================

    def get_statistics(self) -> dict[str, Any]:
        """Aggregate counts across every complaint."""
        try:
            items = scan_all(self.table)
        except ClientError as e:
            logger.error("Failed to compute complaint statistics: %s", e)
            raise ComplaintStoreError(f"Failed to compute statistics: {e}")

        complaints = [Complaint(**item) for item in parse_items_from_dynamodb(items)]
        by_status = {s.value: 0 for s in ComplaintStatus}
        by_tag = {tag: 0 for tag in VALID_TAGS}
        for complaint in complaints:
            by_status[complaint.status.value] += 1
            for tag in complaint.tags:
                if tag in by_tag:
                    by_tag[tag] += 1

        assigned = sum(1 for c in complaints if c.assigned_to)
        return {
            "total": len(complaints),
            "by_status": by_status,
            "by_tag": by_tag,
            "total_upvotes": sum(c.upvotes for c in complaints),
            "assigned": assigned,
            "unassigned": len(complaints) - assigned,
            "with_image": sum(1 for c in complaints if c.image_url),
        }

    # ============================================
    # Helpers
    # ============================================

    def _update(self, complaint_id: str, **kwargs) -> Complaint:
        """Run a conditional update_item on an existing complaint."""
        kwargs["ExpressionAttributeValues"] = prepare_for_dynamodb(
            {**kwargs["ExpressionAttributeValues"], ":now": datetime.now(UTC).isoformat()}
        )
        try:
            response = self.table.update_item(
                Key={"complaint_id": complaint_id},
                ConditionExpression="attribute_exists(complaint_id)",
                ReturnValues="ALL_NEW",
                **kwargs,
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise ComplaintNotFoundError(f"Complaint {complaint_id} not found")
            logger.error("Failed to update complaint %s: %s", complaint_id, e)
            raise ComplaintStoreError(f"Failed to update complaint: {e}")

        return Complaint(**parse_from_dynamodb(response["Attributes"]))

    def _after_delete(self, response: dict) -> Complaint:
        """Build the deleted complaint and remove its image, if any."""
        complaint = Complaint(**parse_from_dynamodb(response["Attributes"]))
        logger.info("Complaint %s deleted", complaint.complaint_id)
        if complaint.image_url:
            self._discard_image(complaint.image_url, complaint.complaint_id)
        return complaint

    def _discard_image(self, image_url: str, complaint_id: str) -> None:
        """Best-effort image removal when no record references it anymore."""
        if self.image_service is None:
            return
        try:
            self.image_service.delete_image(image_url)
        except ImageStorageError as e:
            logger.warning(
                "RECONCILE: orphaned image %s for complaint %s: %s",
                image_url,
                complaint_id,
                e,
            )

    @staticmethod
    def _to_sorted_complaints(items: list[dict]) -> list[Complaint]:
        complaints = [Complaint(**item) for item in parse_items_from_dynamodb(items)]
        complaints.sort(key=lambda c: c.created_at, reverse=True)
        return complaints
