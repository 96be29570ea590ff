"""Profile projection of identities."""

import logging
from datetime import UTC, datetime

from botocore.exceptions import ClientError

from models.user import Profile
from utils.dynamodb_utils import (
    parse_from_dynamodb,
    parse_items_from_dynamodb,
    prepare_for_dynamodb,
    scan_all,
)

logger = logging.getLogger(__name__)


class ProfileNotFoundError(Exception):
    """No profile exists for the identity."""

    pass


class ProfileService:
    """Service for reading and updating user profiles."""

    def __init__(self, table):
        """Initialize the service with a DynamoDB table."""
        self.table = table

    def create_profile(
        self, user_id: str, email: str | None, display_name: str | None
    ) -> Profile:
        """Create the profile for a newly registered identity."""
        now = datetime.now(UTC).isoformat()
        profile = Profile(
            user_id=user_id,
            email=email,
            display_name=display_name,
            created_at=now,
            updated_at=now,
        )
        try:
            self.table.put_item(
                Item=prepare_for_dynamodb(profile.model_dump()),
                ConditionExpression="attribute_not_exists(user_id)",
            )
        except ClientError as e:
            logger.error("Failed to create profile for %s: %s", user_id, e)
            raise Exception(f"Failed to create profile: {str(e)}")
        return profile

    def get_profile(self, user_id: str) -> Profile | None:
        """Get a profile by user ID."""
        try:
            response = self.table.get_item(Key={"user_id": user_id})
        except ClientError as e:
            raise Exception(f"Failed to retrieve profile for {user_id}: {str(e)}")

        item = response.get("Item")
        if not item:
            return None
        return Profile(**parse_from_dynamodb(item))

    def update_display_name(self, user_id: str, display_name: str) -> Profile:
        """Update the display name of an existing profile.

        Raises:
            ProfileNotFoundError: If the profile was never created
        """
        try:
            response = self.table.update_item(
                Key={"user_id": user_id},
                UpdateExpression="SET display_name = :name, updated_at = :now",
                ConditionExpression="attribute_exists(user_id)",
                ExpressionAttributeValues={
                    ":name": display_name,
                    ":now": datetime.now(UTC).isoformat(),
                },
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise ProfileNotFoundError(f"Profile {user_id} not found")
            raise Exception(f"Failed to update profile: {str(e)}")

        return Profile(**parse_from_dynamodb(response["Attributes"]))

    def list_profiles(self) -> list[Profile]:
        """List every profile, oldest first."""
        try:
            items = scan_all(self.table)
        except ClientError as e:
            raise Exception(f"Failed to list profiles: {str(e)}")

        profiles = [Profile(**item) for item in parse_items_from_dynamodb(items)]
        profiles.sort(key=lambda p: p.created_at)
        return profiles
