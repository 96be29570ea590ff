#!/usr/bin/env python3
"""
Grant or revoke admin rights on a Cognito identity.

The custom:is_admin attribute is the only source of the admin flag. Tokens
issued before a change keep their old flag until they expire (1 hour).

Usage:
    python scripts/grant_admin.py admin@example.com
    python scripts/grant_admin.py admin@example.com --revoke
    python scripts/grant_admin.py --show admin@example.com
"""

import argparse
import logging
import os
import sys

import boto3
from botocore.exceptions import ClientError

# Add the src directory to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from services.auth_service import ADMIN_ATTRIBUTE

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def show_user(client, user_pool_id: str, email: str) -> None:
    """Print the identity attributes relevant to authorization."""
    response = client.admin_get_user(UserPoolId=user_pool_id, Username=email)
    attributes = {a["Name"]: a["Value"] for a in response.get("UserAttributes", [])}
    print(f"  sub:      {attributes.get('sub')}")
    print(f"  email:    {attributes.get('email')}")
    print(f"  name:     {attributes.get('name')}")
    print(f"  is_admin: {attributes.get(ADMIN_ATTRIBUTE, 'false')}")


def set_admin(client, user_pool_id: str, email: str, is_admin: bool) -> None:
    """Set the admin attribute on an identity."""
    client.admin_update_user_attributes(
        UserPoolId=user_pool_id,
        Username=email,
        UserAttributes=[
            {"Name": ADMIN_ATTRIBUTE, "Value": "true" if is_admin else "false"}
        ],
    )
    logger.info("Set %s=%s for %s", ADMIN_ATTRIBUTE, is_admin, email)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Manage complaint tracker admins")
    parser.add_argument("email", help="Email (username) of the identity")
    parser.add_argument(
        "--revoke", action="store_true", help="Remove admin rights instead of granting"
    )
    parser.add_argument(
        "--show", action="store_true", help="Only show the current attributes"
    )
    parser.add_argument(
        "--user-pool-id",
        default=os.environ.get("COGNITO_USER_POOL_ID"),
        help="Cognito user pool id (default: $COGNITO_USER_POOL_ID)",
    )
    args = parser.parse_args()

    if not args.user_pool_id:
        parser.error("--user-pool-id or COGNITO_USER_POOL_ID is required")

    client = boto3.client(
        "cognito-idp", region_name=os.environ.get("AWS_DEFAULT_REGION", "us-west-2")
    )

    try:
        if not args.show:
            set_admin(client, args.user_pool_id, args.email, not args.revoke)
        show_user(client, args.user_pool_id, args.email)
    except ClientError as e:
        logger.error("AWS error: %s", e.response["Error"]["Message"])
        sys.exit(1)


if __name__ == "__main__":
    main()
