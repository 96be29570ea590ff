"""Authentication service: Cognito identities and JWT session tokens."""

import logging
import os
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from botocore.exceptions import ClientError
from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from utils.constants import JWT_ALGORITHM, SESSION_TOKEN_TTL_SECONDS

logger = logging.getLogger(__name__)

# Cognito attribute that marks an identity as an administrator. It is the
# only source of the admin flag; every token issuance reads it.
ADMIN_ATTRIBUTE = "custom:is_admin"

# Cognito error codes that mean "wrong credentials" to the caller
_CREDENTIAL_ERROR_CODES = {
    "NotAuthorizedException",
    "UserNotFoundException",
    "UserNotConfirmedException",
    "PasswordResetRequiredException",
}


@dataclass
class SessionIdentity:
    """Identity resolved from the identity store or from a session token."""

    user_id: str
    email: str | None
    is_admin: bool = False
    name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "email": self.email,
            "name": self.name,
            "is_admin": self.is_admin,
        }


class AuthenticationError(Exception):
    """Credentials or session token rejected."""

    pass


class IdentityConflictError(Exception):
    """An identity with this email already exists."""

    pass


class IdentityServiceError(Exception):
    """The identity store failed for a reason unrelated to the caller."""

    pass


class AuthService:
    """Service for handling authentication."""

    JWT_ALGORITHM = JWT_ALGORITHM
    TOKEN_TTL_SECONDS = SESSION_TOKEN_TTL_SECONDS

    def __init__(
        self,
        identity_client,
        jwt_secret: str | None = None,
        user_pool_id: str | None = None,
        client_id: str | None = None,
    ):
        """Initialize auth service.

        Args:
            identity_client: boto3 cognito-idp client
            jwt_secret: Secret for signing session tokens
            user_pool_id: Cognito user pool id
            client_id: Cognito app client id (no client secret)

        Raises:
            ValueError: If no signing secret is configured
        """
        self.identity_client = identity_client
        self.jwt_secret = jwt_secret or os.environ.get("JWT_SECRET_KEY")
        if not self.jwt_secret:
            raise ValueError("JWT_SECRET_KEY must be configured")
        self.user_pool_id = user_pool_id or os.environ.get("COGNITO_USER_POOL_ID")
        self.client_id = client_id or os.environ.get("COGNITO_CLIENT_ID")

    # ============================================
    # Session Tokens
    # ============================================

    def create_session_token(self, identity: SessionIdentity) -> dict[str, Any]:
        """Create a session token for an identity.

        The admin flag is embedded at issuance and is not re-checked until
        the token expires.

        Args:
            identity: Identity to encode

        Returns:
            Dict with token, token_type and expires_in
        """
        now = datetime.now(UTC)
        payload = {
            "sub": identity.user_id,
            "email": identity.email,
            "is_admin": identity.is_admin,
            "type": "access",
            "iat": now,
            "exp": now + timedelta(seconds=self.TOKEN_TTL_SECONDS),
        }
        token = jwt.encode(payload, self.jwt_secret, algorithm=self.JWT_ALGORITHM)

        return {
            "token": token,
            "token_type": "Bearer",
            "expires_in": self.TOKEN_TTL_SECONDS,
        }

    def verify_session_token(self, token: str) -> SessionIdentity:
        """Verify a session token and return the identity it carries.

        Args:
            token: JWT session token

        Returns:
            SessionIdentity from the token claims

        Raises:
            AuthenticationError: If the signature, payload or expiry is invalid
        """
        try:
            payload = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=[self.JWT_ALGORITHM],
                options={"verify_exp": True},
            )
        except ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except JWTError as e:
            raise AuthenticationError(f"Invalid token: {str(e)}")

        if payload.get("type") != "access":
            raise AuthenticationError("Invalid token type")
        if "exp" not in payload:
            raise AuthenticationError("Missing expiry in token")

        user_id = payload.get("sub")
        if not user_id:
            raise AuthenticationError("Missing user ID in token")

        return SessionIdentity(
            user_id=user_id,
            email=payload.get("email"),
            is_admin=payload.get("is_admin") is True,
        )

    # ============================================
    # Cognito Identities
    # ============================================

    def sign_up(self, name: str, email: str, password: str) -> SessionIdentity:
        """Register a new identity and confirm it server-side.

        Args:
            name: Display name, stored as the Cognito "name" attribute
            email: Email address (the Cognito username)
            password: Plain-text password, checked by the pool policy

        Returns:
            The new identity (never an admin)

        Raises:
            IdentityConflictError: If the email is already registered
            ValueError: If Cognito rejects the password or attributes
            IdentityServiceError: On any other Cognito failure
        """
        try:
            response = self.identity_client.sign_up(
                ClientId=self.client_id,
                Username=email,
                Password=password,
                UserAttributes=[
                    {"Name": "email", "Value": email},
                    {"Name": "name", "Value": name},
                ],
            )
        except ClientError as e:
            code = e.response["Error"]["Code"]
            message = e.response["Error"].get("Message", code)
            if code == "UsernameExistsException":
                raise IdentityConflictError("An account with this email already exists")
            if code in ("InvalidPasswordException", "InvalidParameterException"):
                raise ValueError(message)
            logger.error("Cognito sign up failed for %s: %s", email, e)
            raise IdentityServiceError(f"Failed to create identity: {message}")

        try:
            self.identity_client.admin_confirm_sign_up(
                UserPoolId=self.user_pool_id, Username=email
            )
        except ClientError as e:
            logger.warning(
                "RECONCILE: identity %s (%s) created but left unconfirmed: %s",
                response["UserSub"],
                email,
                e,
            )
            raise IdentityServiceError(f"Failed to confirm identity: {e}")

        logger.info("Created identity %s", response["UserSub"])
        return SessionIdentity(
            user_id=response["UserSub"], email=email, is_admin=False, name=name
        )

    def authenticate(self, email: str, password: str) -> SessionIdentity:
        """Check an email/password pair and load the identity attributes.

        Args:
            email: Email address
            password: Plain-text password

        Returns:
            SessionIdentity with the admin flag read from the identity store

        Raises:
            AuthenticationError: If the credentials are wrong
            IdentityServiceError: On any other Cognito failure
        """
        try:
            self.identity_client.initiate_auth(
                ClientId=self.client_id,
                AuthFlow="USER_PASSWORD_AUTH",
                AuthParameters={"USERNAME": email, "PASSWORD": password},
            )
            return self.get_identity(email)
        except ClientError as e:
            code = e.response["Error"]["Code"]
            if code in _CREDENTIAL_ERROR_CODES:
                raise AuthenticationError("Invalid email or password.")
            logger.error("Cognito authentication failed for %s: %s", email, e)
            raise IdentityServiceError(
                f"Authentication failed: {e.response['Error'].get('Message', code)}"
            )

    def get_identity(self, username: str) -> SessionIdentity:
        """Load an identity and its attributes from the user pool."""
        response = self.identity_client.admin_get_user(
            UserPoolId=self.user_pool_id, Username=username
        )
        attributes = {
            attr["Name"]: attr["Value"] for attr in response.get("UserAttributes", [])
        }
        return SessionIdentity(
            user_id=attributes.get("sub", response["Username"]),
            email=attributes.get("email"),
            is_admin=attributes.get(ADMIN_ATTRIBUTE, "").lower() == "true",
            name=attributes.get("name"),
        )
