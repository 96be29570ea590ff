"""Main FastAPI application handler for Lambda deployment."""

import logging
import os
import time
from datetime import UTC, datetime

import boto3
from botocore.exceptions import ClientError
from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from mangum import Mangum
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from models.complaint import (
    AdminCommentRequest,
    ComplaintAssignment,
    ComplaintCreate,
    ComplaintFilters,
    ComplaintStatus,
    ComplaintStatusUpdate,
)
from models.user import LoginRequest, ProfileUpdateRequest, SignupRequest
from services.auth_service import (
    AuthenticationError,
    AuthService,
    IdentityConflictError,
    SessionIdentity,
)
from services.complaint_service import ComplaintNotFoundError, ComplaintService
from services.image_service import (
    EmptyImageError,
    ImageProcessingError,
    ImageService,
    ImageStorageError,
    PayloadTooLargeError,
    UnsupportedMediaError,
)
from services.profile_service import ProfileNotFoundError, ProfileService
from utils.cache import (
    CACHE_CONTROL_PRIVATE,
    CACHE_CONTROL_PUBLIC_LONG,
    cached_statistics,
    invalidate_statistics,
)
from utils.constants import MAX_IMAGE_BYTES, VALID_TAGS
from utils.tags import InvalidTagFormatError, validate_tags

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Complaint Tracker API",
    description="API for submitting and triaging complaints",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request, call_next):
    """Log API requests with timing for CloudWatch monitoring."""
    start = time.time()
    response = await call_next(request)
    duration_ms = (time.time() - start) * 1000

    path = request.url.path
    if duration_ms > 1000:
        logger.warning(
            "[SLOW] %s %s %.0fms status=%d",
            request.method,
            path,
            duration_ms,
            response.status_code,
        )
    elif response.status_code >= 500:
        logger.error(
            "[ERROR] %s %s %.0fms status=%d",
            request.method,
            path,
            duration_ms,
            response.status_code,
        )
    elif response.status_code >= 400:
        logger.info(
            "[CLIENT_ERROR] %s %s %.0fms status=%d",
            request.method,
            path,
            duration_ms,
            response.status_code,
        )

    return response


# Lazy-initialized AWS clients and services
# Required for Lambda SnapStart - connections must be re-established after restore
_dynamodb = None
_s3_client = None
_cognito_client = None
_auth_service = None
_complaint_service = None
_image_service = None
_profile_service = None

# Security scheme for bearer token authentication
security = HTTPBearer(auto_error=False)


def reset_services():
    """Reset all lazy-initialized services. Useful for testing.

    Also resets boto3's default session so that subsequent calls to
    boto3.resource() create fresh sessions within the current mock context
    (e.g., moto's mock_aws).
    """
    global _dynamodb, _s3_client, _cognito_client, _auth_service
    global _complaint_service, _image_service, _profile_service
    _dynamodb = None
    _s3_client = None
    _cognito_client = None
    _auth_service = None
    _complaint_service = None
    _image_service = None
    _profile_service = None
    boto3.DEFAULT_SESSION = None


def _region() -> str:
    return os.environ.get("AWS_DEFAULT_REGION", "us-west-2")


def get_dynamodb():
    """Get or create DynamoDB resource (lazy init for SnapStart)."""
    global _dynamodb
    if _dynamodb is None:
        _dynamodb = boto3.resource("dynamodb", region_name=_region())
    return _dynamodb


def get_s3_client():
    """Get or create S3 client (lazy init for SnapStart)."""
    global _s3_client
    if _s3_client is None:
        _s3_client = boto3.client("s3", region_name=_region())
    return _s3_client


def get_cognito_client():
    """Get or create Cognito identity provider client."""
    global _cognito_client
    if _cognito_client is None:
        _cognito_client = boto3.client("cognito-idp", region_name=_region())
    return _cognito_client


def get_auth_service():
    """Get or create AuthService (lazy init for SnapStart)."""
    global _auth_service
    if _auth_service is None:
        jwt_secret = os.environ.get("JWT_SECRET_KEY")
        if not jwt_secret:
            raise RuntimeError("JWT_SECRET_KEY must be configured")
        _auth_service = AuthService(
            identity_client=get_cognito_client(),
            jwt_secret=jwt_secret,
            user_pool_id=os.environ.get("COGNITO_USER_POOL_ID"),
            client_id=os.environ.get("COGNITO_CLIENT_ID"),
        )
    return _auth_service


def get_image_service():
    """Get or create ImageService (lazy init for SnapStart)."""
    global _image_service
    if _image_service is None:
        _image_service = ImageService(
            s3_client=get_s3_client(),
            bucket=os.environ.get("IMAGES_BUCKET", "complaint-tracker-images-dev"),
            region=_region(),
            public_base_url=os.environ.get("IMAGE_PUBLIC_BASE_URL"),
        )
    return _image_service


def get_complaint_service():
    """Get or create ComplaintService (lazy init for SnapStart)."""
    global _complaint_service
    if _complaint_service is None:
        _complaint_service = ComplaintService(
            get_dynamodb().Table(
                os.environ.get("COMPLAINTS_TABLE", "complaint-tracker-complaints-dev")
            ),
            image_service=get_image_service(),
        )
    return _complaint_service


def get_profile_service():
    """Get or create ProfileService (lazy init for SnapStart)."""
    global _profile_service
    if _profile_service is None:
        _profile_service = ProfileService(
            get_dynamodb().Table(
                os.environ.get("PROFILES_TABLE", "complaint-tracker-profiles-dev")
            )
        )
    return _profile_service


# MARK: - Authentication Dependencies


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),  # noqa: B008
) -> SessionIdentity:
    """Resolve the caller from the bearer token.

    Raises:
        HTTPException: 401 if no token is presented, 403 if it fails verification
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access denied. No token provided.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return get_auth_service().verify_session_token(credentials.credentials)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e),
        )


async def get_current_admin(
    identity: SessionIdentity = Depends(get_current_user),  # noqa: B008
) -> SessionIdentity:
    """Resolve the caller and require the admin flag carried in the token."""
    if not identity.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admins only.",
        )
    return identity


# MARK: - Health Check


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": "1.0.0",
    }


# MARK: - Authentication Endpoints


def _session_response(message: str, identity: SessionIdentity) -> dict:
    tokens = get_auth_service().create_session_token(identity)
    return {"message": message, **tokens, "user": identity.to_dict()}


@app.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(request: SignupRequest):
    """Register an identity, create its profile and issue a session token."""
    try:
        identity = get_auth_service().sign_up(
            name=request.name, email=request.email, password=request.password
        )
    except IdentityConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error("Signup error: %s", e, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred during signup.",
        )

    try:
        get_profile_service().create_profile(
            user_id=identity.user_id, email=identity.email, display_name=request.name
        )
    except Exception as e:
        logger.warning(
            "RECONCILE: identity %s created without a profile: %s", identity.user_id, e
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred during signup.",
        )

    return _session_response("Signup successful", identity)


@app.post("/login")
async def login(request: LoginRequest):
    """Check credentials and issue a session token."""
    try:
        identity = get_auth_service().authenticate(request.email, request.password)
        return _session_response("Login successful", identity)
    except AuthenticationError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except Exception as e:
        logger.error("Login error: %s", e, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred during login.",
        )


@app.post("/admin/login")
async def admin_login(request: LoginRequest):
    """Check credentials of an admin identity and issue an admin token."""
    try:
        identity = get_auth_service().authenticate(request.email, request.password)
    except AuthenticationError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except Exception as e:
        logger.error("Admin login error: %s", e, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred during login.",
        )

    if not identity.is_admin:
        logger.warning("Non-admin %s attempted admin login", identity.user_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admins only.",
        )

    return _session_response("Admin login successful", identity)


# MARK: - Complaint Endpoints


@app.get("/tags")
async def get_tags(
    response: Response, user: SessionIdentity = Depends(get_current_user)
):
    """List the tag vocabulary."""
    response.headers["Cache-Control"] = CACHE_CONTROL_PUBLIC_LONG
    return {"tags": list(VALID_TAGS)}


@app.get("/complaints")
async def get_my_complaints(
    response: Response,
    user: SessionIdentity = Depends(get_current_user),
    tag: str | None = Query(None, description="Only complaints with this tag"),
):
    """List the caller's complaints, newest first."""
    try:
        complaints = get_complaint_service().list_user_complaints(user.user_id, tag=tag)
    except Exception as e:
        logger.error("Error fetching complaints for %s: %s", user.user_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching complaints",
        )

    response.headers["Cache-Control"] = CACHE_CONTROL_PRIVATE
    return {
        "complaints": [c.model_dump(mode="json") for c in complaints],
        "count": len(complaints),
    }


async def _read_submission(request: Request) -> tuple[dict, list[UploadFile]]:
    """Split a /submit request into its fields and file uploads.

    JSON bodies carry ``{title, description, tags}`` with tags as a list;
    form bodies carry the same fields with tags as a JSON string plus an
    optional ``image`` file.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Malformed JSON body"
            )
        if not isinstance(body, dict):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Request body must be a JSON object",
            )
        return body, []

    form = await request.form()
    fields = {name: form.get(name) for name in ("title", "description", "tags")}
    uploads = [
        f for f in form.getlist("image") if isinstance(f, UploadFile) and f.filename
    ]
    return fields, uploads


@app.post("/submit", status_code=status.HTTP_201_CREATED)
async def submit_complaint(
    request: Request,
    user: SessionIdentity = Depends(get_current_user),
):
    """Submit a complaint, as JSON or as a form with an optional single image.

    Input is validated before any upload or write happens.
    """
    fields, uploads = await _read_submission(request)
    try:
        data = ComplaintCreate(
            title=fields.get("title"),
            description=fields.get("description"),
            tags=validate_tags(fields.get("tags")),
        )
    except InvalidTagFormatError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=jsonable_encoder(e.errors(include_url=False)),
        )

    if len(uploads) > 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only one image may be uploaded per complaint",
        )

    upload = None
    if uploads:
        # Read one byte past the ceiling so oversize files are detectable
        payload = await uploads[0].read(MAX_IMAGE_BYTES + 1)
        upload = (uploads[0].content_type, payload)

    try:
        complaint = get_complaint_service().submit_complaint(
            user.user_id, data, image=upload
        )
    except UnsupportedMediaError as e:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=str(e)
        )
    except PayloadTooLargeError as e:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(e)
        )
    except EmptyImageError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ImageProcessingError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        )
    except ImageStorageError as e:
        logger.error("Image upload failed for %s: %s", user.user_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error uploading image",
        )
    except Exception as e:
        logger.error("Error submitting complaint: %s", e, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error submitting complaint",
        )

    invalidate_statistics()
    return {
        "message": "Complaint submitted successfully",
        "complaint": complaint.model_dump(mode="json"),
    }


@app.post("/complaints/{complaint_id}/upvote")
async def upvote_complaint(
    complaint_id: str, user: SessionIdentity = Depends(get_current_user)
):
    """Increment a complaint's upvote counter."""
    try:
        complaint = get_complaint_service().upvote(complaint_id)
    except ComplaintNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Complaint not found"
        )
    except Exception as e:
        logger.error("Upvote error on %s: %s", complaint_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error processing upvote",
        )

    invalidate_statistics()
    return complaint.model_dump(mode="json")


@app.delete("/complaints/{complaint_id}")
async def delete_my_complaint(
    complaint_id: str, user: SessionIdentity = Depends(get_current_user)
):
    """Delete one of the caller's own complaints."""
    try:
        get_complaint_service().delete_own_complaint(complaint_id, user.user_id)
    except ComplaintNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Complaint not found"
        )
    except Exception as e:
        logger.error("Error deleting complaint %s: %s", complaint_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error deleting complaint",
        )

    invalidate_statistics()
    return {"message": "Complaint deleted", "complaint_id": complaint_id}


@app.delete("/complaints/{complaint_id}/image")
async def delete_my_complaint_image(
    complaint_id: str, user: SessionIdentity = Depends(get_current_user)
):
    """Remove the image attached to one of the caller's complaints."""
    try:
        complaint = get_complaint_service().remove_image(complaint_id, user.user_id)
    except ComplaintNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Complaint not found"
        )
    except Exception as e:
        logger.error("Error removing image of %s: %s", complaint_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error removing image",
        )

    invalidate_statistics()
    return {
        "message": "Image removed",
        "complaint": complaint.model_dump(mode="json"),
    }


# MARK: - Profile Endpoints


@app.get("/profile")
async def get_profile(
    response: Response, user: SessionIdentity = Depends(get_current_user)
):
    """Get the caller's profile."""
    try:
        profile = get_profile_service().get_profile(user.user_id)
    except Exception as e:
        logger.error("Error loading profile %s: %s", user.user_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error loading profile",
        )

    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found"
        )

    response.headers["Cache-Control"] = CACHE_CONTROL_PRIVATE
    return {"message": "User profile loaded", "profile": profile.model_dump()}


@app.post("/profile/update")
async def update_profile(
    request: ProfileUpdateRequest, user: SessionIdentity = Depends(get_current_user)
):
    """Update the caller's display name."""
    try:
        profile = get_profile_service().update_display_name(
            user.user_id, request.display_name
        )
    except ProfileNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found"
        )
    except Exception as e:
        logger.error("Error updating profile %s: %s", user.user_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error updating profile",
        )

    return {"message": "Profile updated", "profile": profile.model_dump()}


# MARK: - Admin Endpoints


@app.get("/admin/complaints")
async def admin_list_complaints(
    response: Response,
    admin: SessionIdentity = Depends(get_current_admin),
    status_filter: ComplaintStatus | None = Query(None, alias="status"),
    date: str | None = Query(
        None, pattern=r"^\d{4}-\d{2}-\d{2}$", description="Creation day (YYYY-MM-DD)"
    ),
    user_id: str | None = Query(None, description="Owner ID"),
    tag: str | None = Query(None, description="Tag; unknown tags are ignored"),
):
    """List all complaints; supplied filters are combined with AND."""
    filters = ComplaintFilters(status=status_filter, date=date, user_id=user_id, tag=tag)
    try:
        complaints = get_complaint_service().list_complaints(filters)
    except Exception as e:
        logger.error("Error fetching complaints: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching complaints",
        )

    response.headers["Cache-Control"] = CACHE_CONTROL_PRIVATE
    return {
        "complaints": [c.model_dump(mode="json") for c in complaints],
        "count": len(complaints),
    }


@app.get("/admin/complaints/{complaint_id}")
async def admin_get_complaint(
    complaint_id: str,
    response: Response,
    admin: SessionIdentity = Depends(get_current_admin),
):
    """Get a single complaint."""
    try:
        complaint = get_complaint_service().get_complaint(complaint_id)
    except Exception as e:
        logger.error("Error fetching complaint %s: %s", complaint_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching complaint",
        )

    if complaint is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Complaint not found"
        )

    response.headers["Cache-Control"] = CACHE_CONTROL_PRIVATE
    return complaint.model_dump(mode="json")


@app.put("/admin/complaints/{complaint_id}/status")
async def admin_update_status(
    complaint_id: str,
    request: ComplaintStatusUpdate,
    admin: SessionIdentity = Depends(get_current_admin),
):
    """Set a complaint's status."""
    try:
        complaint = get_complaint_service().update_status(complaint_id, request.status)
    except ComplaintNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Complaint not found"
        )
    except Exception as e:
        logger.error("Error updating status of %s: %s", complaint_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error updating status",
        )

    logger.info(
        "Admin %s set complaint %s to %s",
        admin.user_id,
        complaint_id,
        request.status.value,
    )
    invalidate_statistics()
    return {
        "message": "Complaint status updated",
        "complaint": complaint.model_dump(mode="json"),
    }


@app.put("/admin/complaints/{complaint_id}/assign")
async def admin_assign_complaint(
    complaint_id: str,
    request: ComplaintAssignment,
    admin: SessionIdentity = Depends(get_current_admin),
):
    """Assign a complaint to a team member."""
    try:
        complaint = get_complaint_service().assign(complaint_id, request.assigned_to)
    except ComplaintNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Complaint not found"
        )
    except Exception as e:
        logger.error("Error assigning complaint %s: %s", complaint_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error assigning complaint",
        )

    invalidate_statistics()
    return {
        "message": "Complaint assigned successfully",
        "complaint": complaint.model_dump(mode="json"),
    }


@app.post("/admin/complaints/{complaint_id}/comment")
async def admin_comment_complaint(
    complaint_id: str,
    request: AdminCommentRequest,
    admin: SessionIdentity = Depends(get_current_admin),
):
    """Append an admin comment to a complaint."""
    try:
        complaint = get_complaint_service().add_comment(
            complaint_id, admin.user_id, request.text
        )
    except ComplaintNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Complaint not found"
        )
    except Exception as e:
        logger.error("Error commenting on %s: %s", complaint_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error adding comment",
        )

    return {
        "message": "Comment added",
        "complaint": complaint.model_dump(mode="json"),
    }


@app.delete("/admin/complaints/{complaint_id}")
async def admin_delete_complaint(
    complaint_id: str, admin: SessionIdentity = Depends(get_current_admin)
):
    """Delete any complaint."""
    try:
        get_complaint_service().delete_complaint(complaint_id)
    except ComplaintNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Complaint not found"
        )
    except Exception as e:
        logger.error("Error deleting complaint %s: %s", complaint_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error deleting complaint",
        )

    logger.info("Admin %s deleted complaint %s", admin.user_id, complaint_id)
    invalidate_statistics()
    return {"message": "Complaint deleted", "complaint_id": complaint_id}


@app.get("/admin/users")
async def admin_list_users(
    response: Response, admin: SessionIdentity = Depends(get_current_admin)
):
    """List user profiles."""
    try:
        profiles = get_profile_service().list_profiles()
    except Exception as e:
        logger.error("Error fetching users: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching users",
        )

    response.headers["Cache-Control"] = CACHE_CONTROL_PRIVATE
    return {"users": [p.model_dump() for p in profiles], "count": len(profiles)}


@cached_statistics
def _get_statistics_cached() -> dict:
    return get_complaint_service().get_statistics()


@app.get("/admin/statistics")
async def admin_statistics(
    response: Response, admin: SessionIdentity = Depends(get_current_admin)
):
    """Aggregate complaint counts."""
    try:
        statistics = _get_statistics_cached()
    except Exception as e:
        logger.error("Error computing statistics: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error computing statistics",
        )

    response.headers["Cache-Control"] = CACHE_CONTROL_PRIVATE
    return {"statistics": statistics}


@app.get("/admin/profile")
async def admin_profile(admin: SessionIdentity = Depends(get_current_admin)):
    """Get the calling admin's identity and profile."""
    try:
        profile = get_profile_service().get_profile(admin.user_id)
    except Exception as e:
        logger.error("Error loading admin profile %s: %s", admin.user_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error loading profile",
        )

    return {
        "admin": admin.to_dict(),
        "profile": profile.model_dump() if profile else None,
    }


# MARK: - Error Handlers


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request, exc: RequestValidationError):
    """Report malformed requests as 400 Bad Request."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(ClientError)
async def aws_client_error_handler(request, exc: ClientError):
    """Handle AWS client errors."""
    error_code = exc.response["Error"]["Code"]
    error_message = exc.response["Error"]["Message"]

    if error_code == "ResourceNotFoundException":
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": f"Resource not found: {error_message}"},
        )
    logger.error("Unhandled AWS error %s: %s", error_code, error_message)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Upstream service error"},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request, exc: ValueError):
    """Handle value errors."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)}
    )


# MARK: - Lambda Handler

api_handler = Mangum(app, lifespan="off")


# For local development
if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
