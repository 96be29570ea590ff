"""Shared constants for the Complaint Tracker backend."""

# Closed tag vocabulary. Order is the order returned by GET /tags.
VALID_TAGS: tuple[str, ...] = ("electricity", "canteen", "furniture", "campus")

# Session tokens
JWT_ALGORITHM = "HS256"
SESSION_TOKEN_TTL_SECONDS = 3600  # 1 hour, no refresh

# Image upload policy
MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5 MiB
MAX_IMAGE_DIMENSIONS: tuple[int, int] = (1200, 1200)
IMAGE_FORMAT = "JPEG"
IMAGE_EXTENSION = "jpg"
IMAGE_CONTENT_TYPE = "image/jpeg"
IMAGE_QUALITY = 80
IMAGE_KEY_PREFIX = "complaints/"
