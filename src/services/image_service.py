"""Complaint image pipeline: validate, normalize, store and delete images."""

import io
import logging
import uuid
from urllib.parse import unquote, urlparse

from botocore.exceptions import ClientError
from PIL import Image, ImageOps, UnidentifiedImageError

from utils.constants import (
    IMAGE_CONTENT_TYPE,
    IMAGE_EXTENSION,
    IMAGE_FORMAT,
    IMAGE_KEY_PREFIX,
    IMAGE_QUALITY,
    MAX_IMAGE_BYTES,
    MAX_IMAGE_DIMENSIONS,
)

logger = logging.getLogger(__name__)


class ImageValidationError(Exception):
    """Upload rejected before it reached storage."""

    pass


class UnsupportedMediaError(ImageValidationError):
    """Upload is not an image."""

    pass


class PayloadTooLargeError(ImageValidationError):
    """Upload exceeds the size ceiling."""

    pass


class EmptyImageError(ImageValidationError):
    """Upload has no content."""

    pass


class ImageProcessingError(ImageValidationError):
    """Upload could not be decoded as an image."""

    pass


class ImageStorageError(Exception):
    """Object storage call failed."""

    pass


def validate_upload(content_type: str | None, data: bytes) -> None:
    """Check the intake constraints of an upload.

    Raises:
        UnsupportedMediaError: If the content type is not image/*
        EmptyImageError: If there are no bytes
        PayloadTooLargeError: If the upload exceeds MAX_IMAGE_BYTES
    """
    if not content_type or not content_type.lower().startswith("image/"):
        raise UnsupportedMediaError(
            f"Unsupported media type: {content_type or 'unknown'}. Only images are allowed"
        )
    if not data:
        raise EmptyImageError("Image file is empty")
    if len(data) > MAX_IMAGE_BYTES:
        raise PayloadTooLargeError(
            f"Image exceeds the {MAX_IMAGE_BYTES // (1024 * 1024)} MiB limit"
        )


def normalize_image(data: bytes) -> bytes:
    """Decode, orient, shrink to fit the bounding box and re-encode as JPEG.

    Images already inside the box keep their dimensions. Transparent images
    are flattened onto white.

    Raises:
        ImageProcessingError: If the bytes cannot be decoded
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            img = ImageOps.exif_transpose(img)

            if img.mode in ("RGBA", "LA") or (
                img.mode == "P" and "transparency" in img.info
            ):
                rgba = img.convert("RGBA")
                flattened = Image.new("RGB", rgba.size, (255, 255, 255))
                flattened.paste(rgba, mask=rgba.split()[-1])
                img = flattened
            elif img.mode != "RGB":
                img = img.convert("RGB")

            # thumbnail() only ever shrinks
            img.thumbnail(MAX_IMAGE_DIMENSIONS, Image.Resampling.LANCZOS)

            output = io.BytesIO()
            img.save(output, format=IMAGE_FORMAT, quality=IMAGE_QUALITY, optimize=True)
            return output.getvalue()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageProcessingError(f"Could not process image: {e}")


def generate_object_key() -> str:
    """Random object key; client file names never reach storage."""
    return f"{IMAGE_KEY_PREFIX}{uuid.uuid4().hex}.{IMAGE_EXTENSION}"


class ImageService:
    """Stores complaint images in S3 and resolves their public URLs."""

    def __init__(
        self,
        s3_client,
        bucket: str,
        region: str = "us-west-2",
        public_base_url: str | None = None,
    ):
        """Initialize the image service.

        Args:
            s3_client: boto3 S3 client
            bucket: Bucket holding complaint images
            region: Bucket region, used to build default public URLs
            public_base_url: CDN/base URL to serve images from instead of S3
        """
        self.s3_client = s3_client
        self.bucket = bucket
        self.region = region
        self.public_base_url = (
            public_base_url or f"https://{bucket}.s3.{region}.amazonaws.com"
        ).rstrip("/")

    def process_upload(self, content_type: str | None, data: bytes) -> str:
        """Run the full pipeline for one upload and return its public URL."""
        validate_upload(content_type, data)
        normalized = normalize_image(data)
        key = self.store(normalized)
        return self.public_url(key)

    def store(self, data: bytes) -> str:
        """Upload normalized bytes under a fresh key without overwriting.

        Returns:
            The object key

        Raises:
            ImageStorageError: If the upload fails or the key already exists
        """
        key = generate_object_key()
        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=IMAGE_CONTENT_TYPE,
                IfNoneMatch="*",
            )
        except ClientError as e:
            logger.error("Failed to store image %s: %s", key, e)
            raise ImageStorageError(f"Failed to store image: {e}")

        logger.info("Stored image %s (%d bytes)", key, len(data))
        return key

    def public_url(self, key: str) -> str:
        """Public URL for an object key."""
        return f"{self.public_base_url}/{key}"

    def key_from_url(self, url: str | None) -> str | None:
        """Recover the object key from a URL produced by public_url().

        Returns None for URLs this service did not produce.
        """
        if not url or not url.startswith(self.public_base_url + "/"):
            return None
        key = unquote(urlparse(url).path.lstrip("/"))
        # Path-style base URLs carry the bucket name as the first segment
        base_path = urlparse(self.public_base_url).path.strip("/")
        if base_path and key.startswith(base_path + "/"):
            key = key[len(base_path) + 1 :]
        if not key.startswith(IMAGE_KEY_PREFIX) or ".." in key:
            return None
        return key

    def delete_image(self, url: str | None) -> bool:
        """Delete the object behind an image URL.

        Returns:
            True if an object was deleted, False if the URL is not ours

        Raises:
            ImageStorageError: If the delete call fails
        """
        key = self.key_from_url(url)
        if key is None:
            logger.warning("Refusing to delete image outside %s: %s", self.bucket, url)
            return False
        try:
            self.s3_client.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            logger.error("Failed to delete image %s: %s", key, e)
            raise ImageStorageError(f"Failed to delete image: {e}")

        logger.info("Deleted image %s", key)
        return True
