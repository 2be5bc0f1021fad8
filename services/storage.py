# services/storage.py

"""
Unified image storage.

Every module (parks, activities, volunteers, advertising, species...) stores
its images through one service:

  1. Object storage (S3-compatible bucket) under public/<module>/<filename>,
     served back through GET /public-objects/<module>/<filename>.
  2. If object storage is not configured or the upload fails, the file is
     written to <UPLOADS_DIR>/<module>/<filename> and served from /uploads.

Either way the caller gets a StorageResult with the public URL to persist.
"""

import mimetypes
import os
import random
import re
import time
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from core.config import settings
from core.errors import StorageError
from core.logging_config import logger
from core.s3_client import get_s3


ALLOWED_IMAGE_EXTENSIONS = {"jpeg", "jpg", "png", "gif", "webp"}
ALLOWED_IMAGE_MIME_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}

OBJECT_URL_PREFIX = "/public-objects/"
FILESYSTEM_URL_PREFIX = "/uploads/"

CACHE_CONTROL = "public, max-age=3600"

_SEGMENT_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


@dataclass
class StorageResult:
    success: bool
    image_url: str
    filename: str
    method: str          # "object-storage" | "filesystem"
    persistent: bool

    def to_dict(self) -> dict:
        return asdict(self)


def _check_segment(value: str, what: str) -> str:
    """Reject anything that could escape the module directory."""
    if not value or not _SEGMENT_RE.match(value) or ".." in value:
        raise StorageError(f"Invalid {what}: '{value}'")
    return value


class UnifiedStorageService:

    def __init__(self, uploads_dir: Optional[str] = None, max_size_bytes: Optional[int] = None):
        self.uploads_dir = Path(uploads_dir or settings.UPLOADS_DIR)
        self.max_size_bytes = max_size_bytes or settings.MAX_IMAGE_SIZE_BYTES

    # ---------------------------------------------------------
    # Validation
    # ---------------------------------------------------------
    def validate_image(self, content: bytes, original_filename: str, content_type: Optional[str], module: str):
        extension = Path(original_filename or "").suffix.lower().lstrip(".")
        mime = (content_type or "").lower()

        if extension not in ALLOWED_IMAGE_EXTENSIONS or mime not in ALLOWED_IMAGE_MIME_TYPES:
            raise StorageError(
                f"Only images (jpeg, jpg, png, gif, webp) are allowed for {module}"
            )

        if not content:
            raise StorageError("Uploaded file is empty")

        if len(content) > self.max_size_bytes:
            limit_mb = self.max_size_bytes / (1024 * 1024)
            raise StorageError(f"File exceeds the {limit_mb:.0f}MB limit")

    @staticmethod
    def build_filename(module: str, original_filename: str) -> str:
        extension = Path(original_filename).suffix.lower()
        unique_id = f"{int(time.time() * 1000)}-{random.randint(0, 999_999_999)}"
        return f"{module}-{unique_id}{extension}"

    # ---------------------------------------------------------
    # Upload (object storage first, filesystem fallback)
    # ---------------------------------------------------------
    def upload_image(
        self,
        content: bytes,
        original_filename: str,
        content_type: Optional[str],
        module: str,
    ) -> StorageResult:
        _check_segment(module, "module")
        self.validate_image(content, original_filename, content_type, module)

        filename = self.build_filename(module, original_filename)

        try:
            return self._upload_to_object_storage(content, filename, content_type, module)
        except (RuntimeError, BotoCoreError, ClientError) as e:
            logger.warning(f"[storage] Object storage unavailable for {module}/{filename}, using filesystem: {e}")

        return self._upload_to_filesystem(content, filename, module)

    def _upload_to_object_storage(self, content: bytes, filename: str, content_type: Optional[str], module: str) -> StorageResult:
        s3, bucket, _ = get_s3()
        object_key = f"public/{module}/{filename}"

        s3.put_object(
            Bucket=bucket,
            Key=object_key,
            Body=content,
            ContentType=content_type or "application/octet-stream",
            CacheControl=CACHE_CONTROL,
        )

        image_url = f"{OBJECT_URL_PREFIX}{module}/{filename}"
        logger.info(f"[storage] Uploaded {image_url} to object storage")

        return StorageResult(
            success=True,
            image_url=image_url,
            filename=filename,
            method="object-storage",
            persistent=True,
        )

    def _upload_to_filesystem(self, content: bytes, filename: str, module: str) -> StorageResult:
        module_dir = self.uploads_dir / module
        try:
            module_dir.mkdir(parents=True, exist_ok=True)
            (module_dir / filename).write_bytes(content)
        except OSError as e:
            logger.error(f"[storage] Filesystem write failed for {module}/{filename}: {e}")
            raise StorageError(f"Could not store image: {e}")

        image_url = f"{FILESYSTEM_URL_PREFIX}{module}/{filename}"
        logger.info(f"[storage] Stored {image_url} on filesystem")

        return StorageResult(
            success=True,
            image_url=image_url,
            filename=filename,
            method="filesystem",
            persistent=True,
        )

    # ---------------------------------------------------------
    # URL helpers
    # ---------------------------------------------------------
    def _split_url(self, image_url: str, prefix: str) -> Tuple[str, str]:
        rest = image_url[len(prefix):]
        parts = rest.split("/")
        if len(parts) != 2:
            raise StorageError(f"Unrecognized storage URL: {image_url}")
        return _check_segment(parts[0], "module"), _check_segment(parts[1], "filename")

    def _local_path(self, image_url: str) -> Path:
        module, filename = self._split_url(image_url, FILESYSTEM_URL_PREFIX)
        return self.uploads_dir / module / filename

    # ---------------------------------------------------------
    # Delete / exists (work with both backends)
    # ---------------------------------------------------------
    def delete_image(self, image_url: Optional[str]) -> bool:
        if not image_url:
            return False

        try:
            if image_url.startswith(OBJECT_URL_PREFIX):
                module, filename = self._split_url(image_url, OBJECT_URL_PREFIX)
                s3, bucket, _ = get_s3()
                s3.delete_object(Bucket=bucket, Key=f"public/{module}/{filename}")
                logger.info(f"[storage] Deleted {image_url} from object storage")
                return True

            if image_url.startswith(FILESYSTEM_URL_PREFIX):
                path = self._local_path(image_url)
                if path.exists():
                    path.unlink()
                    logger.info(f"[storage] Deleted {image_url} from filesystem")
                    return True

            return False

        except (StorageError, RuntimeError, BotoCoreError, ClientError, OSError) as e:
            logger.error(f"[storage] Error deleting {image_url}: {e}")
            return False

    def image_exists(self, image_url: Optional[str]) -> bool:
        if not image_url:
            return False

        try:
            if image_url.startswith(OBJECT_URL_PREFIX):
                module, filename = self._split_url(image_url, OBJECT_URL_PREFIX)
                s3, bucket, _ = get_s3()
                s3.head_object(Bucket=bucket, Key=f"public/{module}/{filename}")
                return True

            if image_url.startswith(FILESYSTEM_URL_PREFIX):
                return self._local_path(image_url).exists()

            return False

        except (StorageError, RuntimeError, BotoCoreError, ClientError, OSError):
            return False

    def open_public_object(self, module: str, filename: str) -> Tuple[bytes, str]:
        """
        Read an object-storage image for streaming through the API.
        Raises FileNotFoundError when the object does not exist.
        """
        _check_segment(module, "module")
        _check_segment(filename, "filename")

        s3, bucket, _ = get_s3()
        try:
            obj = s3.get_object(Bucket=bucket, Key=f"public/{module}/{filename}")
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("NoSuchKey", "404", "NotFound"):
                raise FileNotFoundError(f"{module}/{filename}")
            raise

        content_type = obj.get("ContentType") or mimetypes.guess_type(filename)[0] or "application/octet-stream"
        return obj["Body"].read(), content_type

    def describe(self) -> dict:
        from core.s3_client import object_storage_configured
        return {
            "object_storage_configured": object_storage_configured(),
            "uploads_dir": os.path.abspath(self.uploads_dir),
            "max_image_size_bytes": self.max_size_bytes,
        }


# Singleton used by the routers
unified_storage = UnifiedStorageService()


def get_storage() -> UnifiedStorageService:
    return unified_storage
