# routers/uploads.py

from fastapi import APIRouter, UploadFile, File, Depends, HTTPException, Query
from fastapi.responses import Response
from botocore.exceptions import BotoCoreError, ClientError

from core.permission_helpers import requires_permission
from core.errors import StorageError
from core.logging_config import logger
from core.utils import safe_filename
from services.storage import UnifiedStorageService, StorageResult, get_storage, CACHE_CONTROL


router = APIRouter(
    prefix="/uploads",
    tags=["Uploads"],
)

# Served without auth: the public site renders these images directly
public_router = APIRouter(tags=["Uploads"])


# -----------------------------------------------------
# Folders images may be stored under
# -----------------------------------------------------
UPLOAD_MODULES = {
    "parks",
    "activities",
    "volunteers",
    "instructors",
    "species",
    "trees",
    "advertising",
    "sponsors",
    "employees",
    "consumables",
}


# -----------------------------------------------------
# Shared by every router that accepts an image
# -----------------------------------------------------
async def store_upload(file: UploadFile, module: str, storage: UnifiedStorageService) -> StorageResult:
    """Read an UploadFile and push it through the unified storage. StorageError → 400."""
    content = await file.read()
    try:
        return storage.upload_image(
            content=content,
            original_filename=safe_filename(file.filename or ""),
            content_type=file.content_type,
            module=module,
        )
    except StorageError as e:
        raise HTTPException(400, str(e))


# ============================================================
# GENERIC IMAGE UPLOAD
# ============================================================
@router.post(
    "/images/{module}",
    summary="Upload an image for any module",
    description="""
    Stores the image in object storage, or on the local filesystem when
    object storage is unavailable. Returns the public URL to persist and
    the method that was used.
    """,
    dependencies=[Depends(requires_permission("uploads:write"))],
)
async def upload_image(
    module: str,
    file: UploadFile = File(...),
    storage: UnifiedStorageService = Depends(get_storage),
):
    if module not in UPLOAD_MODULES:
        raise HTTPException(400, f"Unknown upload module '{module}'")

    result = await store_upload(file, module, storage)
    return result.to_dict()


@router.delete(
    "/images",
    summary="Delete a stored image by URL",
    dependencies=[Depends(requires_permission("uploads:write"))],
)
def delete_image(
    url: str = Query(..., description="URL returned by the upload endpoint"),
    storage: UnifiedStorageService = Depends(get_storage),
):
    deleted = storage.delete_image(url)
    if not deleted:
        raise HTTPException(404, "Image not found")
    return {"success": True, "deleted": url}


@router.get(
    "/status",
    summary="Storage backend status",
    dependencies=[Depends(requires_permission("uploads:read"))],
)
def storage_status(storage: UnifiedStorageService = Depends(get_storage)):
    return storage.describe()


# ============================================================
# PUBLIC OBJECT STREAMING
# ============================================================
@public_router.get("/public-objects/{module}/{filename}", summary="Serve an object-storage image")
def serve_public_object(
    module: str,
    filename: str,
    storage: UnifiedStorageService = Depends(get_storage),
):
    try:
        content, content_type = storage.open_public_object(module, filename)
    except StorageError as e:
        raise HTTPException(400, str(e))
    except (FileNotFoundError, RuntimeError):
        raise HTTPException(404, "Image not found")
    except (BotoCoreError, ClientError) as e:
        logger.error(f"[storage] Could not read {module}/{filename}: {e}")
        raise HTTPException(502, "Object storage unavailable")

    return Response(
        content=content,
        media_type=content_type,
        headers={"Cache-Control": CACHE_CONTROL},
    )
