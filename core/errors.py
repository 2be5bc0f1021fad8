# core/errors.py

from fastapi import HTTPException


def extract_supabase_error(error: Exception) -> str:
    """
    Safely extract readable details from Supabase Python client errors.
    Handles:
      • PostgREST errors (APIError carries .message)
      • GoTrue (Auth) errors
      • Generic Python exceptions
    """

    if hasattr(error, "message"):
        try:
            return str(error.message)
        except Exception:
            pass

    if hasattr(error, "args") and error.args:
        try:
            return str(error.args[0])
        except Exception:
            pass

    try:
        return str(error)
    except Exception:
        return "Unknown database error"


def handle_supabase_error(error: Exception, operation: str = "Database operation", status_code: int = 500) -> HTTPException:
    """
    Handle Supabase errors with consistent formatting.
    Returns HTTPException (doesn't raise) so caller can customize or re-raise.

    HTTPExceptions raised inside the try block are passed through untouched,
    so routers can wrap their whole body in a single try/except.
    """
    from core.logging_config import logger

    if isinstance(error, HTTPException):
        return error

    error_detail = extract_supabase_error(error)
    logger.error(f"{operation}: {error_detail}")

    error_lower = error_detail.lower()
    if "duplicate" in error_lower or "unique" in error_lower:
        return HTTPException(status_code=400, detail=f"{operation}: Record already exists")
    elif "foreign key" in error_lower:
        return HTTPException(status_code=400, detail=f"{operation}: Invalid reference")
    elif "not found" in error_lower or "does not exist" in error_lower:
        return HTTPException(status_code=404, detail=f"{operation}: Resource not found")
    else:
        return HTTPException(status_code=status_code, detail=f"{operation} failed")


# ============================================================
# Domain errors
# ============================================================
class StorageError(Exception):
    """Raised by the storage service when a file cannot be accepted."""


class CodeGenerationError(Exception):
    """Raised when an inventory code (park prefix, tree code...) cannot be produced."""


class ExportError(Exception):
    """
    Export failures carry a machine-readable code:
      ENTITY_NOT_FOUND, FORMAT_NOT_SUPPORTED, INVALID_REQUEST,
      PERMISSION_DENIED, DATA_ERROR
    """

    STATUS_BY_CODE = {
        "ENTITY_NOT_FOUND": 404,
        "FORMAT_NOT_SUPPORTED": 400,
        "INVALID_REQUEST": 400,
        "PERMISSION_DENIED": 403,
        "DATA_ERROR": 500,
    }

    def __init__(self, message: str, code: str, details=None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details

    def to_http(self) -> HTTPException:
        return HTTPException(
            status_code=self.STATUS_BY_CODE.get(self.code, 500),
            detail=self.message,
        )
