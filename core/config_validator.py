# core/config_validator.py

import os
from typing import List

from core.config import Settings, settings
from core.logging_config import logger


def validate_required_config(config: Settings = settings) -> List[str]:
    """
    Settings the API cannot run without.
    Returns a list of problems (empty when everything is in place).
    """
    problems = []

    if not config.SUPABASE_URL:
        problems.append("SUPABASE_URL is not set")
    if not config.SUPABASE_SERVICE_ROLE_KEY:
        problems.append("SUPABASE_SERVICE_ROLE_KEY is not set")

    if config.MAX_IMAGE_SIZE_BYTES <= 0:
        problems.append("MAX_IMAGE_SIZE_BYTES must be greater than zero")
    if config.TRACKING_RATE_LIMIT <= 0:
        problems.append("TRACKING_RATE_LIMIT must be greater than zero")
    if config.PUBLIC_ADS_CACHE_SECONDS < 0:
        problems.append("PUBLIC_ADS_CACHE_SECONDS cannot be negative")

    return problems


def validate_uploads_dir(config: Settings = settings) -> List[str]:
    """
    Images fall back to UPLOADS_DIR whenever object storage is unavailable,
    so the directory has to exist (or be creatable) and be writable.
    """
    path = config.UPLOADS_DIR

    if os.path.exists(path) and not os.path.isdir(path):
        return [f"UPLOADS_DIR '{path}' exists but is not a directory"]

    try:
        os.makedirs(path, exist_ok=True)
    except OSError as e:
        return [f"UPLOADS_DIR '{path}' cannot be created: {e}"]

    if not os.access(path, os.W_OK):
        return [f"UPLOADS_DIR '{path}' is not writable"]

    return []


def validate_optional_config(config: Settings = settings) -> List[str]:
    """
    Recommended configuration. Returns warnings only.
    """
    warnings = []

    if not config.OBJECT_STORAGE_BUCKET:
        warnings.append("OBJECT_STORAGE_BUCKET is not set (images will be stored on the local filesystem)")
    elif not (config.AWS_ACCESS_KEY_ID and config.AWS_SECRET_ACCESS_KEY):
        warnings.append("AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY missing (images will be stored on the local filesystem)")

    if config.ENABLE_SCHEDULER and not (config.SUPABASE_URL and config.SUPABASE_SERVICE_ROLE_KEY):
        warnings.append("ENABLE_SCHEDULER is on but Supabase is not configured; the nightly job will fail")

    if config.ENV == "production" and not config.FRONTEND_DOMAIN:
        warnings.append("FRONTEND_DOMAIN is not set; only localhost origins are allowed by CORS")

    return warnings


def validate_config_on_startup(config: Settings = settings):
    """
    Validate configuration on application startup.
    Raises RuntimeError if critical config is missing or invalid.
    Logs warnings for optional config.
    """
    problems = validate_required_config(config) + validate_uploads_dir(config)

    if problems:
        error_msg = f"Invalid configuration: {'; '.join(problems)}"
        logger.error(error_msg)
        raise RuntimeError(error_msg)

    for warning in validate_optional_config(config):
        logger.warning(f"Configuration: {warning}")

    logger.info("Configuration validation passed")
