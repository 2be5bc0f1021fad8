# tests/test_config_validator.py

"""
Tests for startup configuration checks.
"""

import pytest

from core.config import Settings
from core.config_validator import (
    validate_config_on_startup,
    validate_optional_config,
    validate_required_config,
    validate_uploads_dir,
)


def make_settings(tmp_path, **overrides):
    values = {
        "SUPABASE_URL": "https://parques.supabase.co",
        "SUPABASE_SERVICE_ROLE_KEY": "service-key",
        "OBJECT_STORAGE_BUCKET": "parksys",
        "AWS_ACCESS_KEY_ID": "key",
        "AWS_SECRET_ACCESS_KEY": "secret",
        "UPLOADS_DIR": str(tmp_path / "uploads"),
        "ENABLE_SCHEDULER": False,
        "ENV": "development",
    }
    values.update(overrides)
    return Settings(**values)


def test_complete_configuration_passes(tmp_path):
    config = make_settings(tmp_path)
    assert validate_required_config(config) == []
    assert validate_uploads_dir(config) == []
    assert validate_optional_config(config) == []
    validate_config_on_startup(config)
    assert (tmp_path / "uploads").is_dir()


def test_missing_supabase_is_fatal(tmp_path):
    config = make_settings(tmp_path, SUPABASE_URL=None)
    assert validate_required_config(config) == ["SUPABASE_URL is not set"]
    with pytest.raises(RuntimeError, match="SUPABASE_URL"):
        validate_config_on_startup(config)


@pytest.mark.parametrize("field, value", [
    ("MAX_IMAGE_SIZE_BYTES", 0),
    ("TRACKING_RATE_LIMIT", -1),
    ("PUBLIC_ADS_CACHE_SECONDS", -5),
])
def test_invalid_limits_are_fatal(tmp_path, field, value):
    problems = validate_required_config(make_settings(tmp_path, **{field: value}))
    assert len(problems) == 1
    assert field in problems[0]


def test_uploads_dir_must_be_a_directory(tmp_path):
    blocker = tmp_path / "uploads.txt"
    blocker.write_text("not a folder")
    config = make_settings(tmp_path, UPLOADS_DIR=str(blocker))

    assert "not a directory" in validate_uploads_dir(config)[0]
    with pytest.raises(RuntimeError, match="UPLOADS_DIR"):
        validate_config_on_startup(config)


def test_filesystem_fallback_is_only_a_warning(tmp_path):
    warnings = validate_optional_config(make_settings(tmp_path, OBJECT_STORAGE_BUCKET=None))
    assert len(warnings) == 1
    assert "local filesystem" in warnings[0]

    warnings = validate_optional_config(make_settings(tmp_path, AWS_SECRET_ACCESS_KEY=None))
    assert "AWS_ACCESS_KEY_ID" in warnings[0]


def test_scheduler_without_supabase_warns(tmp_path):
    config = make_settings(tmp_path, ENABLE_SCHEDULER=True, SUPABASE_SERVICE_ROLE_KEY=None)
    assert any("ENABLE_SCHEDULER" in w for w in validate_optional_config(config))


def test_production_without_frontend_domain_warns(tmp_path):
    config = make_settings(tmp_path, ENV="production", FRONTEND_DOMAIN=None)
    assert any("FRONTEND_DOMAIN" in w for w in validate_optional_config(config))
