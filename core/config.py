from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # -------------------------------------------------
    # General
    # -------------------------------------------------
    PROJECT_NAME: str = "ParkSys API"
    ENV: str = "development"

    # -------------------------------------------------
    # Frontend Domains (admin dashboard + public site)
    # -------------------------------------------------
    FRONTEND_DOMAIN: Optional[str] = Field(None, env="FRONTEND_DOMAIN")

    FRONTEND_DOMAINS: List[str] = [
        "http://localhost:5000",
        "http://localhost:5173",
    ]

    # -------------------------------------------------
    # CORS (auto-built below)
    # -------------------------------------------------
    BACKEND_CORS_ORIGINS: List[str] = []

    # -------------------------------------------------
    # Supabase (Primary DB & Auth)
    # -------------------------------------------------
    SUPABASE_URL: Optional[str] = Field(None, env="SUPABASE_URL")
    SUPABASE_ANON_KEY: Optional[str] = Field(None, env="SUPABASE_ANON_KEY")
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = Field(None, env="SUPABASE_SERVICE_ROLE_KEY")

    # -------------------------------------------------
    # Object Storage (S3-compatible)
    # -------------------------------------------------
    OBJECT_STORAGE_BUCKET: Optional[str] = Field(None, env="OBJECT_STORAGE_BUCKET")
    OBJECT_STORAGE_REGION: str = Field("us-east-1", env="OBJECT_STORAGE_REGION")
    OBJECT_STORAGE_ENDPOINT_URL: Optional[str] = Field(None, env="OBJECT_STORAGE_ENDPOINT_URL")
    AWS_ACCESS_KEY_ID: Optional[str] = Field(None, env="AWS_ACCESS_KEY_ID")
    AWS_SECRET_ACCESS_KEY: Optional[str] = Field(None, env="AWS_SECRET_ACCESS_KEY")

    # -------------------------------------------------
    # Local filesystem fallback
    # -------------------------------------------------
    UPLOADS_DIR: str = Field("uploads", env="UPLOADS_DIR")
    MAX_IMAGE_SIZE_BYTES: int = Field(10 * 1024 * 1024, env="MAX_IMAGE_SIZE_BYTES")

    # -------------------------------------------------
    # Advertising
    # -------------------------------------------------
    PUBLIC_ADS_CACHE_SECONDS: int = Field(60, env="PUBLIC_ADS_CACHE_SECONDS")
    TRACKING_RATE_LIMIT: int = Field(120, env="TRACKING_RATE_LIMIT", description="Tracking calls per minute per client")

    # -------------------------------------------------
    # Exports (branding on CSV/XLSX/PDF headers)
    # -------------------------------------------------
    ORGANIZATION_NAME: str = Field("Sistema Municipal de Parques", env="ORGANIZATION_NAME")
    ORGANIZATION_DEPARTMENT: Optional[str] = Field(None, env="ORGANIZATION_DEPARTMENT")
    ORGANIZATION_WEBSITE: Optional[str] = Field(None, env="ORGANIZATION_WEBSITE")

    # -------------------------------------------------
    # Scheduler
    # -------------------------------------------------
    ENABLE_SCHEDULER: bool = Field(False, env="ENABLE_SCHEDULER")

    # -------------------------------------------------
    # Model Config
    # -------------------------------------------------
    class Config:
        case_sensitive = True


# Instantiate settings
settings = Settings()

# -------------------------------------------------
# Build CORS list dynamically after loading settings
# -------------------------------------------------
cors_origins = []

# 1) add the deployed admin dashboard domain
if settings.FRONTEND_DOMAIN:
    domain = settings.FRONTEND_DOMAIN
    if not domain.startswith("http"):
        domain = f"https://{domain}"
    cors_origins.append(domain.rstrip("/"))

# 2) add local development domains
cors_origins.extend([d.rstrip("/") for d in settings.FRONTEND_DOMAINS])

# 3) remove duplicates
settings.BACKEND_CORS_ORIGINS = sorted(list(set(cors_origins)))
