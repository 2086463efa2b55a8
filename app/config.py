"""
TravelPlaces Backend — Application Configuration
==================================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time; checked again during app startup.

Groups:
    Object storage  : S3 bucket, region, credentials, retry policy
    Datasets        : where per-request database copies are written
    Images          : fan-out limit for image fetches
    Pagination      : default and maximum page sizes
    Credential store: user database URL, feature flag, bcrypt cost
    HTTP            : CORS, cache header, bind address, optional routes
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for local development.
    Deployments must provide S3 credentials (or rely on boto3's default
    credential chain, e.g. an instance role).
    """

    # ── Object Storage (S3) ───────────────────────────────────────────────
    # Empty strings mean "let boto3 resolve credentials itself"
    aws_access_key_id: str = Field(default="")
    aws_secret_access_key: str = Field(default="")
    aws_region: str = Field(default="ap-northeast-1")

    # What: Bucket holding both `{country}.db` snapshots and image objects
    s3_bucket: str = Field(default="travelplacesbucketjapan")

    # What: Alternative endpoint (MinIO, LocalStack); None uses AWS
    s3_endpoint_url: Optional[str] = Field(default=None)

    # What: Tenacity attempts for transport-level S3 failures
    # Default 1 = a failed fetch is terminal for the request
    object_store_max_attempts: int = Field(default=1, ge=1, le=10)
    object_store_retry_min_wait: int = Field(default=1, ge=1, le=30)
    object_store_retry_max_wait: int = Field(default=5, ge=1, le=120)

    # ── Datasets ──────────────────────────────────────────────────────────
    # What: Directory for the per-request local copies of country databases
    dataset_dir: str = Field(default="./datasets")

    # What: Leave the local copy on disk after the request (debugging only)
    keep_dataset_files: bool = Field(default=False)

    # ── Images ────────────────────────────────────────────────────────────
    # What: Upper bound on concurrent image downloads within one request
    image_fetch_concurrency: int = Field(default=8, ge=1, le=64)

    # ── Pagination ────────────────────────────────────────────────────────
    default_page_size: int = Field(default=20, ge=1, le=500)
    max_page_size: int = Field(default=100, ge=1, le=500)

    # ── Credential Store ──────────────────────────────────────────────────
    # What: Async SQLAlchemy URL of the user database (register/login)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./users.db",
        description="Async SQLAlchemy URL for the user credential store",
    )
    db_pool_size: int = Field(default=5, ge=1, le=100)
    db_max_overflow: int = Field(default=10, ge=0, le=50)
    db_pool_pre_ping: bool = Field(default=True)

    # What: Mount POST /register and POST /login
    # Off by default: the credential feature is dormant
    auth_enabled: bool = Field(default=False)

    # What: bcrypt cost factor (log2 of hashing rounds)
    password_salt_rounds: int = Field(default=10, ge=4, le=16)

    # ── HTTP ──────────────────────────────────────────────────────────────
    # What: Mount GET /regions/{country}/{county}
    county_regions_enabled: bool = Field(default=True)

    # What: Cache-Control value attached to every response ("" disables it)
    cache_control_header: str = Field(default="public, max-age=315360000")

    # What: Include the underlying database message in query-failure responses
    expose_error_details: bool = Field(default=True)

    # Format: Comma-separated URLs, or "*"
    cors_origins: str = Field(default="*")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)

    # What: Address reported by GET /api/ip instead of the discovered one
    advertised_host: Optional[str] = Field(default=None)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("max_page_size")
    @classmethod
    def validate_max_page_size(cls, v: int, info) -> int:
        """The cap must not be smaller than the default page size."""
        default = info.data.get("default_page_size", 20)
        if v < default:
            raise ValueError(
                f"max_page_size ({v}) must be >= default_page_size ({default})"
            )
        return v

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # S3_BUCKET and s3_bucket both work
        "extra": "ignore",
    }

    def validate_required_for_production(self) -> None:
        """
        What:  Checks that critical settings are configured.
        When:  Called during app startup (lifespan).
        How:   Collects problems and raises ValueError with guidance.
        """
        errors = []
        if not self.s3_bucket:
            errors.append("S3_BUCKET is not set.")
        if bool(self.aws_access_key_id) != bool(self.aws_secret_access_key):
            errors.append(
                "AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY must be set together."
            )
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Singleton instance imported throughout the application
settings = Settings()
