"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables (and an optional .env
file) once per process. The resulting Settings object is frozen, so the
gateway receives one immutable view of its configuration at start-up
instead of reading process-wide environment state on every request.

The bucket name is deliberately optional: a missing bucket does not stop
the process from starting, but every file request fails fast with a 500.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like cors_origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "File Gateway API"
    api_version: str = "v1"

    # Object storage (S3 or any S3-compatible endpoint)
    aws_s3_bucket_name: Optional[str] = Field(
        default=None,
        description="Bucket that holds every file served by the gateway"
    )
    aws_region: str = Field(
        default="us-east-1",
        description="Region of the bucket"
    )
    aws_access_key_id: Optional[str] = Field(
        default=None,
        description="Access key ID. Falls back to the boto3 credential chain when unset."
    )
    aws_secret_access_key: Optional[str] = Field(
        default=None,
        description="Secret access key. Falls back to the boto3 credential chain when unset."
    )
    aws_endpoint_url: Optional[str] = Field(
        default=None,
        description="Custom endpoint for S3-compatible stores (MinIO, R2, LocalStack)"
    )
    storage_mock_mode: bool = Field(
        default=False,
        description="Use an in-memory store instead of S3. Enables local dev without a bucket."
    )

    # Upload / download behavior
    max_upload_files: int = Field(
        default=10,
        ge=1,
        description="Maximum number of files accepted by /upload-multiple"
    )
    download_chunk_size: int = Field(
        default=64 * 1024,
        ge=1,
        description="Bytes read from the store per streamed download chunk"
    )

    # Server
    host: str = Field(
        default="0.0.0.0",
        description="Interface uvicorn binds to"
    )
    port: int = Field(
        default=3000,
        description="Port uvicorn listens on"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )

    @property
    def bucket_name(self) -> Optional[str]:
        """Configured bucket, with blank values treated as missing."""
        if self.aws_s3_bucket_name and self.aws_s3_bucket_name.strip():
            return self.aws_s3_bucket_name.strip()
        return None

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def validate_required_fields(self) -> list[str]:
        """
        Report configuration that file requests will need.

        Returns list of missing environment variables. Used for start-up
        logging and the readiness check; nothing here stops the process.
        """
        missing = []

        if self.bucket_name is None:
            missing.append("AWS_S3_BUCKET_NAME")

        # Explicit credentials come in pairs; half a pair is a mistake
        if bool(self.aws_access_key_id) != bool(self.aws_secret_access_key):
            if not self.aws_access_key_id:
                missing.append("AWS_ACCESS_KEY_ID")
            else:
                missing.append("AWS_SECRET_ACCESS_KEY")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
