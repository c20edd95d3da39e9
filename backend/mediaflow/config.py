"""
Application configuration using Pydantic Settings.
All environment variables are loaded here with sensible defaults.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Environment
    environment: str = "dev"
    log_level: str = "INFO"
    port: int = 8080

    # Shared API key for write endpoints.
    # Empty disables the check (local development only).
    api_key: Optional[str] = None

    # S3-compatible object storage
    s3_bucket: str = ""
    s3_region: str = "us-east-1"
    s3_endpoint: Optional[str] = None  # e.g. http://localhost:9000 for MinIO
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None

    # Upload profiles (local path or s3://bucket/key)
    storage_config_path: str = "storage-config.yaml"

    # Max concurrent part presign calls per multipart plan
    presign_concurrency: int = 16

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Global settings instance
settings = Settings()
