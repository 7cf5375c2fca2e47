"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables (and `.env`) with
sensible defaults. The storage credentials are read once here and turned
into an `UploadConfig` that is handed to the upload pipeline; nothing
downstream reads the environment.

Mock mode (STORAGE_BACKEND=mock) enables local development without any
storage account.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.uploads.models import UploadConfig
from ..infrastructure.storage.client import (
    R2_ACCESS_KEY_SETTING,
    R2_BUCKET_SETTING,
    R2_SECRET_KEY_SETTING,
    R2Options,
)
from ..infrastructure.storage.drive import (
    CLIENT_EMAIL_SETTING,
    FOLDER_ID_SETTING,
    PRIVATE_KEY_SETTING,
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Names are case-insensitive, so GOOGLE_CLIENT_EMAIL sets
    `google_client_email`.
    """

    # API Configuration
    api_title: str = "Guest Photo Uploads API"
    api_version: str = "v1"

    storage_backend: Literal["drive", "r2", "mock"] = Field(
        default="drive",
        description="Remote store for uploaded photos: drive, r2 or mock."
    )

    # Google Drive Configuration
    google_client_email: str = Field(
        default="",
        description="Service account email used to authenticate with Drive"
    )
    google_private_key: str = Field(
        default="",
        description="Service account private key (PEM). Literal \\n sequences are unescaped."
    )
    google_drive_folder_id: str = Field(
        default="",
        description="Drive folder that receives uploaded photos"
    )

    # R2/S3 Storage Configuration
    r2_account_id: str = Field(
        default="",
        description="Cloudflare account ID for R2"
    )
    r2_access_key_id: str = Field(
        default="",
        description="R2 access key ID"
    )
    r2_secret_access_key: str = Field(
        default="",
        description="R2 secret access key"
    )
    r2_bucket_name: str = Field(
        default="",
        description="R2 bucket that receives uploaded photos"
    )
    r2_endpoint_url: Optional[str] = Field(
        default=None,
        description="R2 endpoint URL. Auto-constructed from account_id if not provided."
    )
    r2_public_base_url: Optional[str] = Field(
        default=None,
        description="Public URL of the bucket, used to build view links"
    )

    # Mock storage
    mock_folder_id: str = Field(
        default="mock-folder",
        description="Container id used by the in-memory mock store"
    )

    # Application Behavior
    decode_chunk_size: int = Field(
        default=64 * 1024,
        gt=0,
        description="Bytes pushed into the multipart parser per step"
    )
    include_view_links: bool = Field(
        default=False,
        description="Include the view link of each uploaded photo in the success response"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def google_private_key_pem(self) -> str:
        """Private key with escaped newlines restored (env vars hold it on one line)."""
        return self.google_private_key.replace("\\n", "\n")

    @property
    def r2_endpoint(self) -> str:
        """
        Construct R2 endpoint URL from account ID.

        R2 endpoints follow the pattern: https://{account_id}.r2.cloudflarestorage.com
        """
        if self.r2_endpoint_url:
            return self.r2_endpoint_url
        return f"https://{self.r2_account_id}.r2.cloudflarestorage.com"

    def r2_options(self) -> R2Options:
        return R2Options(
            endpoint_url=self.r2_endpoint,
            public_base_url=self.r2_public_base_url,
        )

    def to_upload_config(self) -> UploadConfig:
        """Build the store configuration for the selected backend."""
        if self.storage_backend == "drive":
            return UploadConfig(
                parent_container_id=self.google_drive_folder_id,
                credentials={
                    CLIENT_EMAIL_SETTING: self.google_client_email,
                    PRIVATE_KEY_SETTING: self.google_private_key_pem,
                },
                container_setting=FOLDER_ID_SETTING,
            )

        if self.storage_backend == "r2":
            credentials = {
                R2_ACCESS_KEY_SETTING: self.r2_access_key_id,
                R2_SECRET_KEY_SETTING: self.r2_secret_access_key,
            }
            if not self.r2_endpoint_url:
                credentials["R2_ACCOUNT_ID"] = self.r2_account_id
            return UploadConfig(
                parent_container_id=self.r2_bucket_name,
                credentials=credentials,
                container_setting=R2_BUCKET_SETTING,
            )

        return UploadConfig(
            parent_container_id=self.mock_folder_id,
            container_setting="MOCK_FOLDER_ID",
        )

    def validate_required_fields(self) -> list[str]:
        """
        Names of required settings that are missing for the selected backend.

        This is separate from Pydantic validation because the service still
        starts without them; submissions then fail with a configuration error.
        """
        return self.to_upload_config().missing_fields()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once per process. For tests, call
    get_settings.cache_clear() to reset.
    """
    return Settings()
