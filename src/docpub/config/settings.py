"""Configuration management using Pydantic Settings."""

from pathlib import Path
from typing import Literal, Optional
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pub configuration loaded from environment variables and .env file.

    Instances are frozen: the server reads them for its whole lifetime but
    never mutates them after startup.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCPUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Network
    host: str = Field("127.0.0.1", description="Interface to bind the HTTP server to")
    port: int = Field(3333, ge=1, le=65535)

    # Write policy
    readonly: bool = Field(False, description="Reject every document upload with 403")
    allow_push_to_new_workspaces: bool = Field(
        True,
        description="Let a document upload create a workspace the pub does not host yet",
    )
    discoverable_workspaces: bool = Field(
        True,
        description="List hosted workspaces on the home page",
    )

    # Storage
    storage_type: Literal["memory", "sqlite"] = "memory"
    data_folder: Optional[Path] = Field(None, description="Folder holding one .sqlite file per workspace")

    # Home page
    title: Optional[str] = None
    notes: Optional[str] = None

    # Uploads are JSON arrays; syncing lots of data at once needs room
    max_upload_bytes: int = Field(10 * 1024 * 1024, gt=0)

    demo_workspace_enabled: bool = True

    # Logging
    log_level: str = Field("INFO")
    log_format: str = Field("json", pattern="^(json|text)$")

    @model_validator(mode="after")
    def _check_storage(self) -> "Settings":
        if self.storage_type == "sqlite" and self.data_folder is None:
            raise ValueError("sqlite storage requires data_folder to be set")
        return self


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the process-wide settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
