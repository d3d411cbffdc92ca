"""
Configuration Management

Centralized configuration using Pydantic Settings.
All settings loaded from environment variables with sensible defaults.
"""
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field, ConfigDict, field_validator

MODEL_TIERS = ("haiku", "sonnet", "opus")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Ignore extra environment variables that aren't defined in the model
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ============================================================
    # LLM Configuration
    # ============================================================
    anthropic_api_key: Optional[str] = Field(None, description="Anthropic API key (per-course keys take precedence)")
    default_model_tier: str = Field("haiku", description="Model tier for answering questions: haiku, sonnet or opus")
    completion_max_tokens: int = Field(1024, description="Max tokens per completion")
    completion_temperature: float = Field(0.2, description="Temperature for question answering (0-1)")

    # ============================================================
    # Decision Configuration
    # ============================================================
    auto_reply_threshold: float = Field(0.85, ge=0.0, le=1.0, description="Minimum confidence for automatic replies")
    use_smart_model_for_low_confidence: bool = Field(
        False,
        description="Retry low-confidence answers with the next model tier"
    )
    smart_model_threshold: float = Field(0.5, ge=0.0, le=1.0, description="Confidence below which the next tier is tried")
    context_faq_limit: int = Field(10, description="Most recent FAQs included in the prompt context")

    # ============================================================
    # Storage Configuration
    # ============================================================
    storage_backend: str = Field("memory", description="Durable store: memory, local or drive")
    storage_dir: str = Field("./data/courses", description="Root folder for the local backend")
    google_service_account_path: Optional[str] = Field(
        None,
        description="Path to Google service account JSON key file (drive backend)"
    )
    google_drive_root_folder_id: Optional[str] = Field(
        None,
        description="Google Drive folder ID holding one sub-folder per course"
    )

    # ============================================================
    # Security
    # ============================================================
    encryption_secret: Optional[str] = Field(
        None,
        description="App secret mixed into per-professor API key encryption"
    )

    # ============================================================
    # Ledger Configuration
    # ============================================================
    history_limit: int = Field(1000, ge=1, description="Answered questions kept per course")
    app_base_url: str = Field(
        "http://localhost:3000",
        description="Base URL for approve/edit/ignore links in professor notifications"
    )

    # ============================================================
    # Logging Configuration
    # ============================================================
    log_level: str = Field("INFO", description="Logging level (DEBUG/INFO/WARNING/ERROR)")
    log_format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string"
    )

    @field_validator("default_model_tier")
    @classmethod
    def _known_tier(cls, value: str) -> str:
        tier = value.strip().lower()
        if tier not in MODEL_TIERS:
            raise ValueError(f"default_model_tier must be one of {', '.join(MODEL_TIERS)}")
        return tier


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get application settings (singleton).

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings():
    """Reload settings from environment (useful for testing)."""
    global _settings
    _settings = Settings()
    return _settings


def build_storage_backend(settings: Optional[Settings] = None):
    """
    Create the durable store selected by ``storage_backend``.

    Returns None for ``memory``: the in-process cache is then the store.

    Raises:
        ValueError: Unknown backend name or missing drive configuration
    """
    settings = settings or get_settings()
    backend = settings.storage_backend.lower()

    if backend == "memory":
        return None
    if backend == "local":
        from course_inbox.core.storage.local import LocalFolderBackend
        return LocalFolderBackend(settings.storage_dir)
    if backend == "drive":
        if not settings.google_service_account_path or not settings.google_drive_root_folder_id:
            raise ValueError(
                "drive backend requires GOOGLE_SERVICE_ACCOUNT_PATH and GOOGLE_DRIVE_ROOT_FOLDER_ID"
            )
        from course_inbox.core.storage.drive import GoogleDriveBackend
        return GoogleDriveBackend(
            settings.google_service_account_path,
            settings.google_drive_root_folder_id,
        )
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}. Use 'memory', 'local' or 'drive'")
