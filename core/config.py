"""
FORMCOACH Configuration

Environment variables and application settings.
Exercise thresholds live in coach_service.models.thresholds (COACH_* variables).
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "FORMCOACH"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8080"]

    # Pose model
    POSE_MODEL_PATH: Optional[str] = None
    POSE_MODEL_COMPLEXITY: int = 1
    POSE_MIN_DETECTION_CONFIDENCE: float = 0.5
    POSE_MIN_TRACKING_CONFIDENCE: float = 0.5

    # Photo uploads
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
