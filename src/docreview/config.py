"""Configuration management for the document review engine."""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Text rendering
    font_path: Optional[str] = None
    font_name: str = "DejaVuSansMono.ttf"
    min_font_size: int = 12
    max_font_size: int = 60
    font_height_ratio: float = 0.6
    text_inset: int = 5
    text_margin: int = 10

    # Packaging
    jpeg_quality: int = 85

    # Review
    validation_delay_seconds: float = 0.8
    max_upload_bytes: int = 10 * 1024 * 1024

    # Export
    export_dir: str = "./output"

    # Logging
    log_level: str = "INFO"

    class Config:
        env_prefix = "DOCREVIEW_"
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
