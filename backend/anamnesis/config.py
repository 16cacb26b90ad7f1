"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database (defaults to SQLite for local dev, use PostgreSQL in production)
    database_url: str = "sqlite:///./anamnesis.db"

    # CORS
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # Public filling links
    public_link_expiry_days: int = 7

    # Engine (client side)
    api_base_url: str = "http://localhost:8000/api/v1"
    request_timeout_seconds: float = 10.0
    autosave_interval_seconds: float = 30.0

    # Typed signature rendering; falls back to Pillow's default font
    signature_font_path: Optional[str] = None
    signature_font_size: int = 48

    # Debug mode
    debug: bool = True
    log_level: str = "INFO"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    class Config:
        env_file = ".env"
        env_prefix = "ANAMNESIS_"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
