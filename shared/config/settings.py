"""
Application settings loaded from environment variables.
Uses pydantic-settings for type-safe configuration.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.config.constants import Limits


class Settings(BaseSettings):
    """Settings with defaults suitable for development."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite:///./data_crud.db"

    # MongoDB
    mongo_url: str = "mongodb://localhost:27017"
    mongo_database: str = "data_crud"

    # Environment
    environment: str = "development"
    debug: bool = True

    # Paging defaults
    default_page_size: int = Limits.DEFAULT_PAGE_SIZE
    max_page_size: int = Limits.MAX_PAGE_SIZE
    one_indexed_pages: bool = False

    # Request parameter names
    search_param: str = "search"
    query_param: str = "query"
    page_param: str = "page"
    size_param: str = "size"
    sort_param: str = "sort"

    # Server
    api_port: int = 8000

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    def validate_production_settings(self) -> list[str]:
        """
        Check settings that must not keep their development values in production.
        Returns a list of problems; empty means all checks pass.
        """
        errors = []

        if self.environment == "production":
            if self.debug:
                errors.append("DEBUG must be False in production")
            if self.database_url.startswith("sqlite"):
                errors.append("DATABASE_URL must point to a server database in production")
            if self.max_page_size < self.default_page_size:
                errors.append("MAX_PAGE_SIZE must be >= DEFAULT_PAGE_SIZE")

        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()

DATABASE_URL = settings.database_url
