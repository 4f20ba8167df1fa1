"""Configuration management using pydantic-settings.

Loads from environment variables and .env file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Attributes:
        host: Server bind address.
        port: Server bind port.
        debug: Enable debug mode.
        origin_fetch_timeout: HTTP timeout for origin fetches in seconds.
        origin_max_bytes: Largest origin body accepted for transformation.
        response_cache_type: Backend for the transformed-response cache.
        response_cache_max_entries: Entry bound of the transformed-response cache.
        origin_cache_type: Backend for the raw origin cache.
        origin_cache_max_entries: Entry bound of the raw origin cache.
        transform_engine: Transform engine implementation ("pillow").
        processing_error_status: HTTP status for origin fetch or transform failures.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_json: Output logs in JSON format for production.

    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Origin fetching (single attempt, no retries)
    origin_fetch_timeout: float = 30.0
    origin_max_bytes: int = 20 * 1024 * 1024

    # Caches
    response_cache_type: str = "memory"
    response_cache_max_entries: int = 1024
    origin_cache_type: str = "memory"
    origin_cache_max_entries: int = 256

    # Transform
    transform_engine: str = "pillow"
    processing_error_status: int = 200  # failures are reported as content, not as 5xx

    # Logging
    log_level: str = "INFO"
    log_json: bool = False


# Global settings instance
settings = Settings()
