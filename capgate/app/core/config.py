from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_BASE_URL = "https://api.capacities.io"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Capacities API credentials
    capacities_api_token: str = Field(
        default="", validation_alias="CAPACITIES_API_TOKEN"
    )
    capacities_api_base_url: str = Field(
        default=DEFAULT_BASE_URL, validation_alias="CAPACITIES_API_BASE_URL"
    )

    # HTTP Client connection pool settings
    httpx_connect_timeout: float = 10.0  # Time to establish connection
    httpx_read_timeout: float = 60.0  # Time to read response data
    httpx_write_timeout: float = 10.0  # Time to send request data
    httpx_pool_timeout: float = 5.0  # Time to acquire connection from pool
    httpx_keepalive_expiry: float = 30.0
    httpx_max_connections: int = 20
    httpx_max_keepalive_connections: int = 10

    # Treat unparseable JSON bodies on 2xx responses as success
    lenient_json_decode: bool = True

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    @field_validator("capacities_api_base_url")
    @classmethod
    def strip_base_url(cls, v: str) -> str:
        """Normalize the base URL so endpoint paths can be appended."""
        v = v.strip().rstrip("/")
        if not v:
            return DEFAULT_BASE_URL
        return v

    @field_validator("capacities_api_token")
    @classmethod
    def strip_token(cls, v: str) -> str:
        return v.strip()

    @field_validator(
        "httpx_connect_timeout",
        "httpx_read_timeout",
        "httpx_write_timeout",
        "httpx_pool_timeout",
    )
    @classmethod
    def validate_timeout_positive(cls, v: float) -> float:
        """Validate timeout values are positive."""
        if v <= 0:
            raise ValueError("Timeout values must be positive")
        return v

    @field_validator("httpx_max_connections", "httpx_max_keepalive_connections")
    @classmethod
    def validate_pool_size_positive(cls, v: int) -> int:
        """Validate connection pool sizes are positive."""
        if v < 1:
            raise ValueError("connection pool values must be at least 1")
        return v

    model_config = SettingsConfigDict(
        env_prefix="CAPGATE_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )


# Global settings instance
settings = Settings()
