"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, Field, field_validator

DEFAULT_BASE_URL = "http://localhost:8080"


class ClientConfig(BaseModel):
    """A validated configuration model for the client."""

    # Server
    base_url: str = DEFAULT_BASE_URL

    # Transport Settings
    request_timeout: float = 30.0
    download_chunk_size: int = 65536
    max_connections: int = 8

    # Internal fields not loaded from INI file
    config_path: str = Field(..., repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensures the server address is an absolute http(s) URL."""
        if not v:
            raise ValueError("Base URL cannot be empty.")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Base URL must start with http:// or https://, got: {v}")
        return v.rstrip("/")

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Request timeout must be positive.")
        return v

    @field_validator("download_chunk_size")
    @classmethod
    def validate_chunk_size(cls, v: int) -> int:
        """Keeps chunks between 1 KB and 8 MB."""
        if v < 1024 or v > 8 * 1024 * 1024:
            raise ValueError("Download chunk size must be between 1024 and 8388608.")
        return v

    @field_validator("max_connections")
    @classmethod
    def validate_connections(cls, v: int) -> int:
        """Ensures a reasonable connection pool size."""
        if v < 1 or v > 64:
            raise ValueError("Max connections must be between 1 and 64.")
        return v

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
