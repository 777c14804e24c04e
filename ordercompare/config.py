"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Central configuration for the Order Comparator service."""

    # OpenAI
    openai_api_key: str = Field(default="", description="OpenAI API key")
    openai_model: str = Field(default="gpt-4.1", description="Model used for extraction and summaries")
    openai_temperature: float = Field(default=0.1, description="Sampling temperature for model calls")
    openai_max_retries: int = Field(
        default=1, ge=1, description="Attempts per model call (1 = no retry)"
    )
    max_document_chars: int = Field(
        default=60000, description="Document text is truncated to this many characters"
    )

    # Comparison
    numeric_relative_tolerance: float = Field(
        default=0.0001, ge=0.0, description="Relative tolerance for FUZZY numeric matches (0.01%)"
    )
    description_match_threshold: float = Field(
        default=0.80, ge=0.0, le=1.0, description="Minimum similarity to pair two line descriptions"
    )
    description_safe_threshold: float = Field(
        default=0.95, ge=0.0, le=1.0,
        description="Fuzzy-paired descriptions below this similarity are reported as mismatched",
    )
    summarize_enabled: bool = Field(default=True, description="Request a narrative summary")

    # Odoo ERP
    odoo_url: str = Field(default="", description="Odoo base URL, e.g. https://erp.example.com")
    odoo_db: str = Field(default="", description="Odoo database name")
    odoo_username: str = Field(default="", description="Odoo login")
    odoo_password: str = Field(default="", description="Odoo password or API key")
    odoo_timeout: float = Field(default=30.0, description="HTTP timeout for Odoo requests (seconds)")

    # API
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    max_upload_bytes: int = Field(default=20 * 1024 * 1024, description="Maximum size per uploaded document")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False}


# Singleton instance
settings = Settings()
