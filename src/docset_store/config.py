from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables or .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # ChromaDB
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_ssl: bool = False
    chroma_auth_token: str | None = None
    chroma_tenant: str = "default_tenant"
    chroma_database: str = "default_database"

    # Storage
    ingest_batch_size: int = Field(default=100, ge=1)
    list_page_size: int = Field(default=500, ge=1)
    handle_cache_size: int | None = Field(default=None, ge=1)

    # Logging
    log_level: str = "INFO"
