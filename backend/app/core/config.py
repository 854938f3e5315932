"""Application settings."""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """App config from env."""

    app_name: str = "Filesystem Object Storage"
    debug: bool = False
    log_level: str = "INFO"
    # Structured logging: set LOG_JSON=1 for one-JSON-object-per-line (CloudWatch, etc.)
    log_json: bool = False

    # Canonical URI prefix of signed URLs: /{bucket_name}/{storage_folder_name}/{key}/{filename}
    bucket_name: str = "cache"
    storage_folder_name: str = "files"
    # Root directory on local or network-mounted disk
    storage_folder_path: str = "./App_Data"
    # Shared with the server that verifies signed URLs
    storage_secret_string: str = "dev-secret-change-in-production"
    # Signed URL validity windows; 0 falls back to one year
    storage_url_expires: int = 604800  # 7 days, seconds
    session_absolute_expire_ms: int = 30 * 24 * 60 * 60 * 1000  # 30 days
    # If set, replaces the caller-supplied base URL in signed URLs
    storage_external_host: str = ""

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()
