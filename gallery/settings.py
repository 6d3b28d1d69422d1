from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

class Settings(BaseSettings):
    aws_region: str = "us-east-1"
    aws_endpoint_url: Optional[str] = None
    aws_access_key_id: str = "test"
    aws_secret_access_key: str = "test"

    s3_bucket: str = "gallery-images"
    # Public base for object URLs, e.g. a CDN in front of the bucket
    s3_public_url: Optional[str] = None

    images_table: str = "Images"
    users_table: str = "Users"

    # "s3" or "disk"
    storage_backend: str = "s3"
    upload_dir: str = "uploads"
    uploads_url_prefix: str = "/uploads"
    max_upload_bytes: int = 10 * 1024 * 1024
    storage_timeout_seconds: float = 10.0

    # Prefix for relative image URLs; falls back to the request host
    public_base_url: Optional[str] = None

    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7

    app_title: str = "Gallery Service"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="allow",  # tolerate unknown vars if needed
    )

settings = Settings()
