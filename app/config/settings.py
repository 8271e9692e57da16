from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "knowyourfan"
    db_username: str = "knowyourfan"
    db_password: str = "secret"
    db_pool_max_size: int = 10
    db_connect_timeout_seconds: int = 10

    ocr_engine: str = "tesseract"
    ocr_language: str = "por"
    ocr_timeout_seconds: int = 60
    ocr_openai_api_key: str = ""
    ocr_openai_model_name: str = "gpt-4o-mini"
    ocr_openai_base_url: str | None = None

    storage_backend: str = "local"
    storage_local_root: str = "/app/files"
    storage_s3_bucket: str = ""
    storage_s3_region: str = "us-east-1"
    storage_public_base_url: str = ""
    storage_chunk_size_bytes: int = 8 * 1024 * 1024
    upload_timeout_seconds: int = 300

    max_document_size_bytes: int = 10 * 1024 * 1024
    verification_timezone: str = "America/Sao_Paulo"
