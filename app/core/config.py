from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql://trainfit_user:trainfit_password@db:5432/trainfit_db"
    SECRET_KEY: str = "SECRET_KEY_FOR_TRAINFIT"
    REFRESH_SECRET_KEY: str = "SECRET_KEY_FOR_TRAINFIT_refresh"
    # Drops every table on startup; development only
    RESET_DATABASE: bool = False
    SQL_ECHO: bool = False
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]
    FRONTEND_URL: str = "http://localhost:3000"
    BACKEND_URL: str = "http://localhost:8000"

    # MinIO (profile images)
    MINIO_ENDPOINT: str = "minio:9000"
    MINIO_ACCESS_KEY: str = "minioadmin"
    MINIO_SECRET_KEY: str = "minioadmin"
    MINIO_BUCKET: str = "trainfit-profiles"

    # SMTP; empty host means simulation mode
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = "TrainFit <no-reply@trainfit.app>"
    SMTP_USE_TLS: bool = True
    EMAIL_MAX_RETRIES: int = 3
    EMAIL_RETRY_DELAY_SECONDS: float = 2.0

    # WhatsApp Cloud API
    WHATSAPP_ACCESS_TOKEN: str = ""
    WHATSAPP_PHONE_NUMBER_ID: str = ""
    WHATSAPP_VERIFY_TOKEN: str = ""
    WHATSAPP_API_VERSION: str = "v18.0"

    MERCADOPAGO_ACCESS_TOKEN: str = ""
    MERCADOPAGO_API_URL: str = "https://api.mercadopago.com"

    SCHEDULER_ENABLED: bool = True
    SCHEDULER_TIMEZONE: str = "America/Argentina/Buenos_Aires"

    # ops/
    ALLOW_DESTRUCTIVE_ACTIONS: bool = False
    APPROVAL_TOKEN: str = ""
    BACKUP_DIR: str = "backups"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"

settings = Settings()
