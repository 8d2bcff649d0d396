from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./lifelog.db"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Where POST /transfer/backup writes and POST /transfer/restore reads.
    BACKUP_DIR: str = "./backups"

    # Values written per batch during an import.
    IMPORT_BATCH_SIZE: int = 100

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://myapp.com,https://api.myapp.com"
    CORS_ORIGINS: str = "*"

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
