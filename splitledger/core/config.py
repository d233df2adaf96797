from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite+aiosqlite:///./splitledger.db"
    LEDGER_READ_TIMEOUT: float = 5.0
    LOG_LEVEL: str = "INFO"
    DB_CONNECT_RETRIES: int = 5
    DB_CONNECT_DELAY: float = 2.0


settings = Settings()
