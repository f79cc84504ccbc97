from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TASKREWARD_", env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./taskreward.db"
    SQL_ECHO: bool = False
    SQLITE_BUSY_TIMEOUT: float = 15.0  # seconds a writer waits on a locked sqlite file

    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_MIN: int = 60 * 24

    INVITE_CODE_LENGTH: int = 10
    INVITE_CODE_TTL_HOURS: int = 7 * 24
    INVITE_CODE_MAX_ATTEMPTS: int = 5

    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    LOG_LEVEL: str = "INFO"


settings = Settings()
