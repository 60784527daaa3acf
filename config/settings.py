from pydantic_settings import BaseSettings, SettingsConfigDict


# -----------------------------------------------------------------------------
# Settings
# -----------------------------------------------------------------------------
class Settings(BaseSettings):
    """
    Application settings managed by Pydantic.
    Reads from environment variables and/or .env file.
    """
    ENVIRONMENT: str = "production"

    ALLOWED_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Database
    DATABASE_URL: str
    DATABASE_ECHO: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"

    # Largest page the list endpoints will return
    PAGE_SIZE_LIMIT: int = 1000

    # Config to read from .env file if available
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
        )

settings = Settings() # type: ignore
