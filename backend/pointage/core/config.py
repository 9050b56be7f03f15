from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    DATABASE_URL: str = "postgresql+asyncpg://pointage:pointage_secret@db:5432/pointage"

    # All wall-clock times (schedules, punches without offset) are local to this zone
    TIMEZONE: str = "Africa/Casablanca"

    # Lateness policy
    GRACE_MINUTES: int = 5
    MINOR_DELAY_MINUTES: int = 10
    HALF_DAY_THRESHOLD_HOURS: float = 4.0
    REQUIRED_DAYS_PER_MONTH: int = 26

    # Reference start used for delay on working Saturdays
    SATURDAY_START_TIME: str = "09:00"

    # Optional JSON overrides for the built-in schedule config and holiday table
    SCHEDULE_CONFIG_FILE: str | None = None
    HOLIDAY_DATA_FILE: str | None = None

    MAX_UPLOAD_ROWS: int = 50_000
    IMPORT_HISTORY_LIMIT: int = 10

    # Roster rows whose name scores below this against the stored name are skipped
    NAME_MATCH_THRESHOLD: float = 0.5

    # Run "alembic upgrade head" from the app lifespan
    RUN_MIGRATIONS_ON_STARTUP: bool = True
    ALEMBIC_CONFIG_DIR: str = "/app"


settings = Settings()
