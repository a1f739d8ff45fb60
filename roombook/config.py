from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # Operating hours are wall-clock hours in this zone.
    BOOKING_TIMEZONE: str = "UTC"
    OPEN_HOUR: int = 8
    CLOSE_HOUR: int = 18
    SLOT_STEP_MINUTES: int = 30
    SCAN_NEXT_DAY: bool = True
    TIMELINE_SLOT_MINUTES: int = 60

    MIN_BOOKING_MINUTES: int = 15
    MAX_BOOKING_MINUTES: int = 480
    ADVANCE_NOTICE_HOURS: int = 0

    CONFLICT_STALENESS_SECONDS: int = 30
    SEED_SAMPLE_DATA: bool = False


settings = Settings()
