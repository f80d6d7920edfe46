from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Database
    database_url: str
    DB_ECHO: bool = False

    # Calendar dates (conflicts, "upcoming" filters, reminder day counts) are taken in this zone
    REFERENCE_TIMEZONE: str = "UTC"

    # Hard cap on generated occurrences per recurrence (10 years of weekly events)
    OCCURRENCE_LIMIT: int = 520

    # Reminder sweep
    REMINDER_CRON_SECRET: str = ""
    REMINDER_BUCKETS: str = "1,2,7"

    # Outbound e-mail relay
    EMAIL_SERVICE_URL: str = ""
    EMAIL_SERVICE_SECRET: str = ""
    EMAIL_FROM: str = "no-reply@rotahub.local"

    HUB_BASE_URL: str = ""
    ORG_NAME: str = ""

    # comma-separated origins allowed to call the API from a browser
    CORS_ORIGINS: str = ""

    LOG_LEVEL: str = "INFO"

    def reminder_buckets(self) -> list[int]:
        raw = (self.REMINDER_BUCKETS or "").strip()
        return sorted({int(x.strip()) for x in raw.split(",") if x.strip().isdigit()})

    def cors_origins(self) -> list[str]:
        return [o.strip() for o in (self.CORS_ORIGINS or "").split(",") if o.strip()]


settings = Settings()
