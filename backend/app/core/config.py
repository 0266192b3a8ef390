from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # App
    APP_ENV: str = "development"
    CORS_ORIGINS: str = "http://localhost:3000"

    # Monitoring
    SENTRY_DSN: str = ""
    SENTRY_TRACES_SAMPLE_RATE: float = 0.0

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    IMPORT_RATE_LIMIT: str = "60/minute"

    # Crew upstream (credentials live in CrewSettings)
    CREW_TIMEOUT_SECONDS: float = 30.0
    CREW_COMPANY_ID: int | None = None
    CREW_DEFAULT_JOB_ID: int | None = None
    CREW_DEFAULT_JOB_COLOR: str = "#0c4329"
    CREW_DEFAULT_CUSTOMER_COMPANY_ID: int | None = None
    CREW_PHONE_COUNTRY_CODE: str = "1"

    # Import rules
    STAFF_PASSWORD_MIN_LENGTH: int = 6
    MAX_IMPORT_ROWS: int = 5000

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",")]


class CrewSettings(BaseSettings):
    """Upstream credentials. Built per request so env changes apply without a restart."""
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    NUXT_CREW_BASE_URL: str = ""
    NUXT_CREW_API_TOKEN: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.NUXT_CREW_BASE_URL.strip() and self.NUXT_CREW_API_TOKEN.strip())


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
