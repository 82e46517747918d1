import os
from functools import lru_cache


class ConfigurationError(RuntimeError):
    pass


class Settings:
    def __init__(
        self,
        database_url: str,
        token_secret: str,
        timezone: str,
        environment: str,
        token_ttl_days: int,
        cors_origins: list[str],
    ) -> None:
        self.database_url = database_url
        self.token_secret = token_secret
        self.timezone = timezone
        self.environment = environment
        self.token_ttl_days = token_ttl_days
        self.cors_origins = cors_origins

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


def _require(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise ConfigurationError(f"Missing required environment variable: {name}")
    return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    database_url = _require("FINANCE_DATABASE_URL")
    token_secret = _require("FINANCE_TOKEN_SECRET")
    timezone = os.getenv("FINANCE_TIMEZONE", "UTC")
    environment = os.getenv("FINANCE_ENV", "production").lower()
    token_ttl_days = int(os.getenv("FINANCE_TOKEN_TTL_DAYS", "30"))
    cors_origins = [
        origin.strip()
        for origin in os.getenv("FINANCE_CORS_ORIGINS", "*").split(",")
        if origin.strip()
    ]
    return Settings(
        database_url=database_url,
        token_secret=token_secret,
        timezone=timezone,
        environment=environment,
        token_ttl_days=token_ttl_days,
        cors_origins=cors_origins,
    )
