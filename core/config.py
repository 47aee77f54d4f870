from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "Ratings & Reviews Service"
    API_PREFIX: str = "/api"
    ENVIRONMENT: str = "development"

    # JWT Authentication
    SECRET_KEY: str = "dev-secret-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # commercetools
    CTP_PROJECT_KEY: str = ""
    CTP_CLIENT_ID: str = ""
    CTP_CLIENT_SECRET: str = ""
    CTP_API_URL: str = "https://api.europe-west1.gcp.commercetools.com"
    CTP_AUTH_URL: str = "https://auth.europe-west1.gcp.commercetools.com"
    CTP_SCOPES: str = "manage_project,view_products,manage_orders"
    CTP_TIMEOUT_SECONDS: float = 10.0

    # Review validation rules
    REVIEW_MIN_RATING: int = 1
    REVIEW_MAX_RATING: int = 5
    REVIEW_MAX_COMMENT_LENGTH: int = 1000
    REVIEW_MAX_AUTHOR_NAME_LENGTH: int = 100
    ALLOW_ANONYMOUS_REVIEWS: bool = True
    SEED_DEMO_REVIEWS: bool = True

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    RATE_LIMIT_MAX_REQUESTS: int = 10
    USER_RATE_LIMIT_WINDOW_SECONDS: int = 60 * 60
    USER_RATE_LIMIT_MAX_REQUESTS: int = 100

    # Redis Configuration (rate limit counters)
    REDIS_URL: str = ""
    REDIS_PASSWORD: str = ""

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:8080"

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    JSON_LOGS: bool = False
    LOG_TO_CONSOLE: bool = True

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def commercetools_configured(self) -> bool:
        return bool(self.CTP_PROJECT_KEY and self.CTP_CLIENT_ID and self.CTP_CLIENT_SECRET)

    @property
    def use_in_memory_store(self) -> bool:
        """The in-process store backs tests and any deployment without commercetools credentials."""
        return self.ENVIRONMENT == "test" or not self.commercetools_configured

    @property
    def ctp_scopes(self) -> List[str]:
        return [scope.strip() for scope in self.CTP_SCOPES.split(",") if scope.strip()]

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


settings = Settings()
