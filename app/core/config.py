from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # API Settings
    PROJECT_NAME: str = "Tally API"
    API_V1_STR: str = "/api/v1"
    PROJECT_VERSION: str = "0.1.0"
    DESCRIPTION: str = "Shared expense ledger and debt settlement API"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Storage backend: "memory" or "mongo"
    STORE_BACKEND: str = "memory"

    # MongoDB
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "tally"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # Ledger
    DEFAULT_CURRENCY: str = "USD"
    PAYMENTS_PAGE_SIZE: int = 10

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env"
    )

settings = Settings()
