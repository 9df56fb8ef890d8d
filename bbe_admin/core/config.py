from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    PROJECT_NAME: str = "BBE Admin"
    VERSION: str = "0.1.0"

    # Remote admin-data API (authoritative store of client records)
    ADMIN_API_URL: str = "http://localhost:8080"
    ADMIN_API_LIST_TIMEOUT: float = 10.0
    ADMIN_API_DETAIL_TIMEOUT: float = 8.0

    # Staff login
    ADMIN_EMAIL: str = ""
    ADMIN_PASSWORD_HASH: str = ""
    SESSION_MAX_AGE: int = 60 * 60 * 8  # 8 hours

    # Blob storage for client images
    BLOB_API_URL: str = "https://blob.vercel-storage.com"
    BLOB_READ_WRITE_TOKEN: str = ""

    # Hosted booking widget the generated code talks to
    WIDGET_HOST_URL: str = "https://beyondbooking.vercel.app"

    CLIENT_LIST_CACHE_SECONDS: int = 5 * 60
    PREFERENCES_CACHE_SECONDS: int = 3 * 60
    CLIENT_PAGE_SIZE: int = 10

    # Production site reachability probe, 0 disables the background loop
    PROBE_INTERVAL_SECONDS: int = 5 * 60
    PROBE_TIMEOUT: float = 5.0

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        extra="ignore"
    )


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()
