from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    CLINIC_API_BASE_URL: str = "http://localhost:5129/api"
    CLINIC_API_TIMEOUT_SECONDS: float = 10.0
    CLINIC_API_USE_MOCK: bool = False

    CLINIC_TIMEZONE: str = "Asia/Ho_Chi_Minh"
    BOOKING_LEAD_MINUTES: int = 120
    SLOT_INTERVAL_MINUTES: int = 30
    SLOT_SOURCE: str = "server"  # "server" asks /booking/slots, "local" enumerates shift bounds

    SESSION_LIMIT: int = 500


settings = Settings()
