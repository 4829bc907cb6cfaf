from pydantic_settings import BaseSettings
from pathlib import Path

DEFAULT_RATE_MATRIX_PATH = Path(__file__).resolve().parent.parent / "data" / "pricing_matrix.json"


class Settings(BaseSettings):
    REDIS_URL: str = ""

    SECRET_KEY: str = "dev-secret-change-me"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours

    MAPS_SERVER_KEY: str = ""
    DIRECTIONS_API_URL: str = "https://maps.googleapis.com/maps/api/directions/json"
    DIRECTIONS_REGION: str = "CA"
    DIRECTIONS_TIMEOUT: float = 10.0

    RATE_MATRIX_PATH: str = str(DEFAULT_RATE_MATRIX_PATH)

    RATE_LIMIT: int = 30
    RATE_LIMIT_WINDOW: int = 600  # 10 minutes

    PRICE_CACHE_TTL: int = 60   # 60 seconds

    WEBHOOK_URL: str = ""
    WEBHOOK_TIMEOUT: int = 10
    WEBHOOK_RETRIES: int = 3

    ADMIN_NOTIFICATION_EMAIL: str = "info@valleyairporter.ca"
    QUICK_QUOTE_PRICE_CAP: float = 300.0
    CURRENCY: str = "CAD"

    API_TITLE: str = "Airport Shuttle Pricing Service"
    API_DESCRIPTION: str = "Fare quotes for airport shuttle trips from the rate matrix and driving distance"
    API_VERSION: str = "1.0.0"

    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
