import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class Settings(BaseModel):
    google_maps_api_key: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
    llm_model: str = os.getenv("LLM_MODEL", "gemini-2.5-flash")
    google_api_key: str = os.getenv("GOOGLE_API_KEY", "")
    mongodb_uri: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    database_name: str = os.getenv("DATABASE_NAME", "planora")
    secret_key: str = os.getenv("SECRET_KEY", "")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Pipeline timeouts (seconds)
    transport_day_timeout: float = float(os.getenv("TRANSPORT_DAY_TIMEOUT", "15"))
    meal_day_timeout: float = float(os.getenv("MEAL_DAY_TIMEOUT", "10"))
    meal_lookup_timeout: float = float(os.getenv("MEAL_LOOKUP_TIMEOUT", "6"))
    transport_reenrich_timeout: float = float(os.getenv("TRANSPORT_REENRICH_TIMEOUT", "10"))
    mosque_meal_timeout: float = float(os.getenv("MOSQUE_MEAL_TIMEOUT", "8"))
    mosque_stage_timeout: float = float(os.getenv("MOSQUE_STAGE_TIMEOUT", "20"))

    # Mosque search (meters)
    mosque_initial_radius: int = int(os.getenv("MOSQUE_INITIAL_RADIUS", "2000"))
    mosque_radius_step: int = int(os.getenv("MOSQUE_RADIUS_STEP", "2000"))
    mosque_max_radius: int = int(os.getenv("MOSQUE_MAX_RADIUS", "10000"))

    # Rate-limit spacing between external lookups (seconds)
    mosque_lookup_delay: float = float(os.getenv("MOSQUE_LOOKUP_DELAY", "0.3"))
    transport_request_delay: float = float(os.getenv("TRANSPORT_REQUEST_DELAY", "0.05"))

    draft_ttl_days: int = int(os.getenv("DRAFT_TTL_DAYS", "7"))

    exchange_rate_url: str = os.getenv(
        "EXCHANGE_RATE_URL", "https://api.exchangerate-api.com/v4/latest/USD"
    )
    exchange_rate_ttl: float = float(os.getenv("EXCHANGE_RATE_TTL", "3600"))
    exchange_rate_retry_after: float = float(os.getenv("EXCHANGE_RATE_RETRY_AFTER", "300"))


@lru_cache
def get_settings() -> Settings:
    return Settings()
