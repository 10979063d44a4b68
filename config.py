"""
Runtime configuration read from the environment (and a local .env file).
"""

import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return float(value)


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str]
    database_name: Optional[str]
    cors_origins: List[str]
    log_level: str
    strict_status_transitions: bool
    seed_products: bool
    # Used only when the store settings record is created for the first time
    default_minimum_order: float
    default_store_lat: Optional[float]
    default_store_lng: Optional[float]
    default_delivery_fee_per_km: float
    default_minimum_delivery_fee: float


def load_settings() -> Settings:
    origins = os.getenv("CORS_ORIGINS", "*")
    return Settings(
        database_url=os.getenv("DATABASE_URL"),
        database_name=os.getenv("DATABASE_NAME"),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        strict_status_transitions=_env_bool("STRICT_STATUS_TRANSITIONS", True),
        seed_products=_env_bool("SEED_PRODUCTS", True),
        default_minimum_order=_env_float("DEFAULT_MINIMUM_ORDER", 20.00),
        default_store_lat=_env_float("DEFAULT_STORE_LAT", -23.550520),
        default_store_lng=_env_float("DEFAULT_STORE_LNG", -46.633308),
        default_delivery_fee_per_km=_env_float("DEFAULT_DELIVERY_FEE_PER_KM", 5.00),
        default_minimum_delivery_fee=_env_float("DEFAULT_MINIMUM_DELIVERY_FEE", 0.00),
    )


settings = load_settings()
