"""Application configuration."""

from decimal import Decimal
from os import getenv

from pydantic import BaseModel


class Settings(BaseModel):
    """Runtime settings for the application."""

    app_name: str = "Campus Canteen"
    app_env: str = getenv("APP_ENV", "dev")
    debug: bool = getenv("DEBUG", "0") == "1"
    database_url: str = getenv("DATABASE_URL", "sqlite:///./campus_canteen.db")
    session_secret: str = getenv("SESSION_SECRET", "dev-session-secret-change-me")
    session_secret_fallback: str = "dev-session-secret-change-me"
    session_max_age: int = int(getenv("SESSION_MAX_AGE", str(60 * 60 * 24 * 7)))
    service_fee: Decimal = Decimal(getenv("SERVICE_FEE", "1.00"))
    currency_symbol: str = getenv("CURRENCY_SYMBOL", "₹")
    cart_storage_key: str = getenv("CART_STORAGE_KEY", "cart")
    pickup_slot_minutes: int = int(getenv("PICKUP_SLOT_MINUTES", "15"))
    pickup_slot_count: int = int(getenv("PICKUP_SLOT_COUNT", "8"))
    federated_provider_name: str = getenv("FEDERATED_PROVIDER_NAME", "google")
    federated_jwt_secret: str = getenv("FEDERATED_JWT_SECRET", "dev-federated-secret-change-me")
    federated_jwt_algorithm: str = getenv("FEDERATED_JWT_ALGORITHM", "HS256")
    federated_jwt_audience: str = getenv("FEDERATED_JWT_AUDIENCE", "campus-canteen")
    admin_email: str = getenv("ADMIN_EMAIL", "")
    admin_password: str = getenv("ADMIN_PASSWORD", "")


settings: Settings = Settings()
