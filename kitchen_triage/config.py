from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # --- Required for admin access ---
    # Empty means every admin request is refused
    ADMIN_KEY: str = ""

    # --- Optional / Default Fields ---
    PROJECT_NAME: str = "Ghar ka Khana"
    STORE_BACKEND: Literal["json", "sqlite"] = "json"
    ORDERS_PATH: str = "data/order.json"
    SQLITE_PATH: str = "data/orders.db"

    # Dashboards talk to this API when set, otherwise to the local store
    API_BASE_URL: Optional[str] = None
    REQUEST_TIMEOUT_SECONDS: float = 10.0
    POLL_INTERVAL_SECONDS: float = 15.0
    PREFERENCES_PATH: str = "data/admin_prefs.json"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
