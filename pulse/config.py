from __future__ import annotations
import os
from pydantic import BaseModel

class Settings(BaseModel):
    database_url: str = os.getenv("PULSE_DATABASE_URL", "sqlite:///pulse.sqlite3")
    timezone: str = os.getenv("PULSE_TIMEZONE", "UTC")

    # 0 means every category of a user is measured at once
    max_concurrent_categories: int = int(os.getenv("PULSE_MAX_CONCURRENT_CATEGORIES", "0"))
    max_page_size: int = 50

    api_host: str = os.getenv("PULSE_API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("PULSE_API_PORT", "8000"))
    log_level: str = os.getenv("PULSE_LOG_LEVEL", "INFO")

settings = Settings()
