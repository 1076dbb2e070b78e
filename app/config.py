# app/config.py
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    API_BASE_URL: str = "http://localhost:3000/api/v1"
    HTTP_TIMEOUT: Optional[float] = None  # None keeps the httpx default
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "*"
    PAGE_SIZE: int = 24

    # optional: read from .env and allow COORD_* env vars
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="COORD_",
        case_sensitive=False,
        extra="ignore",
    )

    def cors_origins(self) -> List[str]:
        return [x.strip() for x in self.CORS_ORIGINS.split(",") if x.strip()]

settings = Settings()
