# app/core/config.py

from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Настройки базы данных
    DATABASE_USER: str = "jewel"
    DATABASE_PASSWORD: str = "jewel"
    DATABASE_HOST: str = "localhost"
    DATABASE_PORT: int = 5432
    DATABASE_NAME: str = "jewel_b2b"

    # Настройки JWT токенов (токены выпускает сервис авторизации)
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"

    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379

    # Витрина и расчеты
    CURRENCY: str = "INR"
    TAX_RATE_PERCENT: float = 0.0
    CATALOG_PER_PAGE: int = 12
    DASHBOARD_RECENT_PRODUCTS: int = 6
    FACETS_CACHE_TTL_SECONDS: int = 300 # Кешируются только справочники, не цены

    CORS_ORIGINS_STR: str = Field(default="http://localhost:3000", alias="CORS_ORIGINS")

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS_STR.split(',') if origin.strip()]

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"
    @property
    def DATABASE_URL(self) -> str:
        return f"postgresql+psycopg2://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"

    model_config = SettingsConfigDict(env_file=".env", populate_by_name=True)

settings = Settings()
