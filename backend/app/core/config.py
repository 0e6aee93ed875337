# backend/app/core/config.py
"""
Este archivo contiene la configuración de la aplicación.
"""

from pydantic_settings import BaseSettings
from typing import Optional
from pathlib import Path
import os

# Apunta al directorio 'backend/'
BASE_DIR = Path(__file__).resolve().parent.parent.parent

class Settings(BaseSettings):
    """
    Configuración de la aplicación usando Pydantic BaseSettings.
    Variables sensibles desde .env, defaults seguros para el resto.
    """
    # Configuración general del proyecto
    BASE_DIR: Path = BASE_DIR
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Comercia API"
    PROJECT_VERSION: str = "0.1.0"

    # Configuración de la base de datos
    POSTGRES_SERVER: str = os.getenv("POSTGRES_SERVER", "postgres")
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "user")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "password")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "comercia_db")
    POSTGRES_PORT: str = os.getenv("POSTGRES_PORT", "5432")
    CREATE_TABLES_ON_STARTUP: bool = True

    @property
    def DATABASE_URL(self) -> str:
        """URL de conexión a la base de datos asíncrona."""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Configuración de Redis
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", 6379))
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None

    @property
    def REDIS_URL(self) -> str:
        """URL de conexión a Redis."""
        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # Plazo máximo (segundos) para cada operación contra PostgreSQL o Redis
    OPERATION_TIMEOUT_SECONDS: float = 10.0

    # Caché de productos
    PRODUCT_CACHE_TTL_SECONDS: int = 86400
    RECENT_PRODUCTS_LIMIT: int = 100

    # Carrito de compras
    CART_TTL_SECONDS: int = 3600
    CART_TAX_RATE: float = 0.10
    CART_FREE_SHIPPING_THRESHOLD: float = 50.0
    CART_SHIPPING_FLAT_RATE: float = 5.99

    # Pedidos
    ORDER_TAX_RATE: float = 0.13
    ORDER_FREE_SHIPPING_THRESHOLD: float = 100.0
    ORDER_SHIPPING_FLAT_RATE: float = 15.0
    ORDER_ESTIMATED_DELIVERY_DAYS: int = 5

    # OpenAI - Del .env (sensibles)
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini-2024-07-18"
    OPENAI_MAX_TOKENS: int = 1500
    OPENAI_TEMPERATURE: float = 0.7

    # Logging - Defaults seguros
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # App Info - Del .env con defaults
    APP_ENVIRONMENT: str = "development"

    # Server - Del .env con defaults
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    class Config:
        env_file = ".env"
        case_sensitive = False

# Instancia global de la configuración
settings = Settings()
