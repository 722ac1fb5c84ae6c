"""
Centralized application configuration
"""
import json

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application configuration (environment variables or .env file)"""

    # API Settings
    API_TITLE: str = "Pet Store POS API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Offline point-of-sale back end: catalog, sales ledger, receipts and backups"
    LOG_LEVEL: str = "INFO"

    # Local datastore (SQLite file, ":memory:" for a throwaway store)
    DATABASE_PATH: str = "petstore_pos.db"

    # Order numbering: PREFIX + zero-padded sequence (HD0001, HD0002, ...)
    ORDER_NUMBER_PREFIX: str = "HD"
    ORDER_NUMBER_WIDTH: int = 4

    # Catalog
    LOW_STOCK_THRESHOLD: int = 5

    # Backup file layout version
    BACKUP_SCHEMA_VERSION: int = 1

    # Receipts
    SHOP_NAME: str = "PET STORE"
    RECEIPT_FOOTER: str = "Cảm ơn quý khách! Hẹn gặp lại"

    # CORS - Can be string (comma-separated) or JSON array
    # Example: "http://localhost:3000,http://127.0.0.1:5500" or '["http://localhost:3000"]'
    ALLOWED_ORIGINS: Optional[str] = "http://localhost:3000,http://127.0.0.1:5500"

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into list"""
        if not self.ALLOWED_ORIGINS:
            return ["http://localhost:3000"]

        value = self.ALLOWED_ORIGINS.strip()
        if value.startswith("["):
            origins = json.loads(value)
            return [str(origin).strip() for origin in origins]

        # Comma-separated list; blank entries are skipped
        return [origin.strip() for origin in value.split(",") if origin.strip()]

    @property
    def database_url(self) -> str:
        """SQLAlchemy URL for DATABASE_PATH"""
        if self.DATABASE_PATH in ("", ":memory:"):
            return "sqlite://"
        return f"sqlite:///{self.DATABASE_PATH}"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
