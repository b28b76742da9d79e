"""
Application settings and configuration.
"""
import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Application configuration class."""

    def __init__(self):
        self.database_config = DatabaseConfig()
        self.adapter_config = AdapterConfig()

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return os.getenv("ENVIRONMENT", "development").lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return os.getenv("ENVIRONMENT", "development").lower() == "production"


class DatabaseConfig:
    """MySQL connection configuration."""

    def __init__(self):
        self.host = os.getenv("DB_HOST", "localhost")
        self.port = int(os.getenv("DB_PORT", "3306"))
        self.username = os.getenv("DB_USER", "root")
        self.password = os.getenv("DB_PASSWORD", "")
        self.database = os.getenv("DB_DATABASE", "testing")
        self.charset = os.getenv("DB_CHARSET", "utf8mb4")
        self.connection_timeout = int(os.getenv("DB_CONNECTION_TIMEOUT", "10"))


class AdapterConfig:
    """Adapter behaviour configuration."""

    def __init__(self):
        # Thread pool size used to dispatch multi-row inserts
        self.insert_workers = int(os.getenv("ADAPTER_INSERT_WORKERS", "4"))


# Global configuration instance
config = Config()
