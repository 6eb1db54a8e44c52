"""
Library configuration using Pydantic settings.

All configurable values are loaded from FLAGSTORE_* environment variables with
sensible defaults. Nested values (stores, subscribe) are read as JSON, e.g.
FLAGSTORE_SUBSCRIBE='{"myapp.models.User": "flag_user"}'.
"""
from pathlib import Path
from typing import Dict, Literal, Optional

from pydantic import BaseModel, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Directory containing this config file (flagstore/)
_PACKAGE_DIR = Path(__file__).parent.resolve()


class StoreConfig(BaseModel):
    """Configuration of a single feature store."""

    driver: Literal["memory", "database"]
    connection: Optional[str] = None  # Database URL, falls back to Settings.database_url
    table: str = "features"


def _default_stores() -> Dict[str, StoreConfig]:
    return {
        "memory": StoreConfig(driver="memory"),
        "database": StoreConfig(driver="database", table="features"),
    }


class Settings(BaseSettings):
    """Library settings loaded from environment variables."""

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL

    # Store selection
    default_store: str = "database"
    stores: Dict[str, StoreConfig] = _default_stores()

    # Scope type tag -> handler method name for class based features.
    # The "null" key names the handler for the global scope.
    subscribe: Dict[str, str] = {}

    # Raise UndefinedFeatureError for unknown features (False treats them as inactive)
    strict_undefined_features: bool = True

    # Database connection used by database stores without their own connection
    database_url: str = "sqlite:///flagstore.db"
    database_pool_pre_ping: bool = True  # Test connections before using

    @model_validator(mode="after")
    def validate_default_store(self) -> "Settings":
        """Ensure the default store is one of the configured stores."""
        if self.default_store not in self.stores:
            raise ValueError(
                f"default_store '{self.default_store}' is not one of the configured "
                f"stores: {', '.join(sorted(self.stores))}"
            )
        return self

    model_config = SettingsConfigDict(
        env_prefix="FLAGSTORE_",
        env_file=_PACKAGE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def get_settings(**overrides) -> Settings:
    """
    Factory function to create Settings instance.

    Useful for testing where you need to override specific values
    without modifying environment variables.

    Args:
        **overrides: Key-value pairs to override default settings

    Returns:
        Settings instance with overrides applied

    Example:
        test_settings = get_settings(default_store="memory")
    """
    return Settings(**overrides)


# Global settings instance
settings = get_settings()
