"""
Configuration management for the Customs Transit Ledger
"""
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: Optional[str] = Field(default=None)
    AUDIT_LOG_FILE: Optional[str] = Field(default=None)

    # Shipment defaults
    DEFAULT_FREE_DAYS: int = Field(default=7, ge=0)
    DEFAULT_DESTINATION: str = Field(default="Conakry, GN")

    # Tracking numbers: <regime>-<4 digits>-<suffix>
    TRACKING_SUFFIX: str = Field(default="GN")
    TRACKING_MAX_ATTEMPTS: int = Field(default=50, ge=1)

    # Ledger
    CURRENCY: str = Field(default="GNF")
    # Observed behaviour counts every provision, received or not.
    # Set to True to count only provisions flagged as received.
    STRICT_PROVISION_BALANCE: bool = Field(default=False)

    # Customs calculator rates
    RATE_DD: float = Field(default=0.20)
    RATE_RTL: float = Field(default=0.02)
    RATE_RDL: float = Field(default=0.015)
    RATE_TVS: float = Field(default=0.18)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
