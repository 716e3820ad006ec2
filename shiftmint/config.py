"""Service configuration loaded from the environment (prefix ``SHIFTMINT_``)."""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shiftmint.anomalies import parse_closing_time
from shiftmint.payroll import TaxSettings


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SHIFTMINT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Comma-separated list of allowed origins for the React dev servers
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    # Tip pool
    default_service_charge_rate: float = Field(default=18.0, ge=0, le=100)

    # Payroll estimate
    assumed_weekly_hours: float = Field(default=32.0, gt=0)
    federal_rate: float = Field(default=0.22, ge=0)
    state_rate: float = Field(default=0.09, ge=0)
    fica_rate: float = Field(default=0.0765, ge=0)
    unemployment_rate: float = Field(default=0.006, ge=0)

    # Time-entry anomaly detection
    venue_closing_time: str = "02:00"
    tip_sales_ratio_min: float = 0.01
    tip_sales_ratio_max: float = 0.40

    @field_validator("venue_closing_time")
    @classmethod
    def validate_closing_time(cls, v: str) -> str:
        # same rule the detector applies, so a bad value fails at startup
        parse_closing_time(v)
        return v

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def tax_settings(self) -> TaxSettings:
        return TaxSettings(
            federal_rate=self.federal_rate,
            state_rate=self.state_rate,
            fica_rate=self.fica_rate,
            unemployment_rate=self.unemployment_rate,
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
