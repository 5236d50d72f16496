"""
Configuration management for the media plan validation cascade.
Handles validator tolerances and logging settings from Streamlit secrets or the environment.
"""

import os
import streamlit as st
from typing import Optional
from dataclasses import dataclass
from dotenv import load_dotenv


@dataclass
class CascadeConfig:
    """Validation cascade configuration settings."""
    kpi_tolerance: float = 0.05
    budget_drift_tolerance: float = 0.10
    daily_budget_tolerance: float = 0.10
    cross_section_kpi_tolerance: float = 0.20
    timeline_tolerance: float = 0.25
    days_per_month: int = 30
    healthy_ltv_cac_ratio: float = 3.0
    log_level: str = "INFO"

    def __post_init__(self):
        if self.days_per_month <= 0:
            self.days_per_month = 30
        self.log_level = self.log_level.upper()


class ConfigManager:
    """Manages cascade configuration and settings."""

    def __init__(self):
        self._config: Optional[CascadeConfig] = None

    def load_config(self) -> CascadeConfig:
        """Load configuration from Streamlit secrets, environment and .env file."""
        if self._config is not None:
            return self._config

        load_dotenv()
        defaults = CascadeConfig()

        self._config = CascadeConfig(
            kpi_tolerance=self._get_float_setting("KPI_TOLERANCE", defaults.kpi_tolerance),
            budget_drift_tolerance=self._get_float_setting("BUDGET_DRIFT_TOLERANCE", defaults.budget_drift_tolerance),
            daily_budget_tolerance=self._get_float_setting("DAILY_BUDGET_TOLERANCE", defaults.daily_budget_tolerance),
            cross_section_kpi_tolerance=self._get_float_setting(
                "CROSS_SECTION_KPI_TOLERANCE", defaults.cross_section_kpi_tolerance
            ),
            timeline_tolerance=self._get_float_setting("TIMELINE_TOLERANCE", defaults.timeline_tolerance),
            days_per_month=self._get_int_setting("DAYS_PER_MONTH", defaults.days_per_month),
            healthy_ltv_cac_ratio=self._get_float_setting("HEALTHY_LTV_CAC_RATIO", defaults.healthy_ltv_cac_ratio),
            log_level=self._get_setting("CASCADE_LOG_LEVEL", defaults.log_level)
        )

        return self._config

    def reset(self):
        """Drop the cached configuration so the next load re-reads settings."""
        self._config = None

    def _get_secret_or_env(self, key: str) -> Optional[str]:
        """Get value from Streamlit secrets or environment variables."""
        # Try Streamlit secrets first
        try:
            if hasattr(st, 'secrets') and key in st.secrets:
                return str(st.secrets[key])
        except Exception:
            # No secrets.toml configured
            pass

        # Fall back to environment variables
        return os.getenv(key)

    def _get_setting(self, key: str, default: str) -> str:
        """Get string setting with default value."""
        value = self._get_secret_or_env(key)
        return value if value is not None else default

    def _get_int_setting(self, key: str, default: int) -> int:
        """Get integer setting with default value."""
        value = self._get_secret_or_env(key)
        if value is not None:
            try:
                return int(value)
            except ValueError:
                pass
        return default

    def _get_float_setting(self, key: str, default: float) -> float:
        """Get non-negative float setting with default value."""
        value = self._get_secret_or_env(key)
        if value is not None:
            try:
                parsed = float(value)
                if parsed >= 0:
                    return parsed
            except ValueError:
                pass
        return default

    def get_kpi_tolerance(self) -> float:
        """Get relative KPI deviation allowed before an override."""
        config = self.load_config()
        return config.kpi_tolerance

    def get_days_per_month(self) -> int:
        """Get the divisor used to derive the daily ceiling."""
        config = self.load_config()
        return config.days_per_month


# Global configuration manager instance
config_manager = ConfigManager()
