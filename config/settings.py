"""
Configuration management for the OOH Media Planner application.
Handles the site source URL, geocoder endpoint, storage location and
display settings.
"""

import os
import streamlit as st
from typing import Any, Dict, Optional
from dataclasses import dataclass, replace
from dotenv import load_dotenv


DEFAULT_SITE_SOURCE_URL = ""
DEFAULT_GEOCODER_URL = "https://nominatim.openstreetmap.org/search"

# Symbols offered on the Settings page
CURRENCY_OPTIONS = {
    "£": "GBP (£)",
    "$": "USD ($)",
    "€": "EUR (€)",
}


@dataclass
class AppConfig:
    """Application configuration settings."""
    site_source_url: str = DEFAULT_SITE_SOURCE_URL
    geocoder_url: str = DEFAULT_GEOCODER_URL
    storage_dir: str = ".planner_data"
    currency_symbol: str = "£"
    request_timeout_seconds: int = 30
    max_upload_size_mb: int = 10
    supported_file_formats: list = None

    def __post_init__(self):
        if self.supported_file_formats is None:
            self.supported_file_formats = ['.csv']

    def is_valid_file_format(self, filename: str) -> bool:
        """Check if file format is supported."""
        return any(filename.lower().endswith(fmt) for fmt in self.supported_file_formats)

    def get_max_file_size_bytes(self) -> int:
        """Get maximum file size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


def apply_user_settings(config: AppConfig, saved: Optional[Dict[str, Any]]) -> AppConfig:
    """
    Overlay settings saved from the Settings page on top of a configuration.

    Only siteSourceUrl and currency are user-editable. Unknown currencies
    and non-string values are ignored. The given config is not modified.
    """
    if not isinstance(saved, dict):
        return config

    changes = {}
    url = saved.get('siteSourceUrl')
    if isinstance(url, str):
        changes['site_source_url'] = url.strip()
    currency = saved.get('currency')
    if currency in CURRENCY_OPTIONS:
        changes['currency_symbol'] = currency

    return replace(config, **changes) if changes else config


class ConfigManager:
    """Manages application configuration and settings."""

    def __init__(self):
        self._config: Optional[AppConfig] = None

    def load_config(self) -> AppConfig:
        """Load configuration from Streamlit secrets and the environment."""
        if self._config is not None:
            return self._config

        load_dotenv()

        self._config = AppConfig(
            site_source_url=self._get_setting("SITE_SOURCE_URL", DEFAULT_SITE_SOURCE_URL),
            geocoder_url=self._get_setting("GEOCODER_URL", DEFAULT_GEOCODER_URL),
            storage_dir=self._get_setting("PLANNER_STORAGE_DIR", ".planner_data"),
            currency_symbol=self._get_setting("CURRENCY_SYMBOL", "£"),
            request_timeout_seconds=self._get_int_setting("REQUEST_TIMEOUT_SECONDS", 30),
            max_upload_size_mb=self._get_int_setting("MAX_UPLOAD_SIZE_MB", 10)
        )

        return self._config

    def reset(self):
        """Forget the loaded configuration so the next load re-reads settings."""
        self._config = None

    def _get_secret_or_env(self, key: str) -> Optional[str]:
        """Get value from Streamlit secrets or environment variables."""
        # Try Streamlit secrets first; a missing secrets file raises
        try:
            if hasattr(st, 'secrets') and key in st.secrets:
                return st.secrets[key]
        except Exception:
            pass

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


# Global configuration manager instance
config_manager = ConfigManager()
