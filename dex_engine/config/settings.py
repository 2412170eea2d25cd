"""
Configuration settings for the exchange engine.

This module provides centralized configuration management
with environment variable support and validation.
"""

import os
from typing import Any, Dict, List, Optional

from ..core.asset_registry import validate_symbol
from ..core.fixed_point import MAX_AMOUNT


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class Settings:
    """
    Configuration settings for the exchange engine.

    Supports environment variables and provides sensible defaults.
    """

    def __init__(self):
        """Initialize settings from environment variables."""
        # Server configuration
        self.rest_host = os.getenv("REST_HOST", "0.0.0.0")
        self.rest_port = int(os.getenv("REST_PORT", "5000"))
        self.websocket_host = os.getenv("WEBSOCKET_HOST", "localhost")
        self.websocket_port = int(os.getenv("WEBSOCKET_PORT", "8765"))

        # Logging configuration
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.log_file = os.getenv("LOG_FILE", "logs/dex_engine.log")
        self.audit_log_file = os.getenv("AUDIT_LOG_FILE", "logs/audit.log")

        # Assets registered at startup; the quote asset comes first
        self.quote_asset = os.getenv("QUOTE_ASSET", "DAI")
        self.assets = _env_list("ASSETS", "DAI,BAT,REP,ZRX")

        # Order limits
        self.max_order_amount = int(os.getenv("MAX_ORDER_AMOUNT", str(MAX_AMOUNT)))
        self.max_book_depth = int(os.getenv("MAX_BOOK_DEPTH", "100"))
        self.trade_history = int(os.getenv("TRADE_HISTORY", "1000"))

        # WebSocket configuration
        self.websocket_ping_interval = int(os.getenv("WEBSOCKET_PING_INTERVAL", "20"))
        self.websocket_ping_timeout = int(os.getenv("WEBSOCKET_PING_TIMEOUT", "10"))

        # Performance monitoring
        self.enable_performance_monitoring = _env_flag("ENABLE_PERFORMANCE_MONITORING", "true")

        # Security
        self.enable_cors = _env_flag("ENABLE_CORS", "true")
        self.cors_origins = _env_list("CORS_ORIGINS", "*")

        # Debug mode
        self.debug = _env_flag("DEBUG", "false")

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        return {
            "rest_host": self.rest_host,
            "rest_port": self.rest_port,
            "websocket_host": self.websocket_host,
            "websocket_port": self.websocket_port,
            "log_level": self.log_level,
            "log_file": self.log_file,
            "audit_log_file": self.audit_log_file,
            "quote_asset": self.quote_asset,
            "assets": list(self.assets),
            "max_order_amount": str(self.max_order_amount),
            "max_book_depth": self.max_book_depth,
            "trade_history": self.trade_history,
            "websocket_ping_interval": self.websocket_ping_interval,
            "websocket_ping_timeout": self.websocket_ping_timeout,
            "enable_performance_monitoring": self.enable_performance_monitoring,
            "enable_cors": self.enable_cors,
            "cors_origins": list(self.cors_origins),
            "debug": self.debug,
        }

    def validate(self) -> None:
        """Validate configuration settings."""
        errors = []

        # Validate ports
        if not (1 <= self.rest_port <= 65535):
            errors.append(f"Invalid REST port: {self.rest_port}")

        if not (1 <= self.websocket_port <= 65535):
            errors.append(f"Invalid WebSocket port: {self.websocket_port}")

        # Validate assets
        for symbol in [self.quote_asset] + self.assets:
            try:
                validate_symbol(symbol)
            except ValueError as e:
                errors.append(str(e))

        if len(set(self.assets)) != len(self.assets):
            errors.append(f"Duplicate symbols in assets: {self.assets}")

        if self.quote_asset not in self.assets:
            errors.append(f"Quote asset {self.quote_asset} is not listed in assets: {self.assets}")

        # Validate order limits
        if not (1 <= self.max_order_amount <= MAX_AMOUNT):
            errors.append(f"Max order amount must be between 1 and 2**256 - 1: {self.max_order_amount}")

        if self.max_book_depth <= 0:
            errors.append(f"Max book depth must be positive: {self.max_book_depth}")

        if self.trade_history <= 0:
            errors.append(f"Trade history must be positive: {self.trade_history}")

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
        _settings.validate()
    return _settings


def reload_settings() -> Settings:
    """
    Reload settings from environment variables.

    Returns:
        New settings instance
    """
    global _settings
    _settings = Settings()
    _settings.validate()
    return _settings
