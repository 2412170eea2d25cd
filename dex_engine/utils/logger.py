"""
Logging configuration for the exchange engine.

This module provides logging setup with console and rotating file
handlers, a structured logger for order, trade and custody events, and a
dedicated audit trail.
"""

import logging
import logging.handlers
import os
import sys
from typing import Optional


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> None:
    """
    Set up logging configuration for the exchange engine.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (optional)
        max_file_size: Maximum log file size in bytes
        backup_count: Number of backup files to keep
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    simple_formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(simple_formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(file_handler)

    # Quiet chatty libraries
    logging.getLogger('websockets').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)
    logging.getLogger('werkzeug').setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized - Level: {level}, File: {log_file or 'Console only'}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


class ExchangeLogger:
    """
    Structured logger for exchange operations.

    Emits pipe-delimited records on dedicated child loggers so orders,
    trades and custody movements can be filtered or routed separately.
    """

    def __init__(self, name: str = "dex_engine"):
        self.order_logger = logging.getLogger(f"{name}.orders")
        self.trade_logger = logging.getLogger(f"{name}.trades")
        self.custody_logger = logging.getLogger(f"{name}.custody")

    def log_order_submission(self, trader: str, asset: str, order_type: str, side: str, amount: int, price: Optional[int] = None) -> None:
        """Log order submission."""
        self.order_logger.info(
            f"ORDER_SUBMIT|{trader}|{asset}|{order_type}|{side}|{amount}|{price if price is not None else 'N/A'}"
        )

    def log_order_execution(self, order_id: int, status: str, filled: int) -> None:
        """Log order execution."""
        self.order_logger.info(f"ORDER_EXEC|{order_id}|{status}|{filled}")

    def log_rejection(self, trader: str, asset: str, reason: str, detail: str) -> None:
        self.order_logger.warning(f"ORDER_REJECT|{trader}|{asset}|{reason}|{detail}")

    def log_trade_execution(self, trade_id: int, asset: str, price: int, amount: int, aggressor_side: str) -> None:
        """Log trade execution."""
        self.trade_logger.info(f"TRADE_EXEC|{trade_id}|{asset}|{price}|{amount}|{aggressor_side}")

    def log_transfer(self, action: str, account: str, asset: str, amount: int) -> None:
        """Log a deposit or withdrawal."""
        self.custody_logger.info(f"{action}|{account}|{asset}|{amount}")


def create_audit_logger(log_file: str = "logs/audit.log") -> logging.Logger:
    """
    Create a dedicated audit logger for compliance.

    Args:
        log_file: Path to audit log file

    Returns:
        Audit logger instance
    """
    log_dir = os.path.dirname(log_file)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)

    audit_logger = logging.getLogger("audit")
    audit_logger.setLevel(logging.INFO)

    # Prevent propagation to root logger
    audit_logger.propagate = False

    audit_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=50 * 1024 * 1024,  # 50MB
        backupCount=10
    )

    # Structured for easy parsing
    audit_formatter = logging.Formatter(
        '%(asctime)s|%(levelname)s|%(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    audit_handler.setFormatter(audit_formatter)

    audit_logger.addHandler(audit_handler)

    return audit_logger


def log_order_audit(audit_logger: logging.Logger, action: str, order_data: dict) -> None:
    """
    Log order action to audit trail.

    Args:
        audit_logger: Audit logger instance
        action: Action performed (SUBMIT, EXECUTE, REJECT)
        order_data: Order data dictionary
    """
    audit_logger.info(
        f"ORDER_{action}|"
        f"ID:{order_data.get('order_id', 'N/A')}|"
        f"TRADER:{order_data.get('trader', 'N/A')}|"
        f"ASSET:{order_data.get('asset', 'N/A')}|"
        f"TYPE:{order_data.get('order_type', 'N/A')}|"
        f"SIDE:{order_data.get('side', 'N/A')}|"
        f"AMOUNT:{order_data.get('amount', 'N/A')}|"
        f"PRICE:{order_data.get('price', 'N/A')}"
    )


def log_trade_audit(audit_logger: logging.Logger, trade_data: dict) -> None:
    """
    Log trade execution to audit trail.

    Args:
        audit_logger: Audit logger instance
        trade_data: Trade data dictionary
    """
    audit_logger.info(
        f"TRADE_EXECUTE|"
        f"ID:{trade_data.get('trade_id', 'N/A')}|"
        f"ASSET:{trade_data.get('asset', 'N/A')}|"
        f"PRICE:{trade_data.get('price', 'N/A')}|"
        f"AMOUNT:{trade_data.get('amount', 'N/A')}|"
        f"BUYER:{trade_data.get('buyer', 'N/A')}|"
        f"SELLER:{trade_data.get('seller', 'N/A')}|"
        f"MAKER:{trade_data.get('maker_order_id', 'N/A')}|"
        f"TAKER:{trade_data.get('taker_order_id', 'N/A')}"
    )
