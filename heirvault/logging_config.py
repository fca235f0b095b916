"""
Logging configuration for heirvault.

Provides structured JSON logging for the vault event trail and for
rejected operations.
"""

import json
import logging
import sys
import time
from typing import Any, Dict, Optional

from .config import LOG_JSON, LOG_LEVEL
from .util import mask_sensitive


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs one JSON object per line, suitable for log aggregation.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class VaultEventLogger:
    """
    Specialized logger for vault events.

    One method per observable event, plus rejected operations. Identity
    secrets and claim codes never reach this logger; nullifiers and
    commitments are masked.
    """

    def __init__(self, name: str = "heirvault.events", vault_address: str = ""):
        self._logger = logging.getLogger(name)
        self._vault_address = vault_address

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        extra: Dict[str, Any] = {
            "event_type": event_type,
            "vault": self._vault_address,
            **kwargs
        }

        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "",
            0,
            f"{event_type}: {kwargs.get('message', '')}",
            (),
            None
        )
        record.extra_fields = extra
        self._logger.handle(record)

    def heartbeat_renewed(self, next_deadline: int) -> None:
        self._log(
            logging.INFO,
            "HEARTBEAT_RENEWED",
            next_deadline=next_deadline,
            message=f"Owner heartbeat renewed until {next_deadline}"
        )

    def heir_added(self, commitment: int, group_size: int) -> None:
        self._log(
            logging.INFO,
            "HEIR_ADDED",
            commitment=mask_sensitive(commitment),
            group_size=group_size,
            message=f"Heir commitment registered ({group_size} total)"
        )

    def deposited(self, asset: str, amount: int) -> None:
        self._log(
            logging.INFO,
            "DEPOSITED",
            asset=asset,
            amount=amount,
            message=f"Deposit of {amount} {asset}"
        )

    def expiry_started(self, challenge_window_end: int) -> None:
        self._log(
            logging.WARNING,
            "EXPIRY_STARTED",
            challenge_window_end=challenge_window_end,
            message=f"Heartbeat missed; challenge window open until {challenge_window_end}"
        )

    def snapshot_taken(self, heirs: int, native_amount: int, assets: list) -> None:
        self._log(
            logging.INFO,
            "SNAPSHOT_TAKEN",
            heirs=heirs,
            native_amount=native_amount,
            assets=assets,
            message=f"Snapshot taken for {heirs} heirs"
        )

    def expiry_revoked(self, next_deadline: int) -> None:
        self._log(
            logging.INFO,
            "EXPIRY_REVOKED",
            next_deadline=next_deadline,
            message="Owner revoked expiry inside challenge window"
        )

    def claimed(self, nullifier: int, recipient: str, amount: int, signal: int,
                payouts: Dict[str, int], heirs_remaining: int) -> None:
        self._log(
            logging.INFO,
            "CLAIMED",
            nullifier=mask_sensitive(nullifier),
            recipient=recipient,
            amount=amount,
            signal=mask_sensitive(signal),
            payouts=payouts,
            heirs_remaining=heirs_remaining,
            message=f"Claim paid to {recipient}; {heirs_remaining} heirs remaining"
        )

    def operation_rejected(self, operation: str, code: str, reason: str) -> None:
        self._log(
            logging.WARNING,
            "OPERATION_REJECTED",
            operation=operation,
            code=code,
            reason=reason,
            message=f"{operation} rejected: {code}"
        )

    def operation_failed(self, operation: str, error: Exception) -> None:
        """Unexpected exception escaping a vault operation."""
        self._log(
            logging.ERROR,
            "OPERATION_FAILED",
            operation=operation,
            error=type(error).__name__,
            message=f"{operation} failed: {type(error).__name__}"
        )


def configure_logging(
    level: str = LOG_LEVEL,
    json_format: bool = LOG_JSON,
    log_file: Optional[str] = None
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting (recommended for production)
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
