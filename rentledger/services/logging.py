"""Logging for the settlement API server.

Every line goes to stdout and to a log file that serves as the operational
trail of settlements. At INFO the `rentledger` loggers record:
- gateway verification outcomes (amount paid, external transaction id)
- balance credits and credit draws with the resulting balance
- the ledger record id written for each settlement
- advance bills materialized from an overpayment
- idempotent replays answered from an existing record

Gateways log refusals (declined capture, unknown intent) at WARNING. At
ERROR go:
- bills already settled through another gateway
- rolled-back settlements and constraint violations
- unreachable or malformed gateway answers
- failed notifications, which are never raised

The HTTP clients the gateways use log every request at INFO, so they are
held at WARNING whatever LOG_LEVEL says.
"""

import logging
import os
import sys
from pathlib import Path

LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

LOG_FORMAT = "[%(asctime)s] %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Gateway HTTP clients: httpx/httpcore for PayMongo and PayPal, stripe for Stripe
GATEWAY_CLIENT_LOGGERS = ("httpx", "httpcore", "stripe")


def get_log_level(default: str = "INFO") -> int:
    """Resolve LOG_LEVEL (case-insensitive) to a logging constant.

    Unknown names fall back to INFO rather than failing startup.
    """
    level_str = os.getenv("LOG_LEVEL", default).upper()
    return LOG_LEVEL_MAP.get(level_str, logging.INFO)


def _handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    return handler


def setup_server_logging(log_file: str = "logs/server.log", default_level: str = "INFO") -> None:
    """
    Route settlement logging to stdout and the settlement trail file.

    Args:
        log_file: Trail file; its directory is created if missing
        default_level: Level used when LOG_LEVEL is not set

    Replaces any handlers already on the root logger, so calling it again
    (app reload, tests) does not duplicate lines. Gateway client loggers are
    raised to WARNING so a settlement's trail shows its verification
    outcome, not the HTTP requests behind it.
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    log_level = get_log_level(default_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(_handler(logging.StreamHandler(sys.stdout), log_level))
    root_logger.addHandler(_handler(logging.FileHandler(log_path), log_level))

    for name in GATEWAY_CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


__all__ = ["get_log_level", "setup_server_logging"]
