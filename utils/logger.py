"""
Logging setup for the acquisition layer.

Three loguru sinks:
- stderr for operators
- logs/acquisition.log, rotated and zipped
- logs/audit.log, credit events only (records bound with audit=True)
"""
import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
AUDIT_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {message}"

DEFAULT_LOG_DIR = Path(__file__).parent.parent / "logs"


def _is_audit(record) -> bool:
    return bool(record["extra"].get("audit"))


def setup_logger(
    log_dir: Optional[Path] = None,
    level: Optional[str] = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    console: bool = True,
) -> None:
    """
    Replace loguru's default handler with the acquisition sinks.

    Args:
        log_dir: Where log files go (default: LOG_DIR env var, else project_root/logs)
        level: Minimum level for console and main file (default: LOG_LEVEL env var, else INFO)
        rotation: Size or age at which the main and audit files rotate
        retention: How long rotated main logs are kept (audit keeps 90 days)
        console: Also log to stderr
    """
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_dir = Path(log_dir or os.getenv("LOG_DIR") or DEFAULT_LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    logger.remove()
    if console:
        logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)

    logger.add(
        log_dir / "acquisition.log",
        level=level,
        format=FILE_FORMAT,
        rotation=rotation,
        retention=retention,
        compression="zip",
    )
    # Credit ledger trail: kept longer, independent of the main level
    logger.add(
        log_dir / "audit.log",
        level="INFO",
        format=AUDIT_FORMAT,
        filter=_is_audit,
        rotation=rotation,
        retention="90 days",
    )


def audit_log(event: str, **context) -> None:
    """
    Record a credit event (charge, exhaustion, reset) in the audit trail.

    Args:
        event: Event name, e.g. CREDIT_CHARGE
        **context: key=value pairs appended in the given order
    """
    fields = [event] + [f"{k}={v}" for k, v in context.items()]
    logger.bind(audit=True).info(" | ".join(fields))
