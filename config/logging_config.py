"""
Logging setup for the Customs Transit Ledger.

Two channels are configured:
- the root logger, for operational messages from every module
- the ``audit`` logger, for sensitive actions (creation, payments, status
  changes). Audit records are also propagated to the root handlers.
"""
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from config.settings import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
AUDIT_FORMAT = '%(asctime)s | AUDIT | %(message)s'

audit_logger = logging.getLogger("audit")


def _file_handler(path: str, fmt: str) -> logging.FileHandler:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding='utf-8')
    handler.setFormatter(logging.Formatter(fmt, datefmt='%Y-%m-%d %H:%M:%S'))
    return handler


def setup_logging(level: Optional[str] = None) -> None:
    """Configure root and audit logging from settings"""
    level_name = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
    )

    root = logging.getLogger()
    if settings.LOG_FILE and not any(
        isinstance(h, logging.FileHandler) for h in root.handlers
    ):
        root.addHandler(_file_handler(settings.LOG_FILE, LOG_FORMAT))

    audit_logger.setLevel(logging.INFO)
    if settings.AUDIT_LOG_FILE and not audit_logger.handlers:
        audit_logger.addHandler(_file_handler(settings.AUDIT_LOG_FILE, AUDIT_FORMAT))


def audit(action: str, user: Optional[str] = None, **details: Any) -> None:
    """Write one entry to the audit trail"""
    context: Dict[str, Any] = {"user": user or "SYSTEM", **details}
    audit_logger.info(f"AUDIT_TRAIL: {action} {context}")
