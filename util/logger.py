# util/logger.py
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Dict
from config.settings import settings

logging.captureWarnings(True)

# Third-party loggers that would otherwise echo every request/page fetch.
LIBRARY_LEVELS: Dict[str, int] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "redis": logging.WARNING,
    "uvicorn.error": logging.INFO,
    "uvicorn.access": logging.INFO,
}

TEXT_FMT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
DATE_FMT = "%Y-%m-%dT%H:%M:%S%z"


class ColoredFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": "\033[37m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[41m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        plain = record.levelname
        record.levelname = f"{self.COLORS.get(plain, self.RESET)}{plain}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # the same record may reach the file handler next
            record.levelname = plain


class SecretRedactingFilter(logging.Filter):
    """
    Masks configured secrets in the final message. Upstream errors sometimes echo
    request headers back, and those end up in evidence-adjacent logs.
    """

    MASK = "***"

    def __init__(self, *secrets: str) -> None:
        super().__init__()
        self._secrets = [s for s in secrets if s and len(s) >= 8]

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        msg = record.getMessage()
        redacted = msg
        for s in self._secrets:
            redacted = redacted.replace(s, self.MASK)
        if redacted != msg:
            record.msg, record.args = redacted, None
        return True


def init_logger() -> logging.Logger:
    """
    Idempotent logger init:
    - stdout always (colored levels), rotating file only when LOG_TO_FILE.
    - LOG_LEVEL for the root logger; LIBRARY_LEVELS for noisy dependencies.
    - The Anthropic key is redacted from every handler's output.
    """
    root = logging.getLogger()
    if getattr(root, "_takedown_inited", False):
        return logging.getLogger(settings.LOGGER_NAME)

    level = getattr(logging, (settings.LOG_LEVEL or "INFO").upper(), logging.INFO)
    root.setLevel(level)
    for h in list(root.handlers):
        root.removeHandler(h)

    redact = SecretRedactingFilter(settings.ANTHROPIC_API_KEY)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(ColoredFormatter(TEXT_FMT, datefmt=DATE_FMT))
    console.addFilter(redact)
    root.addHandler(console)

    if settings.LOG_TO_FILE:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        fh = RotatingFileHandler(
            os.path.join(settings.LOG_DIR, settings.LOG_FILE_NAME),
            maxBytes=settings.LOG_MAX_BYTES,
            backupCount=settings.LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(TEXT_FMT, datefmt=DATE_FMT))
        fh.addFilter(redact)
        root.addHandler(fh)

    for name, lib_level in LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(lib_level)

    root._takedown_inited = True
    logger = logging.getLogger(settings.LOGGER_NAME)
    logger.debug("logger.init level=%s file=%s", logging.getLevelName(level), settings.LOG_TO_FILE)
    return logger
