import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from .config import LoggingSettings

PACKAGE_LOGGER = "tx_lander"


class ApplicationLogger:
    def __init__(self, settings: LoggingSettings):
        self.settings = settings
        self.logger: Optional[logging.Logger] = None

    def setup(self) -> logging.Logger:
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        package_logger.setLevel(getattr(logging, self.settings.level.value))

        package_logger.handlers.clear()
        package_logger.propagate = False

        formatter = logging.Formatter(
            self.settings.format,
            datefmt=self.settings.date_format
        )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        package_logger.addHandler(console_handler)

        if self.settings.file_enabled:
            log_path = self.settings.file_path
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_path,
                maxBytes=self.settings.file_max_bytes,
                backupCount=self.settings.file_backup_count,
                encoding="utf-8"
            )
            file_handler.setFormatter(formatter)
            file_handler.setLevel(logging.DEBUG)
            package_logger.addHandler(file_handler)

        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
        logging.getLogger("aiohttp").setLevel(logging.WARNING)
        logging.getLogger("asyncio").setLevel(logging.WARNING)

        self.logger = package_logger
        return self.logger


def setup_logging(settings: Optional[LoggingSettings] = None) -> logging.Logger:
    return ApplicationLogger(settings or LoggingSettings()).setup()


def get_logger(name: str) -> logging.Logger:
    if not name.startswith(PACKAGE_LOGGER):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
