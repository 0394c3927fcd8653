# keygrid/utils/logging.py
"""
Logging setup for layout conversion runs.

Every run writes a DEBUG-level log (neighbor counts, cluster counts, reserved
gap lines) to its own rotating file under paths.logs_dir, while the console
only shows config.logging.console_level and above.

Log file names: keygrid[_<run name>]_<YYYYmmdd_HHMMSS>.log, rotated at 10MB
with 5 backups.

Usage:
    LoggingManager(config).setup_logging(run_name="convert")
    logger = LoggingManager.getLogger(__name__)
"""
import logging
from logging.handlers import RotatingFileHandler
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union
import traceback

from keygrid.utils.config import Config

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

# matplotlib and Pillow log font and PNG chunk details at DEBUG
NOISY_LOGGERS = ('matplotlib', 'PIL')


class LoggingManager:
    def __init__(self, config: Union[Dict, Config, None] = None):
        if config is None:
            config = Config()
        self.config = config if isinstance(config, Config) else Config(**config)
        self.log_file: Optional[Path] = None

    @classmethod
    def getLogger(cls, name: str) -> logging.Logger:
        return logging.getLogger(name)

    @staticmethod
    def handle_error(e: Exception,
                     context: str = "",
                     logger: Optional[logging.Logger] = None) -> None:
        """Log an error on one line, with the traceback at DEBUG level."""
        logger = logger or logging.getLogger(__name__)
        logger.error(f"{context}: {e}" if context else str(e))
        logger.debug(traceback.format_exc())

    def setup_logging(self, run_name: str = "") -> Optional[Path]:
        """
        Replace the root handlers with a run log file and a console handler.

        Falls back to logging.basicConfig if the log directory cannot be used.

        Returns:
            Path of the log file, or None on fallback
        """
        root = logging.getLogger()
        root.setLevel(logging.DEBUG)
        root.handlers.clear()
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

        try:
            root.addHandler(self._create_file_handler(run_name))
        except OSError as e:
            logging.basicConfig(level=logging.INFO, format=self.config.logging.format)
            self.handle_error(e, "Cannot write log file", logging.getLogger(__name__))
            return None

        root.addHandler(self._create_console_handler())
        logging.getLogger(__name__).debug(f"Logging to {self.log_file}")
        return self.log_file

    def _create_file_handler(self, run_name: str) -> logging.Handler:
        log_dir = Path(self.config.paths.logs_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        stem = f"keygrid_{run_name}" if run_name else "keygrid"
        self.log_file = log_dir / f"{stem}_{timestamp}.log"

        handler = RotatingFileHandler(self.log_file, maxBytes=MAX_LOG_BYTES,
                                      backupCount=LOG_BACKUPS, encoding='utf-8')
        handler.setLevel(self.config.logging.file_level)
        handler.setFormatter(logging.Formatter(self.config.logging.format))
        return handler

    def _create_console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler()
        handler.setLevel(self.config.logging.console_level)
        handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
        return handler
