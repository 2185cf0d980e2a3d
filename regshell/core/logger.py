# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Logging setup for regshell.

Library modules log through ``logging.getLogger("regshell.<component>")`` and
never install handlers themselves. Applications (and the CLI) call
``setup_logging`` once; ``set_debug_output`` toggles the process-wide
diagnostic trace of command lines, exit codes and parsed output lines.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "regshell"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def parse_level(level: str) -> int:
    """Convert string level to logging constant"""
    return _LEVELS.get(level.upper(), logging.INFO)


class RegShellLogger:
    """
    Console and rotating-file handlers for the ``regshell`` logger tree.

    Features:
    - Console output on stderr (stdout stays free for command results)
    - Automatic log rotation (10MB, 5 backups)
    - Explicit debug switch independent of the configured level
    """

    def __init__(
        self,
        name: str = ROOT_LOGGER_NAME,
        level: str = "WARNING",
        log_dir: Optional[Path] = None,
        console_output: bool = True,
        file_output: bool = False,
    ):
        self.name = name
        self.level = parse_level(level)
        self.logger = logging.getLogger(name)
        self.debug_output = False

        # Clear any existing handlers
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        self.logger.setLevel(self.level)

        console_formatter = logging.Formatter(
            fmt="[%(asctime)s] [%(name)s:%(levelname)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        file_formatter = logging.Formatter(
            fmt="%(asctime)s | %(name)s | %(levelname)s | %(filename)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        if console_output:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        if file_output:
            if log_dir is None:
                log_dir = Path.home() / ".regshell" / "logs"

            log_dir.mkdir(parents=True, exist_ok=True)

            file_handler = RotatingFileHandler(
                log_dir / f"{name}.log",
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def set_level(self, level: str):
        """Change log level dynamically"""
        self.level = parse_level(level)
        if not self.debug_output:
            self.logger.setLevel(self.level)

    def set_debug_output(self, enabled: bool):
        """Force DEBUG records on (or back to the configured level)"""
        self.debug_output = enabled
        self.logger.setLevel(logging.DEBUG if enabled else self.level)


_logger: Optional[RegShellLogger] = None


def setup_logging(
    level: str = "WARNING",
    log_dir: Optional[Path] = None,
    console_output: bool = True,
    file_output: bool = False,
    debug_output: bool = False,
) -> RegShellLogger:
    """
    Install handlers on the ``regshell`` logger, replacing earlier ones.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for the rotating log file
        console_output: Log to stderr
        file_output: Log to ``<log_dir>/regshell.log``
        debug_output: Start with the diagnostic trace enabled

    Returns:
        RegShellLogger instance
    """
    global _logger

    _logger = RegShellLogger(
        level=level,
        log_dir=log_dir,
        console_output=console_output,
        file_output=file_output,
    )
    _logger.set_debug_output(debug_output)
    return _logger


def configure_from_config(
    config, level: Optional[str] = None, debug_output: bool = False
) -> RegShellLogger:
    """
    Set up logging from a RegShellConfig.

    Args:
        config: Loaded configuration
        level: Overrides ``observability.log_level`` when given
        debug_output: Enables the diagnostic trace even if the config does not
    """
    observability = config.observability
    return setup_logging(
        level=level or observability.log_level,
        log_dir=config.paths.log_dir,
        file_output=observability.log_to_file,
        debug_output=debug_output or observability.debug_output,
    )


def set_debug_output(enabled: bool):
    """
    Turn the diagnostic trace on or off for the whole process.

    Without a prior ``setup_logging`` call, enabling it installs a
    console-only handler.
    """
    global _logger

    if _logger is None:
        if not enabled:
            return
        _logger = RegShellLogger()
    _logger.set_debug_output(enabled)


def is_debug_output() -> bool:
    """Whether the diagnostic trace is enabled"""
    return _logger is not None and _logger.debug_output
