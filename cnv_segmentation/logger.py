"""
Logging for CNV Segmentation

All handlers live on the package logger ``cnv_segmentation``. Module loggers
(``cnv_segmentation.engine``, ``cnv_segmentation.segmenters.cbs`` ...) carry no
handlers and no level of their own; they propagate to the package logger, so
reconfiguring it from a SegmentationConfig (level, log file, console on/off)
applies to every module at once.

Loggers outside the package namespace are standalone: they get their own
handlers and do not propagate.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Dict, TYPE_CHECKING
from datetime import datetime

if TYPE_CHECKING:
    from .config import SegmentationConfig

PACKAGE_LOGGER = 'cnv_segmentation'

CONSOLE_FORMAT = '%(levelname)s: %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _is_module_logger(name: str) -> bool:
    return name.startswith(PACKAGE_LOGGER + '.')


def _attach_handlers(
    logger: logging.Logger,
    level: int,
    log_file: Optional[str],
    verbose: bool,
    log_format: Optional[str]
) -> None:
    if verbose:
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(level)
        console.setFormatter(logging.Formatter(log_format or CONSOLE_FORMAT))
        logger.addHandler(console)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        to_file = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        to_file.setLevel(level)
        to_file.setFormatter(logging.Formatter(log_format or FILE_FORMAT))
        logger.addHandler(to_file)


class SegmentationLogger:
    """
    Cache and configuration of the package's loggers.

    Example:
        >>> from cnv_segmentation.logger import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Partitioning chr1")
    """

    _loggers: Dict[str, logging.Logger] = {}

    @staticmethod
    def setup_logger(
        name: str = PACKAGE_LOGGER,
        level: int = logging.INFO,
        log_file: Optional[str] = None,
        verbose: bool = True,
        log_format: Optional[str] = None
    ) -> logging.Logger:
        """
        Setup or retrieve a logger.

        Module loggers of the package ignore the handler arguments: they are
        returned bare and propagating, and the package logger is set up with
        defaults if nobody configured it yet.

        Args:
            name: Logger name (typically __name__ of calling module)
            level: Logging level
            log_file: Optional path to log file for persistent logging
            verbose: If False, no console handler (file only)
            log_format: Optional format for both handlers

        Returns:
            Logger instance
        """
        cached = SegmentationLogger._loggers.get(name)
        if cached is not None:
            return cached

        logger = logging.getLogger(name)
        for handler in logger.handlers:
            handler.close()
        logger.handlers = []

        if _is_module_logger(name):
            SegmentationLogger.setup_logger(PACKAGE_LOGGER)
            logger.setLevel(logging.NOTSET)
            logger.propagate = True
        else:
            logger.setLevel(level)
            logger.propagate = False
            _attach_handlers(logger, level, log_file, verbose, log_format)
            if log_file:
                logger.info(f"Logging session started: {datetime.now().isoformat()}")

        SegmentationLogger._loggers[name] = logger
        return logger

    @staticmethod
    def reset_loggers() -> None:
        """Close every handler and forget all cached loggers."""
        for logger in SegmentationLogger._loggers.values():
            for handler in logger.handlers:
                handler.close()
            logger.handlers = []
        SegmentationLogger._loggers = {}

    @staticmethod
    def set_level(name: str, level: int) -> None:
        """
        Change the level of a cached logger and its handlers.

        Unknown names are ignored.
        """
        logger = SegmentationLogger._loggers.get(name)
        if logger is None:
            return
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)


def get_logger(
    name: str = PACKAGE_LOGGER,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    verbose: bool = True
) -> logging.Logger:
    """
    Logger for ``name``; see ``SegmentationLogger.setup_logger``.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Wavelet partitioning started")
    """
    return SegmentationLogger.setup_logger(name, level, log_file, verbose)


def configure_logging_from_config(config: 'SegmentationConfig') -> logging.Logger:
    """
    Rebuild the package logger from a SegmentationConfig.

    The configuration's logging level and log file and its ``verbose`` flag
    (console output) apply to every module logger of the package.

    Returns:
        The package logger
    """
    stale = SegmentationLogger._loggers.pop(PACKAGE_LOGGER, None)
    if stale is not None:
        for handler in stale.handlers:
            handler.close()
        stale.handlers = []

    logging_config = getattr(config, 'logging', None)
    if logging_config is None:
        return get_logger(PACKAGE_LOGGER, verbose=config.verbose)
    return get_logger(
        PACKAGE_LOGGER,
        level=getattr(logging, logging_config.level.upper(), logging.INFO),
        log_file=logging_config.log_file,
        verbose=config.verbose
    )


_default_logger = None


def get_default_logger() -> logging.Logger:
    """Get the default package logger."""
    global _default_logger
    if _default_logger is None:
        _default_logger = get_logger(PACKAGE_LOGGER)
    return _default_logger
