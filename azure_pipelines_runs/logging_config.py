import logging
import os
from pathlib import Path

LOG_DIR_ENV = "AZURE_PIPELINES_LOG_DIR"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def log_file() -> Path:
    log_path = Path(os.getenv(LOG_DIR_ENV) or Path.cwd() / "logs")
    log_path.mkdir(parents=True, exist_ok=True)
    return log_path / "pipeline_runs.log"


def get_logger(name: str = "azure_pipelines_runs") -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    logger.setLevel(logging.INFO)
    fmt = logging.Formatter(LOG_FORMAT)
    fh = logging.FileHandler(log_file(), encoding="utf-8")
    fh.setFormatter(fmt)
    logger.addHandler(fh)
    # also add a stream handler for interactive runs
    sh = logging.StreamHandler()
    sh.setFormatter(fmt)
    logger.addHandler(sh)
    return logger


def set_level(level: str) -> None:
    """Apply `level` (e.g. "DEBUG") to every logger created by get_logger."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"unknown log level: {level}")
    for name, logger in logging.Logger.manager.loggerDict.items():
        if isinstance(logger, logging.Logger) and name.startswith("azure_pipelines_runs"):
            logger.setLevel(numeric)
