import logging
from pathlib import Path


def setup_logger(
    log_file: str = "rfx_log.txt", log_level: str = "INFO", to_console: bool = True
) -> logging.Logger:
    logger = logging.getLogger("rfx_logger")
    logger.setLevel(log_level)
    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")

    # Only add handlers if they haven't been added yet
    if not logger.handlers:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file)
        fh.setFormatter(formatter)
        logger.addHandler(fh)

        if to_console:
            ch = logging.StreamHandler()
            ch.setFormatter(formatter)
            logger.addHandler(ch)

    return logger


def redirect_log_file(log_file: str) -> logging.Logger:
    """Points the shared logger's file handler at ``log_file``."""
    logger = setup_logger(log_file)
    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            if Path(handler.baseFilename) == Path(log_file).resolve():
                return logger
            formatter = handler.formatter
            logger.removeHandler(handler)
            handler.close()
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(log_file)
            fh.setFormatter(formatter)
            logger.addHandler(fh)
    return logger
