import logging

ROOT_LOGGER_NAME = "ticker_gateway"


def setup_logger(name: str = ROOT_LOGGER_NAME, level: int | str = logging.INFO) -> logging.Logger:
    """
    Setup a console logger for the gateway.

    Args:
        name: Logger name (child loggers propagate to it)
        level: Logging level, int or name such as "INFO"

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(console_handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
