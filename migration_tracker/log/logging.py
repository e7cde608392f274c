"""
Logging setup for the migration tracker.

All modules import the shared loguru ``logger`` from here. Structured fields
are passed as keyword arguments and land in the record's ``extra`` dict, e.g.::

    logger.info("Migration added", event_type="migration_added", name=name)
"""
import sys

from loguru import logger

from migration_tracker.core.config import settings

TEXT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[app_name]}</cyan> | "
    "<level>{message}</level>"
)


def configure_logging(config: dict | None = None) -> None:
    """
    (Re)configure loguru sinks.

    Args:
        config: Logging configuration, defaults to ``settings.logging_config``.
    """
    config = config or settings.logging_config

    logger.remove()
    logger.configure(extra={"app_name": config["app_name"]})

    if config["json_logs"]:
        logger.add(sys.stderr, level=config["log_level"], serialize=True)
    else:
        logger.add(sys.stderr, level=config["log_level"], format=TEXT_FORMAT)

    if config.get("log_file"):
        logger.add(
            config["log_file"],
            level=config["log_level"],
            rotation="10 MB",
            retention=config["log_retention"],
            serialize=config["json_logs"],
        )


configure_logging()

__all__ = ["logger", "configure_logging"]
