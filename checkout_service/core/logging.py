import sys

from loguru import logger

from checkout_service.core.config import Settings


def setup_logging(settings: Settings) -> None:
    logger.remove()
    if settings.LOG_JSON:
        logger.add(sys.stdout, level=settings.LOG_LEVEL, serialize=True)
    else:
        logger.add(
            sys.stdout,
            level=settings.LOG_LEVEL,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | "
                   + settings.SERVICE_NAME
                   + " | {message} | {extra}",
        )
    logger.configure(extra={"service": settings.SERVICE_NAME})
