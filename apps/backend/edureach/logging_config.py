import sys

from loguru import logger

from .config import settings


def configure_logging(level: str = None) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=level or settings.LOG_LEVEL,
        format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        backtrace=True,
        diagnose=settings.ENV == "development",
    )
