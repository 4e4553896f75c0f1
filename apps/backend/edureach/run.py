import uvicorn
from loguru import logger

from .config import settings


def serve() -> None:
    logger.info("Serving EduReach lead API on port {} ({})", settings.PORT, settings.ENV)
    uvicorn.run(
        "edureach.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=settings.ENV == "development",
    )


if __name__ == "__main__":
    serve()
