from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from ..config import settings
from ..exceptions import LeadError


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(LeadError)
    async def lead_error_handler(request: Request, exc: LeadError):
        if exc.status_code >= 500:
            logger.error("{} {} failed: {}", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
        content = {"error": "An error occurred while processing your request"}
        if settings.ENV == "development":
            content["details"] = str(exc)
        return JSONResponse(status_code=500, content=content)
