from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from sqlalchemy.exc import OperationalError

from .config import settings
from .logging_config import configure_logging
from .api.dependencies import get_dispatcher
from .api.errors import register_exception_handlers
from .api.routes_health import router as health_router
from .api.routes_leads import router as leads_router
from .api.routes_payments import router as payments_router
from .api.routes_email import router as email_router
from .api.routes_chat import router as chat_router
from .models import create_all

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting EduReach lead API ({})", settings.ENV)
    # Auto-create tables if they don't exist
    try:
        create_all()
    except OperationalError as e:
        logger.error("Database setup failed: {}", e)
        raise
    yield
    # let queued notifications finish before the loop goes away
    await get_dispatcher().drain()


app = FastAPI(
    title="EduReach Lead API",
    version="1.0.0",
    description="Lead capture, scoring, payments, email and AI counselor backend.",
    lifespan=lifespan,
)

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(health_router)
app.include_router(leads_router)
app.include_router(payments_router)
app.include_router(email_router)
app.include_router(chat_router)
