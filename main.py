import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

import carelog.celery_app  # noqa: F401  binds shared tasks to the configured broker
from carelog.api import router as api_router
from carelog.api.core.config import settings
from carelog.api.core.exceptions import (
    general_exception_handler,
    http_exception_handler,
    ticket_lifecycle_exception_handler,
    validation_exception_handler,
)
from carelog.api.core.logger import setup_logging
from carelog.api.db.database import create_tables, engine
from carelog.api.modules.v1.tickets.exceptions import TicketLifecycleError
from carelog.api.utils.response_payloads import success_response

setup_logging()
logger = logging.getLogger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup and dispose of the engine on shutdown."""

    await create_tables()

    logger.info(f"{settings.APP_NAME} started ({settings.ENVIRONMENT})")

    try:
        yield
    finally:
        await engine.dispose()


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description=f"{settings.APP_NAME} API for support tickets, hardware and notifications",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.APP_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(TicketLifecycleError, ticket_lifecycle_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

app.include_router(api_router)


@app.get("/")
def read_root():
    return success_response(
        status_code=200,
        message=f"{settings.APP_NAME} API is running...",
        data={
            "version": settings.APP_VERSION,
            "environment": "Production" if not settings.DEBUG else "Development",
        },
    )


@app.get("/health")
def health_check():
    return success_response(status_code=200, message="API is healthy")


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=settings.APP_PORT, reload=False)
