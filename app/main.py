# app/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.api import api_router
from app.core.config import settings
from app.core.logging import setup_logging
from app.core.error_handlers import register_exception_handlers
from app.core.middleware import register_middlewares
from app.db.session import init_db
from app.services import register_services

# Set up the logger at the start
logger = setup_logging()


# Context manager for startup/shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting Calendar Integrations API {app.version}")

    # Register services
    register_services()
    logger.info("Services registered")

    if settings.AUTO_CREATE_TABLES:
        init_db()
        logger.info("Database tables ensured")

    yield

    logger.info("Shutting down application")


app = FastAPI(
    title="Calendar Integrations API",
    description="Connect Google, Zoom and Microsoft accounts and manage calendar selections",
    version="0.1.0",
    lifespan=lifespan,
)

# Register custom exception handlers
register_exception_handlers(app)

# Register middleware
register_middlewares(app)

# Set up CORS middleware
if settings.BACKEND_CORS_ORIGINS:
    allowed_origins = [str(origin) for origin in settings.BACKEND_CORS_ORIGINS]
    logger.info(f"Setting up CORS with allowed origins: {allowed_origins}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    return {"message": "Welcome to the Calendar Integrations API"}


# needed for vercel
def create_app():
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
