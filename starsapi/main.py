import logging
from dotenv import load_dotenv
from fastapi import FastAPI
from mangum import Mangum
from starlette.middleware.cors import CORSMiddleware

from starsapi import containers
from starsapi.config import get_settings
from starsapi.core.exception_handlers import register_exception_handlers
from starsapi.core.logging_middleware import LoggingMiddleware
from starsapi.logging_config import setup_logging
from starsapi.routers import (
    device_router,
    health_router,
    referral_router,
    share_router,
    star_router,
)

load_dotenv("starsapi/.env")

logger = logging.getLogger("starsapi")


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, sql_echo=settings.DEBUG)

    app = FastAPI(title=settings.PROJECT_NAME)
    app.container = containers.Container()  # type: ignore

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)
    register_exception_handlers(app)

    app.include_router(health_router.router)
    app.include_router(star_router.router, prefix=settings.API_V1_STR)
    app.include_router(referral_router.router, prefix=settings.API_V1_STR)
    app.include_router(share_router.router, prefix=settings.API_V1_STR)
    app.include_router(device_router.router, prefix=settings.API_V1_STR)

    @app.get("/")
    def hello() -> dict:
        return {"message": settings.APP_NAME}

    logger.info(f"{settings.APP_NAME} started (environment={settings.ENVIRONMENT})")
    return app


app = create_app()

handler = Mangum(app)
