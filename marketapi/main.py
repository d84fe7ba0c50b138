import logging
from dotenv import load_dotenv
from fastapi import FastAPI
from mangum import Mangum
from starlette.middleware.cors import CORSMiddleware

load_dotenv("marketapi/.env")

from marketapi import containers  # noqa: E402
from marketapi.config import settings  # noqa: E402
from marketapi.core.exception_handlers import register_exception_handlers  # noqa: E402
from marketapi.core.logging_middleware import LoggingMiddleware  # noqa: E402
from marketapi.logging_config import setup_logging  # noqa: E402
from marketapi.routers import (  # noqa: E402
    customer_router,
    dashboard_router,
    health_router,
    product_router,
    settlement_router,
    transaction_router,
)

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)
    app.container = containers.Container()  # type: ignore

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)
    register_exception_handlers(app)

    @app.get("/")
    def hello() -> dict:
        return {"message": settings.APP_NAME}

    app.include_router(health_router.router)
    for module in (
        product_router,
        customer_router,
        transaction_router,
        settlement_router,
        dashboard_router,
    ):
        app.include_router(module.router, prefix=settings.API_V1_STR)

    logger.info(f"{settings.APP_NAME} started (environment={settings.ENVIRONMENT})")
    return app


app = create_app()

handler = Mangum(app)
