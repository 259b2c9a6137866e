import uvicorn
from fastapi import FastAPI

from app.api.routes.auto_topup import router as auto_topup_router
from app.api.routes.catalog import router as catalog_router
from app.api.routes.chats import router as chats_router
from app.api.routes.health import router as health_router
from app.api.routes.internal_admin import router as internal_admin_router
from app.api.routes.ledger import router as ledger_router
from app.api.routes.payment_webhook import router as payment_webhook_router
from app.api.routes.purchases import router as purchases_router
from app.api.routes.subscriptions import router as subscriptions_router
from app.core.config import get_settings
from app.core.logging import configure_logging


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level, json_logs=settings.app_env != "dev")

    app = FastAPI(
        title="Token Ledger API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.include_router(health_router)
    app.include_router(ledger_router)
    app.include_router(catalog_router)
    app.include_router(subscriptions_router)
    app.include_router(purchases_router)
    app.include_router(payment_webhook_router)
    app.include_router(chats_router)
    app.include_router(auto_topup_router)
    app.include_router(internal_admin_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
