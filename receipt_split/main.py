import logging

from fastapi import FastAPI
from starlette.staticfiles import StaticFiles

from receipt_split.api.error_handlers import register_error_handlers
from receipt_split.api.receipts import router as receipts_router
from receipt_split.core.config import Settings, settings as default_settings
from receipt_split.core.db import create_tables, make_engine, make_session_factory
from receipt_split.core.logging import configure_logging
from receipt_split.services.image_storage import LocalImageStorage

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, engine=None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    engine = engine or make_engine(settings.DATABASE_URL)
    if settings.AUTO_CREATE_TABLES:
        create_tables(engine)

    app = FastAPI(title="Receipt Split")
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.image_storage = LocalImageStorage(settings.UPLOAD_DIR, settings.IMAGE_BASE_URL)

    register_error_handlers(app)
    app.include_router(receipts_router)

    # images are served locally unless IMAGE_BASE_URL points at another host
    if settings.IMAGE_BASE_URL.startswith("/"):
        app.mount(
            settings.IMAGE_BASE_URL.rstrip("/"),
            StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
            name="uploads",
        )

    @app.get("/health")
    def health():
        return {"status": "ok"}

    logger.info("receipt split app ready (db=%s)", engine.url.render_as_string(hide_password=True))
    return app


app = create_app()
