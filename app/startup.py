import logging

from fastapi import FastAPI

from app.core.settings import settings
from app.db.session import Base, engine
from app.services.scheduler import get_scheduler

# Register every model with the metadata before create_all
from app.models import (  # noqa: F401
    ad,
    admin,
    announcement,
    billing,
    boost,
    discount,
    feedback,
    notification,
    pricing,
    user,
    vehicle,
)


logger = logging.getLogger(__name__)


def register_startup(app: FastAPI) -> None:
    @app.on_event("startup")
    def _create_tables() -> None:
        Base.metadata.create_all(bind=engine)
        logger.info("Database schema ready")

    @app.on_event("startup")
    def _start_scheduler() -> None:
        if settings.scheduler_enabled:
            get_scheduler().start()

    @app.on_event("shutdown")
    def _stop_scheduler() -> None:
        if settings.scheduler_enabled:
            get_scheduler().stop()
