from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from masjidku.api.v1.academics.router import router as academics_router
from masjidku.api.v1.auth.router import router as auth_router
from masjidku.api.v1.class_section_subject_teachers.router import router as csst_router
from masjidku.api.v1.class_section_subject_teachers.router import user_router as csst_user_router
from masjidku.api.v1.donations.router import public_router as donations_public_router
from masjidku.api.v1.donations.router import router as donations_router
from masjidku.api.v1.donations.router import user_router as donations_user_router
from masjidku.api.v1.donations.router import webhook_router as donations_webhook_router
from masjidku.api.v1.general_billings.router import router as general_billings_router
from masjidku.api.v1.masjid_admins.router import router as masjid_admins_router
from masjidku.api.v1.masjid_teachers.router import router as masjid_teachers_router
from masjidku.api.v1.masjids.router import public_router as masjids_public_router
from masjidku.api.v1.masjids.router import router as masjids_router
from masjidku.api.v1.user_general_billings.router import router as user_general_billings_router
from masjidku.api.v1.user_general_billings.router import user_router as user_general_billings_user_router
from masjidku.api.v1.user_profile_documents.router import router as user_profile_documents_router
from masjidku.core.config import settings
from masjidku.core.error_handlers import register_exception_handlers
from masjidku.core.logging import configure_logging
from masjidku.integrations.midtrans import build_midtrans_client
from masjidku.integrations.storage import build_storage_client

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.midtrans_client = build_midtrans_client()
    app.state.storage_client = build_storage_client()
    logger.info("app_started", midtrans_production=settings.midtrans_is_production)
    try:
        yield
    finally:
        await app.state.midtrans_client.aclose()
        await app.state.storage_client.aclose()
        logger.info("app_stopped")


def create_app() -> FastAPI:
    configure_logging(settings.log_level, settings.log_json)
    app = FastAPI(title="Masjidku Backend", lifespan=lifespan)

    # CORS: allow frontends to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Routers
    app.include_router(auth_router)
    app.include_router(masjids_public_router)
    app.include_router(masjids_router)
    app.include_router(masjid_admins_router)
    app.include_router(masjid_teachers_router)
    app.include_router(academics_router)
    app.include_router(csst_router)
    app.include_router(csst_user_router)
    app.include_router(donations_public_router)
    app.include_router(donations_user_router)
    app.include_router(donations_router)
    app.include_router(donations_webhook_router)
    app.include_router(general_billings_router)
    app.include_router(user_general_billings_router)
    app.include_router(user_general_billings_user_router)
    app.include_router(user_profile_documents_router)

    return app


app = create_app()
