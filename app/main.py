import logging
from contextlib import asynccontextmanager

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.router import api_router
from app.core import init_database, settings
from app.core.exceptions import register_exception_handlers
from app.core.logging_config import configure_logging
from app.services import s3_service
from app.services.scheduler_service import cron_service

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_database()
    try:
        await s3_service.ensure_bucket_exists()
    except (ClientError, BotoCoreError, OSError):
        logger.exception("Could not prepare bucket %s; image uploads will fail", settings.MINIO_BUCKET)
    if settings.SCHEDULER_ENABLED:
        cron_service.start()
    logger.info("TrainFit API started (%s)", settings.ENVIRONMENT)
    yield
    cron_service.shutdown()
    logger.info("TrainFit API stopped")


app = FastAPI(title="TrainFit - fitness coaching platform", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    base_url = settings.BACKEND_URL

    return {
        "app": "TrainFit",
        "message": "TrainFit - fitness coaching platform",
        "links": {
            "health": f"{base_url}/api/health",
            "docs": f"{base_url}/docs",
            "redoc": f"{base_url}/redoc",
        },
    }
