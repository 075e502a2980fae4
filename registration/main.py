"""
FastAPI application entrypoint.

Run locally:  uvicorn registration.main:app --reload
"""

import logging

from fastapi import FastAPI

from registration.api.routes import router
from registration.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Patient Registration API",
    description=(
        "Multi-step pediatric patient registration: section validation, "
        "PDF transcript, practice email and insurance card pre-fill."
    ),
    version="1.0.0",
)

app.include_router(router, prefix="/api")


@app.on_event("startup")
def on_startup():
    if not settings.RESEND_API_KEY:
        logger.warning("RESEND_API_KEY is not set; submissions will fail at the email stage")
    if not settings.VISION_API_KEY:
        logger.warning("VISION_API_KEY is not set; insurance card pre-fill is disabled")
    if not settings.PHI_ENCRYPTION_KEY:
        logger.warning("PHI_ENCRYPTION_KEY is not set; using a throwaway key")
