from contextlib import asynccontextmanager

from fastapi import FastAPI

from core.aws_client import validate_aws_credentials
from core.config import settings
from core.logger import logger
from services.topic_cache import topic_arn_cache


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup checks credentials; stack config is loaded per request, so
    edits to the config table apply without a restart.
    """
    validate_aws_credentials()
    logger.info(f"Lifespan startup: serving stack {settings.STACK_NAME}")
    yield
    logger.info(f"Lifespan shutdown ({len(topic_arn_cache)} topic ARN(s) cached).")
