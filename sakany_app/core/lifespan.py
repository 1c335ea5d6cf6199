import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

import models.models  # noqa: F401  registers the tables on Base.metadata
from realtime.messaging_service import MessagingService
from sms_notify.sms_service import sms_client

from .get_db import AsyncSessionLocal, async_engine, create_tables
from .settings import settings

logger = logging.getLogger("startup")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Waiting for application startup...")

    if settings.CREATE_TABLES_ON_STARTUP:
        try:
            await create_tables(async_engine)
            logger.info("Database tables ready.")
        except Exception:
            logger.exception("Failed to create database tables")
            raise

    await sms_client.connect()

    messaging = MessagingService(AsyncSessionLocal)
    app.state.messaging = messaging
    await messaging.start()
    logger.info("Application startup complete.")

    yield

    try:
        await messaging.stop()
        logger.info("Messaging service stopped.")
    except Exception:
        logger.exception("Failed to stop messaging service")
    await sms_client.close()
    await async_engine.dispose()
