"""
Database connection and Beanie ODM initialization.

Beanie is an async ODM for MongoDB built on Motor and Pydantic.
We initialize it once at startup and close at shutdown.
"""

import logging
from typing import List, Optional, Type

from beanie import Document, init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from study_vault.config import get_settings
from study_vault.models.pdf import Pdf
from study_vault.models.user import User

logger = logging.getLogger(__name__)

# Document models that Beanie manages (collections + indexes)
DOCUMENT_MODELS: List[Type[Document]] = [User, Pdf]

_client: Optional[AsyncIOMotorClient] = None


async def connect_to_mongo() -> None:
    """
    Create Motor client and initialize Beanie with document models.
    Called once at application startup.
    """
    global _client
    settings = get_settings()
    _client = AsyncIOMotorClient(settings.mongodb_url)
    database = _client[settings.mongodb_database]

    await init_beanie(database=database, document_models=DOCUMENT_MODELS)
    logger.info("MongoDB connection established; Beanie initialized (db=%s).", settings.mongodb_database)


async def close_mongo_connection() -> None:
    """Close the Motor client on application shutdown."""
    global _client
    if _client is not None:
        _client.close()
        _client = None
    logger.info("Closed MongoDB connection.")
