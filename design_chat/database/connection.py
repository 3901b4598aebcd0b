import logging
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse
from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie

from design_chat.core.config import settings
from design_chat.models.message import DesignMessage
from design_chat.models.session import DesignSession
from design_chat.models.task import Task

logger = logging.getLogger(__name__)

DOCUMENT_MODELS = [Task, DesignSession, DesignMessage]


class Database:
    client: Optional[AsyncIOMotorClient] = None

db = Database()


def parse_mongo_uri(uri: str) -> Tuple[str, Dict[str, Any]]:
    """Parse a MongoDB URI and return the database name and connection options"""
    db_name = settings.MONGODB_DB or 'design_chat'

    if not settings.MONGODB_DB:
        try:
            path = urlparse(uri).path.strip('/')
            if path:
                db_name = path
        except ValueError as e:
            logger.warning(f"[MONGO] Failed to parse database name from URI: {e}")

    client_kwargs = {
        'serverSelectionTimeoutMS': 5000,
        'connectTimeoutMS': 5000,
        'retryWrites': True,
        'readPreference': 'primary'  # Message log reads must see our own appends
    }
    return db_name, client_kwargs


def mask_uri(uri: str) -> str:
    if '@' not in uri:
        return uri
    return f"{uri.split('@')[0].split('://')[0]}://*****@{uri.split('@')[1]}"


async def connect_to_mongo():
    """Connect to MongoDB and register the document models with Beanie"""
    mongo_uri = settings.MONGODB_URI
    db_name, client_kwargs = parse_mongo_uri(mongo_uri)

    try:
        logger.info(f"[MONGO] Connecting with URI: {mask_uri(mongo_uri)}")
        db.client = AsyncIOMotorClient(mongo_uri, **client_kwargs)
        logger.info(f"[MONGO] Using database: {db_name}")

        await init_beanie(
            database=db.client.get_database(db_name),
            document_models=DOCUMENT_MODELS,
        )

        await db.client.admin.command('ping')
        logger.info("[MONGO] Successfully connected")
    except Exception as e:
        logger.error(f"[MONGO] Could not connect to database: {e}")
        raise


async def close_mongo_connection():
    """Close MongoDB connection"""
    if db.client:
        db.client.close()
        db.client = None
        logger.info("[MONGO] Closed MongoDB connection")
