"""
app/db/mongo.py

Purpose: Document database access

- One Motor client for the process, opened at startup with retries
- Collection lookup by name (see utils/constants.py)
- 20 character document ids and the `_id` -> `id` API shape
- Ping based health check
"""

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase, AsyncIOMotorCollection
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError
from typing import Optional, Dict, Any, List
import asyncio
import secrets
import string
from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None

DOCUMENT_ID_LENGTH = 20
_ID_ALPHABET = string.ascii_letters + string.digits


def _open_client() -> AsyncIOMotorClient:
    return AsyncIOMotorClient(
        settings.MONGODB_URL,
        maxPoolSize=settings.MONGODB_MAX_POOL_SIZE,
        serverSelectionTimeoutMS=5000,
        connectTimeoutMS=10000,
        retryWrites=True,
        retryReads=True,
    )


async def connect_to_mongo():
    """
    Opens the client and pings it, backing off between failed attempts.

    Raises:
        ConnectionError: When every attempt fails
    """
    global _client, _database

    if _client is not None:
        logger.warning("MongoDB client already initialized")
        return

    attempts = settings.MONGODB_CONNECT_ATTEMPTS
    delay = 1

    for attempt in range(1, attempts + 1):
        client = _open_client()
        try:
            await client.admin.command("ping")
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            client.close()
            logger.error(f"MongoDB ping failed (attempt {attempt}/{attempts}): {e}")

            if attempt == attempts:
                raise ConnectionError("Could not establish MongoDB connection") from e

            await asyncio.sleep(delay)
            delay *= 2
            continue

        _client = client
        _database = client[settings.MONGODB_DB_NAME]
        logger.info(f"Connected to MongoDB database '{settings.MONGODB_DB_NAME}'")
        return


async def close_mongo_connection():
    global _client, _database

    if _client is not None:
        _client.close()
        logger.info("MongoDB connection closed")

    _client = None
    _database = None


async def check_database_health() -> bool:
    """
    True when the server answers a ping. Never raises.
    """
    if _client is None:
        return False

    try:
        await _client.admin.command("ping")
        return True
    except Exception as e:
        logger.error(f"Database ping failed: {e}")
        return False


def get_database() -> AsyncIOMotorDatabase:
    if _database is None:
        raise RuntimeError("Database not initialized. Call connect_to_mongo() during startup.")
    return _database


def get_collection(name: str) -> AsyncIOMotorCollection:
    """
    Returns a collection by name.

    Child records (ticket messages, transaction activities) live in their own
    collections and point at the parent through ticketId / transactionId.
    """
    return get_database()[name]


def new_document_id() -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(DOCUMENT_ID_LENGTH))


def serialize_document(document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    API shape of a stored document: `_id` becomes a leading string `id`.
    """
    if document is None:
        return None
    data = {key: value for key, value in document.items() if key != "_id"}
    return {"id": str(document["_id"]), **data}


def serialize_documents(documents: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [serialize_document(document) for document in documents]
