"""
Database initialization script - SawaPay collections and indexes

Run once to create indexes and print collection stats:
    python scripts/init_db.py
    python scripts/init_db.py --seed-admin <uid> <email>
"""

import asyncio
import sys
from pathlib import Path
import os
from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment variables
load_dotenv()

from motor.motor_asyncio import AsyncIOMotorClient
import logging
from datetime import datetime

from app.db.indexes import INDEXES
from utils.constants import ADMIN_USERS_COLLECTION

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


# MongoDB connection - load from .env
MONGODB_URL = os.getenv("MONGODB_URL")
MONGODB_DB_NAME = os.getenv("MONGODB_DB_NAME")

if not MONGODB_URL or not MONGODB_DB_NAME:
    raise ValueError("❌ MONGODB_URL and MONGODB_DB_NAME must be set in .env file")


async def create_indexes(db):
    """Create every index the API queries rely on"""
    for collection_name, index_specs in INDEXES.items():
        logger.info(f"📋 Indexing '{collection_name}'...")
        collection = db[collection_name]

        for keys, options in index_specs:
            await collection.create_index(keys, **options)
            logger.info(f"  ✅ {options['name']}")


async def print_stats(db):
    logger.info("\n📊 Current documents:")
    for collection_name in INDEXES:
        count = await db[collection_name].count_documents({})
        logger.info(f"  {collection_name}: {count}")


async def seed_admin(db, uid: str, email: str):
    """Registers an existing auth account as an admin"""
    result = await db[ADMIN_USERS_COLLECTION].update_one(
        {"_id": uid},
        {"$setOnInsert": {"email": email, "role": "admin", "createdAt": datetime.utcnow()}},
        upsert=True
    )

    if result.upserted_id:
        logger.info(f"✅ Admin {email} created")
    else:
        logger.info(f"ℹ️  Admin {email} already exists")


async def main():
    """Main initialization"""
    logger.info("=" * 60)
    logger.info("  SawaPay Database Setup")
    logger.info("=" * 60 + "\n")

    logger.info(f"🔌 Connecting to MongoDB: {MONGODB_DB_NAME}")
    client = AsyncIOMotorClient(MONGODB_URL)
    db = client[MONGODB_DB_NAME]

    try:
        await client.admin.command('ping')
        logger.info("✅ Connected successfully\n")

        await create_indexes(db)

        if len(sys.argv) == 4 and sys.argv[1] == "--seed-admin":
            await seed_admin(db, sys.argv[2], sys.argv[3])

        await print_stats(db)
        logger.info("\n✅ Database initialization complete!")

    except Exception as e:
        logger.error(f"\n❌ Error: {e}")
        raise

    finally:
        client.close()

    logger.info("\n" + "=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
