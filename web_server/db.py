import json
import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

load_dotenv()

logger = logging.getLogger(__name__)

client: AsyncIOMotorClient | None = None
db: AsyncIOMotorDatabase | None = None

SCHEMA_DIR = Path(__file__).parent / "schemas"
USERS_COLLECTION = "users"

# MongoDB $jsonSchema rejects these standard JSON Schema keywords.
_UNSUPPORTED_KEYS = {"format", "examples", "$comment"}


def _mongo_compat(obj) -> None:
    if isinstance(obj, dict):
        for key in list(obj.keys()):
            if key in _UNSUPPORTED_KEYS:
                obj.pop(key)
        # MongoDB uses "int" / "long" instead of "integer"
        if obj.get("type") == "integer":
            obj["bsonType"] = "int"
            del obj["type"]
        for v in obj.values():
            _mongo_compat(v)
    elif isinstance(obj, list):
        for item in obj:
            _mongo_compat(item)


def load_user_validator() -> dict:
    """Read the user JSON Schema and make it acceptable to $jsonSchema."""
    with open(SCHEMA_DIR / "user.schema.json") as f:
        raw = json.load(f)

    validator = {
        k: v
        for k, v in raw.items()
        if k not in ("$schema", "$id", "title", "description")
    }
    _mongo_compat(validator)
    return validator


async def connect_db() -> AsyncIOMotorDatabase:
    global client, db
    mongo_url = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
    client = AsyncIOMotorClient(mongo_url)
    db = client[os.getenv("MONGODB_DB", "skillswap")]

    validator = load_user_validator()
    existing = await db.list_collection_names()
    if USERS_COLLECTION not in existing:
        await db.create_collection(USERS_COLLECTION, validator={"$jsonSchema": validator})
    else:
        await db.command("collMod", USERS_COLLECTION, validator={"$jsonSchema": validator})

    await db[USERS_COLLECTION].create_index("id", unique=True)
    await db[USERS_COLLECTION].create_index("email", unique=True)

    logger.info("Connected to MongoDB database %s", db.name)
    return db


async def close_db() -> None:
    global client
    if client:
        client.close()
        client = None


def get_db() -> AsyncIOMotorDatabase:
    assert db is not None, "Database not connected. Call connect_db() first."
    return db
