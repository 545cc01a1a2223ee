"""
MongoDB connection and collection setup.

The client is created lazily by pymongo, so importing this module never
blocks on the network. When DATABASE_URL is not set ``db`` stays None and
every request that needs storage fails with a 500.
"""

import logging
from datetime import datetime, timezone

from pymongo import ASCENDING, TEXT, MongoClient

from errors import InternalError
from settings import DATABASE_NAME, DATABASE_URL, INVITATION_CODE_TTL_DAYS

logger = logging.getLogger(__name__)

USERS = "user"
INVITATION_CODES = "invitationcode"
EQUIPMENT = "equipment"
PARTS = "part"
MAINTENANCE = "maintenance"

client = MongoClient(DATABASE_URL) if DATABASE_URL else None
db = client[DATABASE_NAME] if client is not None else None


def get_db():
    if db is None:
        raise InternalError("Database not configured")
    return db


def utcnow() -> datetime:
    # pymongo hands back naive UTC datetimes; store the same so comparisons line up
    return datetime.now(timezone.utc).replace(tzinfo=None)


def init_indexes(database) -> None:
    database[USERS].create_index("email", unique=True)
    database[USERS].create_index("username", unique=True, sparse=True)
    database[INVITATION_CODES].create_index("code", unique=True)
    database[INVITATION_CODES].create_index(
        "createdAt", expireAfterSeconds=INVITATION_CODE_TTL_DAYS * 24 * 60 * 60
    )
    database[PARTS].create_index(
        [("name", TEXT), ("partNumber", TEXT), ("manufacturer", TEXT)]
    )
    database[MAINTENANCE].create_index([("equipmentId", ASCENDING)])
    logger.info("Indexes ensured on database %s", database.name)
