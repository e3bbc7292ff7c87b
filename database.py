"""
Database helpers

MongoDB connection and small helpers shared by the API handlers.
Collections are named after the lowercase schema class (see schemas.py).
"""

import os
from datetime import datetime, timezone
from typing import Any, Dict, Union

from dotenv import load_dotenv
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

client = None
db = None

if DATABASE_URL and DATABASE_NAME:
    client = MongoClient(DATABASE_URL, serverSelectionTimeoutMS=5000)
    db = client[DATABASE_NAME]


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document with created_at/updated_at stamps and return its id."""
    if db is None:
        raise RuntimeError("Database not configured")

    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)

    now = datetime.now(timezone.utc)
    data_dict["created_at"] = now
    data_dict["updated_at"] = now

    result = db[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def ensure_indexes(database) -> None:
    """Create the unique join-record indexes and the common lookup indexes."""
    # One like per (actor, target): exactly one target field is non-null
    database["like"].create_index(
        [("user_id", ASCENDING), ("video_id", ASCENDING), ("comment_id", ASCENDING), ("tweet_id", ASCENDING)],
        unique=True,
    )
    database["subscription"].create_index(
        [("subscriber_id", ASCENDING), ("channel_id", ASCENDING)],
        unique=True,
    )
    database["subscription"].create_index([("channel_id", ASCENDING)])
    database["user"].create_index([("email", ASCENDING)], unique=True)
    database["user"].create_index([("username", ASCENDING)], unique=True)
    database["video"].create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    database["comment"].create_index([("video_id", ASCENDING), ("created_at", DESCENDING)])
    database["tweet"].create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    database["playlist"].create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
