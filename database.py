"""
MongoDB access helpers.

The database handle is created once at startup by connect() and kept on
app.state; request handlers receive it through get_db().
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Request
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database

from config import Settings

logger = logging.getLogger(__name__)

UNITS = "units"
TOPICS = "topics"
VIDEOS = "videos"
NOTES = "notes"
QUESTIONS = "questions"

COLLECTIONS = (UNITS, TOPICS, VIDEOS, NOTES, QUESTIONS)


def connect(settings: Settings) -> Tuple[MongoClient, Database]:
    client = MongoClient(
        settings.database_url,
        serverSelectionTimeoutMS=settings.database_timeout_ms,
        timeoutMS=settings.database_timeout_ms,
    )
    return client, client[settings.database_name]


def get_db(request: Request) -> Database:
    return request.app.state.db


def now() -> datetime:
    return datetime.now(timezone.utc)


def to_dict(doc):
    if not doc:
        return doc
    d = dict(doc)
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return d


def object_id(value: str) -> Optional[ObjectId]:
    """Parse a document id, returning None for anything that is not an ObjectId"""
    # ObjectId(None) would mint a fresh id
    if not isinstance(value, str):
        return None
    try:
        return ObjectId(value)
    except InvalidId:
        return None


def create_document(db: Database, collection_name: str, data: BaseModel, timestamps=("created_at",)) -> str:
    doc = data.model_dump()
    stamp = now()
    for field in timestamps:
        doc[field] = stamp
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(db: Database, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None,
                  sort_by: Optional[str] = None) -> List[Dict[str, Any]]:
    cursor = db[collection_name].find(filter_dict or {})
    if sort_by:
        cursor = cursor.sort(sort_by, 1)
    return list(cursor)


def get_document(db: Database, collection_name: str, doc_id: str) -> Optional[Dict[str, Any]]:
    oid = object_id(doc_id)
    if oid is None:
        return None
    return db[collection_name].find_one({"_id": oid})


def replace_document(db: Database, collection_name: str, doc_id: str, data: BaseModel,
                     timestamp: Optional[str] = "updated_at") -> bool:
    """Full-field overwrite; created_at is left as stored"""
    oid = object_id(doc_id)
    if oid is None:
        return False
    fields = data.model_dump()
    if timestamp:
        fields[timestamp] = now()
    result = db[collection_name].update_one({"_id": oid}, {"$set": fields})
    return result.matched_count > 0


def delete_document(db: Database, collection_name: str, doc_id: str) -> bool:
    oid = object_id(doc_id)
    if oid is None:
        return False
    result = db[collection_name].delete_one({"_id": oid})
    return result.deleted_count > 0


def unit_number_filter(unit_number: int) -> Dict[str, Any]:
    # Older records stored unit_number as a string
    return {"unit_number": {"$in": [unit_number, str(unit_number)]}}


def normalize_unit_numbers(db: Database) -> int:
    """Rewrite string-typed unit_number values to integers. Returns the number of units changed."""
    changed = 0
    for doc in db[UNITS].find({"unit_number": {"$type": "string"}}):
        raw = doc["unit_number"].strip()
        try:
            value = int(raw)
        except ValueError:
            logger.warning(f"Unit {doc['_id']} has a non-numeric unit_number {raw!r}; left as is")
            continue
        db[UNITS].update_one({"_id": doc["_id"]}, {"$set": {"unit_number": value}})
        changed += 1
    if changed:
        logger.info(f"Normalized unit_number on {changed} units")
    return changed
