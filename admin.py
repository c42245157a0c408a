"""
Admin JSON API behind the /admin session guard.

CRUD for units, topics, videos, notes and questions. List views are joined
to their parents' titles; children whose parent no longer exists are shown
under "Unknown Unit" / "Unknown Topic". Deletes never cascade.
"""
import logging
from typing import Any, Dict, List, Optional

import pymongo
from fastapi import APIRouter, Depends, Request
from pymongo.database import Database
from pymongo.errors import PyMongoError

from content import order_value, unit_sort_key
from database import (
    NOTES, QUESTIONS, TOPICS, UNITS, VIDEOS,
    create_document, delete_document, get_db, get_document, get_documents,
    object_id, replace_document, to_dict,
)
from errors import NotFoundError
from schemas import Note, Question, Topic, Unit, Video

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

UNKNOWN_UNIT = "Unknown Unit"
UNKNOWN_TOPIC = "Unknown Topic"

STAT_COLLECTIONS = {"units": UNITS, "topics": TOPICS, "videos": VIDEOS, "questions": QUESTIONS}


def _get_or_404(db: Database, collection_name: str, doc_id: str, label: str) -> Dict[str, Any]:
    doc = get_document(db, collection_name, doc_id)
    if not doc:
        raise NotFoundError(f"{label} not found")
    return doc


def _by_ids(db: Database, collection_name: str, ids) -> Dict[str, Dict[str, Any]]:
    oids = [oid for oid in (object_id(i) for i in set(ids)) if oid is not None]
    if not oids:
        return {}
    return {str(d["_id"]): d for d in db[collection_name].find({"_id": {"$in": oids}})}


def _topic_filter(db: Database, unit_id: Optional[str], topic_id: Optional[str]) -> Dict[str, Any]:
    if topic_id:
        return {"topic_id": topic_id}
    if unit_id:
        topic_ids = [str(t["_id"]) for t in db[TOPICS].find({"unit_id": unit_id}, {"_id": 1})]
        return {"topic_id": {"$in": topic_ids}}
    return {}


def _with_parent_titles(db: Database, docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    topics = _by_ids(db, TOPICS, [d.get("topic_id") for d in docs])
    units = _by_ids(db, UNITS, [t.get("unit_id") for t in topics.values()])
    rows = []
    for d in docs:
        row = to_dict(d)
        topic = topics.get(d.get("topic_id"))
        unit = units.get(topic.get("unit_id")) if topic else None
        row["topic_title"] = topic.get("topic_title") if topic else UNKNOWN_TOPIC
        row["unit_title"] = unit.get("unit_title") if unit else UNKNOWN_UNIT
        rows.append(row)
    return rows


# Dashboard

@router.get("/stats")
def stats(request: Request, db: Database = Depends(get_db)):
    timeout = request.app.state.settings.stats_timeout_ms / 1000
    counts = {}
    for key, collection_name in STAT_COLLECTIONS.items():
        try:
            with pymongo.timeout(timeout):
                counts[key] = db[collection_name].count_documents({})
        except PyMongoError as e:
            # the dashboard shows zeros instead of failing
            logger.warning(f"Could not count {collection_name}: {e}")
            counts[key] = 0
    return counts


# Units

@router.get("/units")
def list_units(db: Database = Depends(get_db)):
    docs = get_documents(db, UNITS, sort_by="_id")
    docs.sort(key=lambda d: unit_sort_key(d.get("unit_number")))
    return [to_dict(d) for d in docs]


@router.post("/units")
def create_unit(body: Unit, db: Database = Depends(get_db)):
    unit_id = create_document(db, UNITS, body, timestamps=("created_at", "updated_at"))
    logger.info(f"Created unit {body.unit_number} ({unit_id})")
    return {"id": unit_id}


@router.get("/units/{unit_id}")
def get_unit(unit_id: str, db: Database = Depends(get_db)):
    return to_dict(_get_or_404(db, UNITS, unit_id, "Unit"))


@router.put("/units/{unit_id}")
def update_unit(unit_id: str, body: Unit, db: Database = Depends(get_db)):
    if not replace_document(db, UNITS, unit_id, body):
        raise NotFoundError("Unit not found")
    return to_dict(get_document(db, UNITS, unit_id))


@router.delete("/units/{unit_id}")
def delete_unit(unit_id: str, db: Database = Depends(get_db)):
    if not delete_document(db, UNITS, unit_id):
        raise NotFoundError("Unit not found")
    orphaned = db[TOPICS].count_documents({"unit_id": unit_id})
    if orphaned:
        logger.info(f"Deleted unit {unit_id}; {orphaned} topics left without a unit")
    return {"deleted": True, "orphaned": orphaned}


# Topics

@router.get("/topics")
def list_topics(unit_id: Optional[str] = None, db: Database = Depends(get_db)):
    flt = {"unit_id": unit_id} if unit_id else {}
    docs = get_documents(db, TOPICS, flt, sort_by="_id")
    docs.sort(key=lambda d: order_value(d.get("topic_order")))
    units = _by_ids(db, UNITS, [d.get("unit_id") for d in docs])
    rows = []
    for d in docs:
        row = to_dict(d)
        unit = units.get(d.get("unit_id"))
        row["unit_title"] = unit.get("unit_title") if unit else UNKNOWN_UNIT
        rows.append(row)
    return rows


@router.post("/topics")
def create_topic(body: Topic, db: Database = Depends(get_db)):
    _get_or_404(db, UNITS, body.unit_id, "Unit")
    topic_id = create_document(db, TOPICS, body, timestamps=("created_at", "updated_at"))
    return {"id": topic_id}


@router.get("/topics/{topic_id}")
def get_topic(topic_id: str, db: Database = Depends(get_db)):
    return to_dict(_get_or_404(db, TOPICS, topic_id, "Topic"))


@router.put("/topics/{topic_id}")
def update_topic(topic_id: str, body: Topic, db: Database = Depends(get_db)):
    _get_or_404(db, UNITS, body.unit_id, "Unit")
    if not replace_document(db, TOPICS, topic_id, body):
        raise NotFoundError("Topic not found")
    return to_dict(get_document(db, TOPICS, topic_id))


@router.delete("/topics/{topic_id}")
def delete_topic(topic_id: str, db: Database = Depends(get_db)):
    if not delete_document(db, TOPICS, topic_id):
        raise NotFoundError("Topic not found")
    orphaned = sum(db[name].count_documents({"topic_id": topic_id}) for name in (VIDEOS, NOTES, QUESTIONS))
    return {"deleted": True, "orphaned": orphaned}


# Videos

@router.get("/videos")
def list_videos(unit_id: Optional[str] = None, topic_id: Optional[str] = None, db: Database = Depends(get_db)):
    docs = get_documents(db, VIDEOS, _topic_filter(db, unit_id, topic_id), sort_by="_id")
    docs.sort(key=lambda d: order_value(d.get("order_index")))
    return _with_parent_titles(db, docs)


@router.post("/videos")
def create_video(body: Video, db: Database = Depends(get_db)):
    _get_or_404(db, TOPICS, body.topic_id, "Topic")
    return {"id": create_document(db, VIDEOS, body)}


@router.get("/videos/{video_id}")
def get_video(video_id: str, db: Database = Depends(get_db)):
    return to_dict(_get_or_404(db, VIDEOS, video_id, "Video"))


@router.put("/videos/{video_id}")
def update_video(video_id: str, body: Video, db: Database = Depends(get_db)):
    _get_or_404(db, TOPICS, body.topic_id, "Topic")
    if not replace_document(db, VIDEOS, video_id, body):
        raise NotFoundError("Video not found")
    return to_dict(get_document(db, VIDEOS, video_id))


@router.delete("/videos/{video_id}")
def delete_video(video_id: str, db: Database = Depends(get_db)):
    if not delete_document(db, VIDEOS, video_id):
        raise NotFoundError("Video not found")
    return {"deleted": True}


# Notes

@router.get("/notes")
def list_notes(unit_id: Optional[str] = None, topic_id: Optional[str] = None, db: Database = Depends(get_db)):
    docs = get_documents(db, NOTES, _topic_filter(db, unit_id, topic_id), sort_by="_id")
    return _with_parent_titles(db, docs)


@router.post("/notes")
def create_note(body: Note, db: Database = Depends(get_db)):
    _get_or_404(db, TOPICS, body.topic_id, "Topic")
    return {"id": create_document(db, NOTES, body, timestamps=("created_at", "updated_at"))}


@router.get("/notes/{note_id}")
def get_note(note_id: str, db: Database = Depends(get_db)):
    return to_dict(_get_or_404(db, NOTES, note_id, "Note"))


@router.put("/notes/{note_id}")
def update_note(note_id: str, body: Note, db: Database = Depends(get_db)):
    _get_or_404(db, TOPICS, body.topic_id, "Topic")
    if not replace_document(db, NOTES, note_id, body):
        raise NotFoundError("Note not found")
    return to_dict(get_document(db, NOTES, note_id))


@router.delete("/notes/{note_id}")
def delete_note(note_id: str, db: Database = Depends(get_db)):
    if not delete_document(db, NOTES, note_id):
        raise NotFoundError("Note not found")
    return {"deleted": True}


# Questions

@router.get("/questions")
def list_questions(unit_id: Optional[str] = None, topic_id: Optional[str] = None, db: Database = Depends(get_db)):
    docs = get_documents(db, QUESTIONS, _topic_filter(db, unit_id, topic_id), sort_by="_id")
    return _with_parent_titles(db, docs)


@router.post("/questions")
def create_question(body: Question, db: Database = Depends(get_db)):
    _get_or_404(db, TOPICS, body.topic_id, "Topic")
    return {"id": create_document(db, QUESTIONS, body)}


@router.get("/questions/{question_id}")
def get_question(question_id: str, db: Database = Depends(get_db)):
    return to_dict(_get_or_404(db, QUESTIONS, question_id, "Question"))


@router.put("/questions/{question_id}")
def update_question(question_id: str, body: Question, db: Database = Depends(get_db)):
    _get_or_404(db, TOPICS, body.topic_id, "Topic")
    if not replace_document(db, QUESTIONS, question_id, body):
        raise NotFoundError("Question not found")
    return to_dict(get_document(db, QUESTIONS, question_id))


@router.delete("/questions/{question_id}")
def delete_question(question_id: str, db: Database = Depends(get_db)):
    if not delete_document(db, QUESTIONS, question_id):
        raise NotFoundError("Question not found")
    return {"deleted": True}
