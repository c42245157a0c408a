"""
Unit content aggregation.

Builds the nested document external apps read from GET /units?unit=<n>:
a unit, its topics in topic_order, and per topic the videos (order_index),
notes and questions that reference it. Children are fetched with one
foreign-key query per collection and grouped in memory.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import NOTES, QUESTIONS, TOPICS, UNITS, VIDEOS, unit_number_filter
from errors import AggregationError

logger = logging.getLogger(__name__)


def order_value(value) -> float:
    """Sort key for topic_order / order_index; missing sorts as 0"""
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    return float(value)


def unit_sort_key(value) -> Tuple[int, Any]:
    """Numeric unit numbers in order, then anything that is not a number by its text"""
    try:
        return (0, order_value(value))
    except (TypeError, ValueError):
        return (1, str(value))


def project_video(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(doc["_id"]),
        "title": doc.get("title"),
        "description": doc.get("description"),
        "video_url": doc.get("video_url"),
        "duration": doc.get("duration"),
        "order_index": doc.get("order_index") or 0,
    }


def project_note(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(doc["_id"]),
        "title": doc.get("title"),
        "content": doc.get("content"),
        "note_type": doc.get("note_type"),
    }


def correct_answer_for(doc: Dict[str, Any]) -> Optional[str]:
    # A stored correct_answer wins; MCQs otherwise expose their correct option's text
    if doc.get("correct_answer"):
        return doc["correct_answer"]
    if doc.get("question_type") == "mcq":
        for option in doc.get("options") or []:
            if option.get("is_correct"):
                return option.get("text")
    return None


def project_question(doc: Dict[str, Any]) -> Dict[str, Any]:
    options = doc.get("options")
    return {
        "id": str(doc["_id"]),
        "question_text": doc.get("question_text"),
        "question_type": doc.get("question_type"),
        "difficulty_level": doc.get("difficulty") or doc.get("difficulty_level"),
        "options": [
            {
                "text": o.get("text"),
                "is_correct": bool(o.get("is_correct")),
                "explanation": o.get("explanation"),
            }
            for o in options
        ] if options else None,
        "correct_answer": correct_answer_for(doc),
        "explanation": doc.get("explanation"),
    }


def _children_by_topic(db: Database, collection_name: str, topic_ids: List[str]) -> Dict[str, List[Dict[str, Any]]]:
    grouped: Dict[str, List[Dict[str, Any]]] = {topic_id: [] for topic_id in topic_ids}
    if not topic_ids:
        return grouped
    for doc in db[collection_name].find({"topic_id": {"$in": topic_ids}}).sort("_id", 1):
        grouped[doc["topic_id"]].append(doc)
    return grouped


def find_unit(db: Database, unit_number: int) -> Optional[Dict[str, Any]]:
    # unit_number is not unique in storage; the oldest record wins
    matches = list(db[UNITS].find(unit_number_filter(unit_number)).sort("_id", 1).limit(1))
    return matches[0] if matches else None


def get_unit_content(db: Database, unit_number: int) -> Optional[Dict[str, Any]]:
    """
    Assemble one unit with all of its content.

    Returns None when no unit has this number. Any store or data error
    raises AggregationError; a partial tree is never returned.
    """
    try:
        unit = find_unit(db, unit_number)
        if unit is None:
            logger.info(f"Unit {unit_number} not found")
            return None
        unit_id = str(unit["_id"])

        topics = sorted(
            db[TOPICS].find({"unit_id": unit_id}).sort("_id", 1),
            key=lambda t: order_value(t.get("topic_order")),
        )
        topic_ids = [str(t["_id"]) for t in topics]

        videos = _children_by_topic(db, VIDEOS, topic_ids)
        notes = _children_by_topic(db, NOTES, topic_ids)
        questions = _children_by_topic(db, QUESTIONS, topic_ids)

        assembled = []
        for topic, topic_id in zip(topics, topic_ids):
            topic_videos = sorted(videos[topic_id], key=lambda v: order_value(v.get("order_index")))
            assembled.append({
                "topic_content": topic.get("topic_title") or "",
                "questions": [project_question(q) for q in questions[topic_id]],
                "notes": [project_note(n) for n in notes[topic_id]],
                "videos": [project_video(v) for v in topic_videos],
            })

        return {
            "unit_number": int(unit["unit_number"]),
            "unit_title": unit.get("unit_title"),
            "topics": assembled,
        }
    except (PyMongoError, KeyError, TypeError, ValueError, AttributeError) as e:
        logger.exception(f"Error fetching content for unit {unit_number}")
        raise AggregationError() from e


def list_units(db: Database) -> List[Dict[str, str]]:
    """All units as {unit_number, unit_title}, sorted numerically in application code"""
    try:
        docs = list(db[UNITS].find({}, {"unit_number": 1, "unit_title": 1}).sort("_id", 1))
        docs.sort(key=lambda d: unit_sort_key(d.get("unit_number")))
        return [
            {"unit_number": str(d.get("unit_number", "")), "unit_title": d.get("unit_title")}
            for d in docs
        ]
    except (PyMongoError, TypeError, ValueError) as e:
        logger.exception("Error fetching units")
        raise AggregationError() from e
