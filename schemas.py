"""
Database Schemas for course content

Each Pydantic model represents a MongoDB collection (units, topics, videos,
notes, questions). Timestamps are added by the server on write and are not
part of the request bodies.
"""
from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Dict, Any, Literal, Union


class Unit(BaseModel):
    unit_number: int = Field(..., ge=1, description="Display and lookup key")
    unit_title: str = Field(..., min_length=1)
    description: str = ""


class Topic(BaseModel):
    unit_id: str = Field(..., description="Id of the parent unit")
    topic_title: str = Field(..., min_length=1)
    topic_order: int = 0
    description: str = ""


class Video(BaseModel):
    topic_id: str
    title: str = Field(..., min_length=1)
    description: str = ""
    video_url: str
    duration: int = Field(0, ge=0, description="Length in seconds")
    thumbnail_url: str = ""
    order_index: int = 0


class NoteImage(BaseModel):
    url: str
    caption: str = ""
    alt_text: str = ""


class Attachment(BaseModel):
    url: str
    filename: str
    file_type: str = ""
    file_size: int = 0


class Note(BaseModel):
    topic_id: str
    title: str = Field(..., min_length=1)
    content: str = ""
    note_type: Optional[str] = None
    images: List[NoteImage] = []
    attachments: List[Attachment] = []


class QuestionOption(BaseModel):
    text: str
    is_correct: bool = False
    explanation: str = ""


class Question(BaseModel):
    topic_id: str
    question_type: Literal["mcq", "essay"] = "mcq"
    question_text: str = Field(..., min_length=1)
    images: List[NoteImage] = []
    options: Optional[List[QuestionOption]] = None
    correct_answer: Optional[str] = None
    explanation: str = ""
    difficulty: Literal["easy", "medium", "hard"] = "medium"
    points: int = Field(5, ge=0)

    @model_validator(mode="after")
    def check_options(self):
        if self.question_type == "mcq":
            correct = [o for o in self.options or [] if o.is_correct]
            if len(correct) != 1:
                raise ValueError("MCQ questions must have exactly one correct answer.")
        else:
            # essay questions never carry options
            self.options = None
        return self


class LoginBody(BaseModel):
    username: str
    password: str


# Read API response shapes

class ApiVideo(BaseModel):
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    video_url: Optional[str] = None
    duration: Optional[Union[int, float]] = None
    order_index: Union[int, float] = 0


class ApiNote(BaseModel):
    id: str
    title: Optional[str] = None
    content: Optional[str] = None
    note_type: Optional[str] = None


class ApiOption(BaseModel):
    text: Optional[str] = None
    is_correct: bool = False
    explanation: Optional[str] = None


class ApiQuestion(BaseModel):
    id: str
    question_text: Optional[str] = None
    question_type: Optional[str] = None
    difficulty_level: Optional[str] = None
    options: Optional[List[ApiOption]] = None
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None


class ApiTopicContent(BaseModel):
    topic_content: str
    questions: List[ApiQuestion] = []
    notes: List[ApiNote] = []
    videos: List[ApiVideo] = []


class ApiUnitResponse(BaseModel):
    unit_number: int
    unit_title: Optional[str] = None
    topics: List[ApiTopicContent] = []


class ApiUnitSummary(BaseModel):
    unit_number: str
    unit_title: Optional[str] = None


class ApiUnitsResponse(BaseModel):
    units: List[ApiUnitSummary]


# Export a mapping to help the /schema endpoint
SCHEMA_DEFS: Dict[str, Any] = {
    "units": Unit.model_json_schema(),
    "topics": Topic.model_json_schema(),
    "videos": Video.model_json_schema(),
    "notes": Note.model_json_schema(),
    "questions": Question.model_json_schema(),
}
