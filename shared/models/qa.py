"""Pydantic models for the question-answering endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

Rating = Literal["helpful", "not_helpful"]


class DocumentExcerpt(BaseModel):
    """A source passage an answer is grounded in. Read-only."""

    document_id: str
    document_name: str
    excerpt: str
    relevance_score: float = Field(ge=0.0, le=1.0)
    page_number: int | None = None


class Question(BaseModel):
    id: str
    text: str
    timestamp: datetime
    user_id: str | None = None
    session_id: str | None = None


class Answer(BaseModel):
    id: str
    question_id: str | None = None
    text: str
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    sources: list[DocumentExcerpt] = []
    timestamp: datetime
    processing_time: float | None = None


class QASession(BaseModel):
    id: str
    title: str
    created_at: datetime
    last_activity: datetime
    question_count: int = 0


class ConversationHistory(BaseModel):
    questions: list[Question] = []
    answers: list[Answer] = []


class PopularQuestion(BaseModel):
    question: str
    count: int
