"""Transcript entries of a chat session.

A transcript is a list of ``ChatMessage`` items, a tagged union of
``QuestionMessage`` and ``AnswerMessage`` discriminated by ``type``.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from shared.models.qa import DocumentExcerpt, Rating


class ChatState(str, Enum):
    IDLE = "idle"
    AWAITING = "awaiting"


class QuestionMessage(BaseModel):
    type: Literal["question"] = "question"
    text: str
    timestamp: datetime


class AnswerMessage(BaseModel):
    """An answer slot in the transcript.

    ``is_loading`` marks the placeholder that holds the slot while the
    request is in flight; it is replaced by the resolved or error answer.
    """

    type: Literal["answer"] = "answer"
    id: str | None = None
    text: str = ""
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    sources: list[DocumentExcerpt] = []
    rating: Rating | None = None
    is_loading: bool = False
    timestamp: datetime


ChatMessage = Annotated[Union[QuestionMessage, AnswerMessage], Field(discriminator="type")]
