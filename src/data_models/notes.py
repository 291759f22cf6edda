# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from data_models.timestamps import utc_now

# Author recorded on notes extracted from machine analysis
AI_AUTHOR = "AI"
# Transcript session kind that carries machine analysis
AI_ANALYSIS_KIND = "ai_analysis"


class NoteType(str, Enum):
    CONVERSATION = "conversation"
    STATUS = "status"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class Note(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    timestamp: datetime
    author: str
    # True when the source timestamp was unreadable and the fetch time was used instead
    timestamp_estimated: bool = False

    @classmethod
    def create(
        cls,
        text: str,
        author: str,
        timestamp: Optional[datetime] = None,
        timestamp_estimated: bool = False,
    ) -> "Note":
        """Creates a note with a freshly generated identifier."""
        return cls(
            id=str(uuid.uuid4()),
            text=text,
            timestamp=timestamp or utc_now(),
            author=author,
            timestamp_estimated=timestamp_estimated,
        )


class NoteCollection(BaseModel):
    """Notes of one client for one day. Conversation notes are ordered newest first."""
    model_config = ConfigDict(frozen=True)

    subject_id: str
    conversation_notes: tuple[Note, ...] = ()
    status_notes: tuple[Note, ...] = ()


class TranscriptSession(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: str = Field(alias="type")
    content: Optional[str] = None
    timestamp: Optional[str] = None


class AIAnalysisNote(BaseModel):
    text: str
    timestamp: datetime = Field(default_factory=utc_now)
    type: str = "analysis"


class AIRecommendation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    text: str
    type: NoteType = NoteType.CONVERSATION
    is_accepted: bool = False


# Wire payloads

class RawNote(BaseModel):
    text: str
    timestamp: str
    author: str


class NotesData(BaseModel):
    id: Optional[str] = Field(default=None, alias="_id")
    client_id: Optional[str] = None
    conversation: list[RawNote]
    status: list[RawNote]


class NotesPayload(BaseModel):
    status: Optional[str] = None
    data: NotesData


class SessionsPayload(BaseModel):
    sessions: dict[str, list[TranscriptSession]]


class TextListPayload(BaseModel):
    notes: list[str]
