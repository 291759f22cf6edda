# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import logging
from datetime import date, datetime
from typing import Literal, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from data_models.data_access import DataAccess
from data_models.notes import Note, NoteCollection, NoteType
from data_models.text_cleanup import clean_markdown_text, format_with_line_breaks

logger = logging.getLogger(__name__)

DEFAULT_NOTE_AUTHOR = "Current User"


class NoteRequest(BaseModel):
    text: str
    author: str = DEFAULT_NOTE_AUTHOR
    timestamp: Optional[datetime] = None


class TextFormatRequest(BaseModel):
    text: str
    mode: Literal["line_breaks", "markdown"] = "line_breaks"


def notes_routes(data_access: DataAccess):
    router = APIRouter()
    note_aggregator = data_access.note_aggregator

    @router.get("/api/notes/{client_id}/{day}", response_model=NoteCollection)
    async def get_notes(client_id: str, day: date):
        """Structured notes of the day merged with the analyst annotations, newest first."""
        return await note_aggregator.fetch_aggregated_notes(client_id, day)

    @router.post("/api/notes/{client_id}/{note_type}", status_code=201, response_model=Note)
    async def add_note(client_id: str, note_type: NoteType, request: NoteRequest):
        if not request.text.strip():
            raise ValueError("Note text is required.")
        note = Note.create(request.text, request.author, request.timestamp)
        await note_aggregator.add_note(client_id, note_type, note)
        logger.info(f"Added {note_type.value} note {note.id} for client {client_id}")
        return note

    @router.get("/api/notes/{client_id}/{day}/ai-analysis")
    async def get_ai_analysis(client_id: str, day: date):
        return {"notes": await note_aggregator.fetch_ai_analysis(client_id, day)}

    @router.get("/api/notes/{client_id}/{day}/ai-recommendations")
    async def get_ai_recommendations(client_id: str, day: date):
        return {"recommendations": await note_aggregator.fetch_ai_recommendations(client_id, day)}

    @router.get("/api/notes/{client_id}/{day}/draft")
    async def get_note_draft(client_id: str, day: date):
        return {"draft": await note_aggregator.suggest_note_draft(client_id, day)}

    @router.post("/api/text/format")
    async def format_text(request: TextFormatRequest):
        if request.mode == "markdown":
            return {"text": clean_markdown_text(request.text)}
        return {"text": format_with_line_breaks(request.text)}

    return router
