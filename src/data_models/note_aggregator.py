# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import logging
from datetime import date, datetime
from time import time
from typing import Callable, Iterable, Optional

from crm_api.client import CrmApiClient
from crm_api.config import ADD_NOTE_PATH, AI_NOTES_PATH, AI_RECOMMENDATIONS_PATH, NOTES_PATH, SESSIONS_PATH
from crm_api.errors import TransportFailure
from data_models.notes import (
    AI_ANALYSIS_KIND,
    AI_AUTHOR,
    AIAnalysisNote,
    AIRecommendation,
    Note,
    NoteCollection,
    NotesPayload,
    NoteType,
    RawNote,
    SessionsPayload,
    TextListPayload,
    TranscriptSession,
)
from data_models.text_cleanup import format_with_line_breaks, strip_analysis_label
from data_models.timestamps import format_timestamp, format_wire_date, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

# Marker that separates the analysis body from the analyst notes in a transcript
NOTES_MARKER = "NOTES:"
# Annotation text meaning "nothing to note"
EMPTY_ANNOTATION = "none"


def extract_annotation(content: str) -> Optional[str]:
    """
    Returns the annotation embedded in a transcript, or None if there is none.

    The annotation is the segment after the first marker, up to the next marker if the
    content repeats it, with surrounding whitespace removed.
    """
    sections = content.split(NOTES_MARKER)
    if len(sections) < 2:
        return None
    text = sections[1].strip()
    if not text or text.lower() == EMPTY_ANNOTATION:
        return None
    return text


def merge_conversation(structured: Iterable[Note], annotations: Iterable[Note]) -> tuple[Note, ...]:
    """Newest first. The sort is stable, so ties keep structured notes ahead of annotations."""
    combined = [*structured, *annotations]
    return tuple(sorted(combined, key=lambda note: note.timestamp, reverse=True))


class NoteAggregator:
    """
    Builds the notes view of a client for one day.

    Structured notes come from the notes resource. Analyst annotations are extracted from
    the AI transcript sessions stored for the same client and day.
    """

    def __init__(self, crm_client: CrmApiClient, clock: Callable[[], datetime] = utc_now):
        self.crm_client = crm_client
        self.clock = clock

    async def fetch_aggregated_notes(self, subject_id: str, day: date) -> NoteCollection:
        """
        Fetches structured notes and transcript annotations and merges them.

        The notes resource is required: any failure there propagates. The transcript
        resource is best effort: an unreachable service or an error status leaves the
        collection with structured notes only. A transcript body that does not decode
        still fails the whole call.

        :param subject_id: The client identifier.
        :param day: The calendar day to fetch.
        :return: A new NoteCollection.
        :raises TransportFailure, InvalidStatus, DecodeFailure: On notes resource failures.
        """
        if not subject_id:
            raise ValueError("subject_id is required.")

        date_str = format_wire_date(day)
        start = time()
        try:
            # One credential for both requests
            headers = await self.crm_client.get_headers()

            path = CrmApiClient.build_path(NOTES_PATH, client_id=subject_id, date=date_str)
            payload = await self.crm_client.get_json(path, NotesPayload, headers=headers)
            conversation = [self._structured_note(raw) for raw in payload.data.conversation]
            status = [self._structured_note(raw) for raw in payload.data.status]

            annotations = await self._fetch_annotations(subject_id, date_str, headers)

            return NoteCollection(
                subject_id=payload.data.client_id or subject_id,
                conversation_notes=merge_conversation(conversation, annotations),
                status_notes=tuple(status),
            )
        finally:
            logger.info(f"Aggregate notes for {subject_id} on {date_str}. Duration: {time() - start}s")

    async def _fetch_annotations(self, subject_id: str, date_str: str, headers: dict) -> list[Note]:
        path = CrmApiClient.build_path(SESSIONS_PATH, client_id=subject_id, date=date_str)
        try:
            response = await self.crm_client.send("GET", path, headers=headers)
        except TransportFailure as e:
            logger.warning(f"Transcript sessions unavailable for {subject_id} on {date_str}: {e}")
            return []
        if not response.ok:
            logger.warning(f"Transcript sessions for {subject_id} on {date_str} returned {response.status}")
            return []

        payload = self.crm_client.decode(response, SessionsPayload)
        annotations = []
        # Group keys carry no meaning
        for sessions in payload.sessions.values():
            for session in sessions:
                note = self.annotation_from_session(session)
                if note is not None:
                    annotations.append(note)
        logger.debug(f"Extracted {len(annotations)} annotations for {subject_id} on {date_str}")
        return annotations

    def annotation_from_session(self, session: TranscriptSession) -> Optional[Note]:
        if session.kind != AI_ANALYSIS_KIND or session.content is None or session.timestamp is None:
            return None
        text = extract_annotation(session.content)
        if text is None:
            return None
        parsed = parse_timestamp(session.timestamp, self.clock)
        return Note.create(text, AI_AUTHOR, parsed.value, timestamp_estimated=parsed.fallback_used)

    def _structured_note(self, raw: RawNote) -> Note:
        parsed = parse_timestamp(raw.timestamp, self.clock)
        return Note.create(raw.text, raw.author, parsed.value, timestamp_estimated=parsed.fallback_used)

    async def add_note(self, client_id: str, note_type: NoteType, note: Note) -> None:
        """Adds a note to the conversation or status list of a client."""
        path = CrmApiClient.build_path(ADD_NOTE_PATH, client_id=client_id, note_type=note_type.value)
        body = {
            "text": note.text,
            "author": note.author,
            "timestamp": format_timestamp(note.timestamp),
        }
        response = await self.crm_client.send("POST", path, json=body)
        response.raise_for_status()

    async def fetch_ai_analysis(self, client_id: str, day: date) -> list[AIAnalysisNote]:
        path = CrmApiClient.build_path(AI_NOTES_PATH, client_id=client_id, date=format_wire_date(day))
        payload = await self.crm_client.get_json(path, TextListPayload)
        logger.info(f"Received {len(payload.notes)} AI analysis notes for {client_id}")
        return [AIAnalysisNote(text=text, timestamp=self.clock()) for text in payload.notes]

    async def fetch_ai_recommendations(self, client_id: str, day: date) -> list[AIRecommendation]:
        path = CrmApiClient.build_path(AI_RECOMMENDATIONS_PATH, client_id=client_id, date=format_wire_date(day))
        payload = await self.crm_client.get_json(path, TextListPayload)
        return [AIRecommendation(text=text) for text in payload.notes]

    async def suggest_note_draft(self, client_id: str, day: date) -> Optional[str]:
        """Turns the first AI analysis of the day into a note draft, one sentence per paragraph."""
        analysis = await self.fetch_ai_analysis(client_id, day)
        if not analysis:
            return None
        return format_with_line_breaks(strip_analysis_label(analysis[0].text))
