# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Tests for merging structured notes with transcript annotations."""

from datetime import date, datetime, timezone

import pytest

from crm_api import CrmApiClient, DecodeFailure, InvalidStatus, TransportFailure, static_token_provider
from data_models.note_aggregator import NoteAggregator, extract_annotation, merge_conversation
from data_models.notes import Note, NoteType, TranscriptSession

from conftest import FIXED_NOW, TEST_TOKEN

DAY = date(2024, 1, 1)
NOTES_URL = "/api/lead/notes/c1/2024-01-01"
SESSIONS_URL = "/api/message-store/c1/2024-01-01"


def notes_body(conversation=(), status=()):
    return {
        "status": "success",
        "data": {"_id": "n1", "client_id": "c1", "conversation": list(conversation), "status": list(status)},
    }


def raw_note(text, timestamp, author="agent1"):
    return {"text": text, "timestamp": timestamp, "author": author}


def session(content, timestamp="2024-01-01T12:00:00Z", kind="ai_analysis"):
    return {"type": kind, "content": content, "timestamp": timestamp}


def summary(notes):
    return [(note.author, note.text) for note in notes]


@pytest.fixture
def aggregator(crm_client, fixed_clock):
    return NoteAggregator(crm_client, clock=fixed_clock)


@pytest.mark.parametrize("content, expected", [
    ("summary... NOTES: Follow up next week", "Follow up next week"),
    ("NOTES:   spaced out  \n", "spaced out"),
    ("a NOTES: first NOTES: second", "first"),
    ("NOTES: none", None),
    ("NOTES: NONE ", None),
    ("NOTES:   ", None),
    ("no marker at all", None),
    ("notes: lower case marker", None),
])
def test_extract_annotation(content, expected):
    assert extract_annotation(content) == expected


def test_merge_conversation_is_newest_first_and_stable():
    t1 = datetime(2024, 1, 1, 10, tzinfo=timezone.utc)
    t2 = datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
    structured = [Note.create("a", "agent", t1), Note.create("b", "agent", t2)]
    annotations = [Note.create("c", "AI", t1)]

    merged = merge_conversation(structured, annotations)

    assert [note.text for note in merged] == ["b", "a", "c"]


def test_annotation_ignores_other_session_kinds(aggregator):
    note = aggregator.annotation_from_session(
        TranscriptSession(kind="user_message", content="NOTES: keep this", timestamp="2024-01-01T12:00:00Z")
    )
    assert note is None


def test_annotation_requires_a_timestamp(aggregator):
    assert aggregator.annotation_from_session(TranscriptSession(kind="ai_analysis", content="NOTES: x")) is None


def test_annotation_with_unparsable_timestamp_uses_fetch_time(aggregator):
    note = aggregator.annotation_from_session(
        TranscriptSession(kind="ai_analysis", content="NOTES: x", timestamp="junk")
    )

    assert (note.author, note.text) == ("AI", "x")
    assert note.timestamp == FIXED_NOW
    assert note.timestamp_estimated


@pytest.mark.asyncio
async def test_merges_annotation_newest_first(crm_backend, aggregator):
    crm_backend.respond("GET", NOTES_URL, json_body=notes_body(
        conversation=[raw_note("Called client", "2024-01-01T10:00:00Z")],
    ))
    crm_backend.respond("GET", SESSIONS_URL, json_body={"sessions": {
        "g1": [session("summary... NOTES: Follow up next week")],
    }})

    collection = await aggregator.fetch_aggregated_notes("c1", DAY)

    assert collection.subject_id == "c1"
    assert summary(collection.conversation_notes) == [("AI", "Follow up next week"), ("agent1", "Called client")]
    assert collection.conversation_notes[0].timestamp == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
    assert collection.conversation_notes[1].timestamp == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)
    assert collection.status_notes == ()


@pytest.mark.asyncio
async def test_status_notes_keep_source_order(crm_backend, aggregator):
    crm_backend.respond("GET", NOTES_URL, json_body=notes_body(status=[
        raw_note("older", "2024-01-01T08:00:00Z"),
        raw_note("newer", "2024-01-01T09:00:00Z"),
    ]))
    crm_backend.respond("GET", SESSIONS_URL, json_body={"sessions": {
        "g1": [session("NOTES: only conversation gets annotations")],
    }})

    collection = await aggregator.fetch_aggregated_notes("c1", DAY)

    assert [note.text for note in collection.status_notes] == ["older", "newer"]
    assert summary(collection.conversation_notes) == [("AI", "only conversation gets annotations")]


@pytest.mark.asyncio
async def test_ties_keep_structured_notes_first(crm_backend, aggregator):
    crm_backend.respond("GET", NOTES_URL, json_body=notes_body(
        conversation=[raw_note("structured", "2024-01-01T12:00:00Z")],
    ))
    crm_backend.respond("GET", SESSIONS_URL, json_body={"sessions": {
        "g1": [session("NOTES: annotation")],
    }})

    collection = await aggregator.fetch_aggregated_notes("c1", DAY)

    assert [note.text for note in collection.conversation_notes] == ["structured", "annotation"]


@pytest.mark.asyncio
async def test_skips_empty_and_foreign_sessions(crm_backend, aggregator):
    crm_backend.respond("GET", NOTES_URL, json_body=notes_body(
        conversation=[raw_note("Called client", "2024-01-01T10:00:00Z")],
    ))
    crm_backend.respond("GET", SESSIONS_URL, json_body={"sessions": {
        "g1": [session("NOTES: none"), session("no marker here")],
        "g2": [session("NOTES: from the user", kind="user_message"), {"type": "ai_analysis"}],
    }})

    collection = await aggregator.fetch_aggregated_notes("c1", DAY)

    assert summary(collection.conversation_notes) == [("agent1", "Called client")]


@pytest.mark.asyncio
async def test_sessions_error_status_degrades_to_structured_notes(crm_backend, aggregator):
    crm_backend.respond("GET", NOTES_URL, json_body=notes_body(
        conversation=[raw_note("Called client", "2024-01-01T10:00:00Z")],
    ))
    crm_backend.respond("GET", SESSIONS_URL, status=500, text="internal error")

    collection = await aggregator.fetch_aggregated_notes("c1", DAY)

    assert summary(collection.conversation_notes) == [("agent1", "Called client")]


@pytest.mark.asyncio
async def test_sessions_unreachable_degrades_to_structured_notes(crm_backend, fixed_clock):
    crm_backend.respond("GET", NOTES_URL, json_body=notes_body(
        conversation=[raw_note("Called client", "2024-01-01T10:00:00Z")],
    ))
    # The transcript call outlives the client timeout
    crm_backend.respond("GET", SESSIONS_URL, json_body={"sessions": {}}, delay=1.0)

    async with CrmApiClient(crm_backend.base_url, static_token_provider(TEST_TOKEN), timeout=0.2) as client:
        collection = await NoteAggregator(client, clock=fixed_clock).fetch_aggregated_notes("c1", DAY)

    assert summary(collection.conversation_notes) == [("agent1", "Called client")]


@pytest.mark.asyncio
async def test_notes_error_status_is_fatal(crm_backend, aggregator):
    crm_backend.respond("GET", NOTES_URL, status=500, text="internal error")
    crm_backend.respond("GET", SESSIONS_URL, json_body={"sessions": {}})

    with pytest.raises(InvalidStatus) as e:
        await aggregator.fetch_aggregated_notes("c1", DAY)

    assert e.value.status == 500
    # The transcript resource is never consulted
    assert crm_backend.requests_to(SESSIONS_URL) == []


@pytest.mark.asyncio
async def test_notes_unreachable_is_fatal(fixed_clock):
    async with CrmApiClient("http://127.0.0.1:1", static_token_provider(TEST_TOKEN)) as client:
        with pytest.raises(TransportFailure):
            await NoteAggregator(client, clock=fixed_clock).fetch_aggregated_notes("c1", DAY)


@pytest.mark.asyncio
async def test_notes_missing_fields_is_fatal(crm_backend, aggregator):
    crm_backend.respond("GET", NOTES_URL, json_body={"data": {"conversation": []}})

    with pytest.raises(DecodeFailure):
        await aggregator.fetch_aggregated_notes("c1", DAY)


@pytest.mark.asyncio
async def test_undecodable_sessions_body_is_fatal(crm_backend, aggregator):
    crm_backend.respond("GET", NOTES_URL, json_body=notes_body())
    crm_backend.respond("GET", SESSIONS_URL, json_body={"unexpected": []})

    with pytest.raises(DecodeFailure):
        await aggregator.fetch_aggregated_notes("c1", DAY)


@pytest.mark.asyncio
async def test_unparsable_timestamps_use_fetch_time(crm_backend, aggregator):
    crm_backend.respond("GET", NOTES_URL, json_body=notes_body(
        conversation=[raw_note("no time", "sometime"), raw_note("timed", "2024-01-01T10:00:00Z")],
    ))
    crm_backend.respond("GET", SESSIONS_URL, json_body={"sessions": {}})

    collection = await aggregator.fetch_aggregated_notes("c1", DAY)

    estimated, timed = collection.conversation_notes
    assert estimated.text == "no time"
    assert estimated.timestamp == FIXED_NOW
    assert estimated.timestamp_estimated
    assert not timed.timestamp_estimated


@pytest.mark.asyncio
async def test_both_calls_share_one_credential(crm_backend, fixed_clock):
    calls = []

    async def counting_provider():
        calls.append(1)
        return f"token-{len(calls)}"

    crm_backend.respond("GET", NOTES_URL, json_body=notes_body())
    crm_backend.respond("GET", SESSIONS_URL, json_body={"sessions": {}})

    async with CrmApiClient(crm_backend.base_url, counting_provider) as client:
        await NoteAggregator(client, clock=fixed_clock).fetch_aggregated_notes("c1", DAY)

    assert len(calls) == 1
    headers = [r["headers"]["Authorization"] for r in crm_backend.requests]
    assert headers == ["Bearer token-1", "Bearer token-1"]


@pytest.mark.asyncio
async def test_empty_subject_id_is_rejected(aggregator):
    with pytest.raises(ValueError):
        await aggregator.fetch_aggregated_notes("", DAY)


@pytest.mark.asyncio
async def test_add_note_posts_to_note_type(crm_backend, aggregator):
    crm_backend.respond("POST", "/api/lead/notes/c1/status", json_body={"status": "success"})
    note = Note.create("Paid invoice", "agent1", datetime(2024, 1, 1, 10, tzinfo=timezone.utc))

    await aggregator.add_note("c1", NoteType.STATUS, note)

    request = crm_backend.requests_to("/api/lead/notes/c1/status")[0]
    assert request["json"] == {"text": "Paid invoice", "author": "agent1", "timestamp": "2024-01-01T10:00:00Z"}
    assert request["headers"]["Authorization"] == f"Bearer {TEST_TOKEN}"


@pytest.mark.asyncio
async def test_add_note_rejected_by_service(crm_backend, aggregator):
    crm_backend.respond("POST", "/api/lead/notes/c1/conversation", status=400, text="bad note")

    with pytest.raises(InvalidStatus):
        await aggregator.add_note("c1", NoteType.CONVERSATION, Note.create("x", "agent1"))


@pytest.mark.asyncio
async def test_ai_analysis_and_draft(crm_backend, aggregator):
    crm_backend.respond("GET", "/api/messages/ai-notes/c1/2024-01-01", json_body={
        "notes": ["Analysis:\n\nClient is engaged.  Wants a call. Ok"],
    })

    analysis = await aggregator.fetch_ai_analysis("c1", DAY)
    draft = await aggregator.suggest_note_draft("c1", DAY)

    assert analysis[0].timestamp == FIXED_NOW
    assert analysis[0].type == "analysis"
    assert draft == "Client is engaged.\n\nWants a call.\n\nOk"


@pytest.mark.asyncio
async def test_draft_without_analysis_is_none(crm_backend, aggregator):
    crm_backend.respond("GET", "/api/messages/ai-notes/c1/2024-01-01", json_body={"notes": []})

    assert await aggregator.suggest_note_draft("c1", DAY) is None


@pytest.mark.asyncio
async def test_ai_recommendations(crm_backend, aggregator):
    crm_backend.respond("GET", "/api/lead/notes/c1/ai-recommendations/2024-01-01", json_body={
        "notes": ["Send brochure", "Book follow-up"],
    })

    recommendations = await aggregator.fetch_ai_recommendations("c1", DAY)

    assert [r.text for r in recommendations] == ["Send brochure", "Book follow-up"]
    assert all(r.type == NoteType.CONVERSATION and not r.is_accepted for r in recommendations)
    assert recommendations[0].type.display_name == "Conversation"
    assert NoteType.STATUS.display_name == "Status"
    assert len({r.id for r in recommendations}) == 2
