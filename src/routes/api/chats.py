# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.

import logging

from fastapi import APIRouter, Response
from pydantic import BaseModel

from assistant import ChatMessage
from data_models.app_context import AppContext

logger = logging.getLogger(__name__)


class MessageRequest(BaseModel):
    content: str


def message_json(message: ChatMessage) -> dict:
    # The local id is kept for the front-end list, it is not part of the service payload
    return {"id": message.id, **message.model_dump(mode="json")}


def chats_routes(app_context: AppContext):
    router = APIRouter()
    chat_assistant = app_context.chat_assistant

    @router.post("/api/chats/{client_id}/messages")
    async def post_message(client_id: str, request: MessageRequest):
        """
        Sends one message to the assistant in the conversation kept for the client.
        Upstream failures come back as an assistant message, not as an error status.
        """
        session = app_context.chat_session(client_id)
        reply = await chat_assistant.send_message(session, request.content)
        return {
            "message": message_json(reply) if reply else None,
            "messages": [message_json(message) for message in session.messages],
        }

    @router.delete("/api/chats/{client_id}", status_code=204)
    async def clear_chat(client_id: str):
        session = app_context.chat_sessions.get(client_id)
        if session is not None:
            count = len(session.messages)
            session.clear()
            logger.info(f"Cleared {count} chat messages for client {client_id}")
        return Response(status_code=204)

    return router
