# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import json
import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field, field_serializer

from data_models.timestamps import format_timestamp, try_parse_timestamp, utc_now

logger = logging.getLogger(__name__)


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    # Local identity only, never sent to the service
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), exclude=True)
    role: ChatRole
    content: str
    timestamp: datetime = Field(default_factory=utc_now)

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)


class ChatSession(BaseModel):
    """One conversation with the assistant about a single client."""
    client_id: str
    messages: list[ChatMessage] = Field(default_factory=list)

    def append(self, role: ChatRole, content: str, timestamp: Optional[datetime] = None) -> ChatMessage:
        message = ChatMessage(role=role, content=content, timestamp=timestamp or utc_now())
        self.messages.append(message)
        return message

    def clear(self) -> None:
        self.messages.clear()

    def to_request(self) -> dict:
        return {
            "messages": [message.model_dump(mode="json") for message in self.messages],
            "client_id": self.client_id,
        }


class ReplyVariant(str, Enum):
    MESSAGE_FIELD = "message_field"
    CONTENT_FIELD = "content_field"
    BARE_STRING = "bare_string"
    RAW_TEXT = "raw_text"


class ChatReply(BaseModel):
    message: str
    timestamp: datetime
    variant: ReplyVariant

    @classmethod
    def decode(cls, body: bytes, clock: Callable[[], datetime] = utc_now) -> "ChatReply":
        """
        Decodes an assistant reply.

        The service has answered in several shapes over time. They are tried in order:
        an object with a ``message`` string, an object with a ``content`` string, a bare
        JSON string, and finally the body as plain text. The reply time comes from the
        object's ``timestamp`` when it parses, otherwise from ``clock``.
        """
        text = body.decode("utf-8", errors="replace")
        try:
            document: Any = json.loads(text)
        except ValueError:
            document = None

        if isinstance(document, dict):
            timestamp = None
            if isinstance(document.get("timestamp"), str):
                timestamp = try_parse_timestamp(document["timestamp"])
            for key, variant in (("message", ReplyVariant.MESSAGE_FIELD), ("content", ReplyVariant.CONTENT_FIELD)):
                if isinstance(document.get(key), str):
                    return cls(message=document[key], timestamp=timestamp or clock(), variant=variant)

        if isinstance(document, str):
            return cls(message=document, timestamp=clock(), variant=ReplyVariant.BARE_STRING)

        logger.debug("Assistant reply is not in a known JSON shape, using the raw text")
        return cls(message=text, timestamp=clock(), variant=ReplyVariant.RAW_TEXT)
