# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from .client import NO_CLIENT_MESSAGE, ChatAssistantClient
from .models import ChatMessage, ChatReply, ChatRole, ChatSession, ReplyVariant

__all__ = [
    "ChatAssistantClient",
    "ChatMessage",
    "ChatReply",
    "ChatRole",
    "ChatSession",
    "NO_CLIENT_MESSAGE",
    "ReplyVariant",
]
