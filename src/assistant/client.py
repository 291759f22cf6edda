# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import logging
from datetime import datetime
from time import time
from typing import Callable, Optional

from crm_api.client import CrmApiClient
from crm_api.config import CHAT_PATH
from crm_api.errors import InvalidStatus, TransportFailure
from data_models.timestamps import utc_now

from .models import ChatMessage, ChatReply, ChatRole, ChatSession

logger = logging.getLogger(__name__)

NO_CLIENT_MESSAGE = "Error: No client selected. Please select a client first."
ERROR_MESSAGE_TEMPLATE = "Sorry, I encountered an error: {error}"


class ChatAssistantClient:
    """Sends chat turns about a client to the AI assistant of the CRM service."""

    def __init__(self, crm_client: CrmApiClient, clock: Callable[[], datetime] = utc_now):
        self.crm_client = crm_client
        self.clock = clock

    async def send_message(self, session: ChatSession, text: str) -> Optional[ChatMessage]:
        """
        Runs one chat turn.

        The user message and the reply are appended to the session. A failed request is
        reported as an assistant message rather than raised.

        :return: The assistant message appended, or None when the input was blank.
        """
        if not text.strip():
            return None
        if not session.client_id:
            logger.warning("Chat message sent without a selected client")
            return session.append(ChatRole.ASSISTANT, NO_CLIENT_MESSAGE, self.clock())

        session.append(ChatRole.USER, text, self.clock())

        start = time()
        try:
            response = await self.crm_client.send("POST", CHAT_PATH, json=session.to_request())
            response.raise_for_status()
        except (TransportFailure, InvalidStatus) as e:
            logger.error(f"Chat request for client {session.client_id} failed: {e}")
            return session.append(ChatRole.ASSISTANT, ERROR_MESSAGE_TEMPLATE.format(error=e), self.clock())
        finally:
            logger.info(f"Chat turn for client {session.client_id}. Duration: {time() - start}s")

        reply = ChatReply.decode(response.body, self.clock)
        logger.debug(f"Decoded assistant reply as {reply.variant.value}")
        return session.append(ChatRole.ASSISTANT, reply.message, reply.timestamp)
