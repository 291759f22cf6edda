# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.

from dataclasses import dataclass, field

from assistant import ChatAssistantClient, ChatSession
from crm_api import CrmApiClient, CrmApiConfig
from data_models.data_access import DataAccess


@dataclass(frozen=True)
class AppContext:
    """ Application context for commonly used objects in the application. """
    config: CrmApiConfig
    crm_client: CrmApiClient
    data_access: DataAccess
    chat_assistant: ChatAssistantClient
    # One in-memory conversation per client id
    chat_sessions: dict[str, ChatSession] = field(default_factory=dict)

    def chat_session(self, client_id: str) -> ChatSession:
        if client_id not in self.chat_sessions:
            self.chat_sessions[client_id] = ChatSession(client_id=client_id)
        return self.chat_sessions[client_id]
