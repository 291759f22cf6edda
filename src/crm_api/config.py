# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import logging
import os

# Base URL of the CRM REST service
DEFAULT_BASE_URL = "https://track.snapped.cc"

# Connection Configuration Defaults
DEFAULT_TIMEOUT = 30.0

# Resource paths
CLIENTS_PATH = "api/desktop-upload/users"
NOTES_PATH = "api/lead/notes/{client_id}/{date}"
ADD_NOTE_PATH = "api/lead/notes/{client_id}/{note_type}"
AI_RECOMMENDATIONS_PATH = "api/lead/notes/{client_id}/ai-recommendations/{date}"
SESSIONS_PATH = "api/message-store/{client_id}/{date}"
AI_NOTES_PATH = "api/messages/ai-notes/{client_id}/{date}"
AI_TASKS_PATH = "api/messages/tasks/{client_id}/{date}"
TASKS_PATH = "api/tasks"
TASK_PATH = "api/tasks/{task_id}"
CLIENT_TASKS_PATH = "api/tasks/client/{client_id}"
ASSIGNEES_PATH = "api/search_assignees"
CHAT_PATH = "api/chat"

logger = logging.getLogger(__name__)


class CrmApiConfig:
    """Configuration for the CRM REST service."""

    def __init__(self):
        # API Configuration
        self.base_url = os.getenv("CRM_API_BASE_URL", DEFAULT_BASE_URL).rstrip("/")
        self.token = os.getenv("CRM_API_TOKEN", "")

        # Connection Configuration
        self.timeout = float(os.getenv("CRM_API_TIMEOUT", str(DEFAULT_TIMEOUT)))

        if not self.token:
            logger.warning("CRM_API_TOKEN is not set. Requests will be sent without a usable credential.")
