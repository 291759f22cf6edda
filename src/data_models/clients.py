# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import logging
from time import time
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict

from crm_api.client import CrmApiClient
from crm_api.config import CLIENTS_PATH

logger = logging.getLogger(__name__)

# Shorter queries match too broadly to be useful
MIN_CLIENT_QUERY_LENGTH = 4


class Client(BaseModel):
    model_config = ConfigDict(frozen=True)

    client_id: str
    name: str

    @property
    def id(self) -> str:
        return self.client_id

    @property
    def full_name(self) -> str:
        return self.name


class ClientsPayload(BaseModel):
    status: Optional[str] = None
    users: list[Client]


def filter_clients(clients: Iterable[Client], query: str) -> list[Client]:
    """Case-insensitive substring search on client names."""
    if len(query) < MIN_CLIENT_QUERY_LENGTH:
        return []
    needle = query.lower()
    return [client for client in clients if needle in client.full_name.lower()]


class ClientAccessor:
    def __init__(self, crm_client: CrmApiClient):
        self.crm_client = crm_client

    async def fetch_clients(self) -> list[Client]:
        """Get every client visible to the current credential."""
        start = time()
        try:
            payload = await self.crm_client.get_json(CLIENTS_PATH, ClientsPayload)
            logger.info(f"Decoded {len(payload.users)} clients")
            return payload.users
        finally:
            logger.info(f"Get clients. Duration: {time() - start}s")
