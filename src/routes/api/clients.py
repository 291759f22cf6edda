# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from typing import Optional

from fastapi import APIRouter

from data_models.clients import filter_clients
from data_models.data_access import DataAccess


def clients_routes(data_access: DataAccess):
    router = APIRouter()

    @router.get("/api/clients")
    async def get_clients(query: Optional[str] = None):
        """
        Lists clients. With a query, only clients whose name contains it are returned,
        and queries shorter than four characters match nothing.
        """
        clients = await data_access.client_accessor.fetch_clients()
        if query is not None:
            clients = filter_clients(clients, query)
        return {"clients": clients}

    return router
