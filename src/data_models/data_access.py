# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import logging
from dataclasses import dataclass

from crm_api.client import CrmApiClient
from data_models.clients import ClientAccessor
from data_models.note_aggregator import NoteAggregator
from data_models.tasks import TaskAccessor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DataAccess:
    """ Data access layer for the application. """
    client_accessor: ClientAccessor
    note_aggregator: NoteAggregator
    task_accessor: TaskAccessor


def create_data_access(crm_client: CrmApiClient) -> DataAccess:
    """ Factory function to create a DataAccess object. """
    logger.info(f"Creating data access for {crm_client.base_url}")
    return DataAccess(
        client_accessor=ClientAccessor(crm_client),
        note_aggregator=NoteAggregator(crm_client),
        task_accessor=TaskAccessor(crm_client),
    )
