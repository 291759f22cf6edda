# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License.

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI

from assistant import ChatAssistantClient
from config import get_log_level, setup_logging, setup_tracing
from crm_api import CrmApiClient, CrmApiConfig, static_token_provider
from data_models.app_context import AppContext
from data_models.data_access import create_data_access
from routes.api.chats import chats_routes
from routes.api.clients import clients_routes
from routes.api.errors import register_error_handlers
from routes.api.notes import notes_routes
from routes.api.tasks import tasks_routes

load_dotenv(".env")

# Setup default logging and minimum log level severity for your environment that you want to consume
log_level = get_log_level(logging.INFO)
setup_logging(log_level=log_level)

logger = logging.getLogger(__name__)


def create_app_context(config: Optional[CrmApiConfig] = None) -> AppContext:
    '''Create the application context for commonly used object used in application.'''
    config = config or CrmApiConfig()

    crm_client = CrmApiClient(
        base_url=config.base_url,
        bearer_token_provider=static_token_provider(config.token),
        timeout=config.timeout,
    )
    data_access = create_data_access(crm_client)

    return AppContext(
        config=config,
        crm_client=crm_client,
        data_access=data_access,
        chat_assistant=ChatAssistantClient(crm_client),
    )


def create_app(app_context: AppContext) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app_context.crm_client.close()
        logger.info("CRM client closed")

    app = FastAPI(title="CRM Notes", lifespan=lifespan)
    register_error_handlers(app)

    app.include_router(notes_routes(app_context.data_access))
    app.include_router(clients_routes(app_context.data_access))
    app.include_router(tasks_routes(app_context.data_access))
    app.include_router(chats_routes(app_context))

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok", "crm_base_url": app_context.config.base_url}

    return app


app_context = create_app_context()
app = create_app(app_context)

# Setup OpenTelemetry tracing
if not os.getenv("CRM_NOTES_DISABLE_TRACING"):
    setup_tracing(app)
