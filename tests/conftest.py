# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import asyncio
import json
import os
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from crm_api import CrmApiClient, static_token_provider

# Importing the app module must not install global tracing in tests
os.environ.setdefault("CRM_NOTES_DISABLE_TRACING", "1")

TEST_TOKEN = "test-token"
FIXED_NOW = datetime(2024, 1, 2, 9, 30, tzinfo=timezone.utc)


class FakeCrmBackend:
    """In-process stand-in for the CRM service. Unknown routes answer 404."""

    def __init__(self):
        self.routes = {}
        self.requests = []
        self.base_url = None

    def respond(self, method: str, path: str, status: int = 200, json_body=None, text: str = None, delay: float = 0):
        if json_body is not None:
            text = json.dumps(json_body)
        self.routes[(method, path)] = (status, text or "", delay)

    async def handle(self, request: web.Request) -> web.Response:
        raw = await request.read()
        self.requests.append({
            "method": request.method,
            "path": request.path,
            "query": dict(request.query),
            "headers": dict(request.headers),
            "json": json.loads(raw) if raw else None,
        })
        status, text, delay = self.routes.get((request.method, request.path), (404, "not found", 0))
        if delay:
            await asyncio.sleep(delay)
        return web.Response(status=status, text=text, content_type="application/json")

    def requests_to(self, path: str) -> list:
        return [r for r in self.requests if r["path"] == path]


@pytest_asyncio.fixture
async def crm_backend():
    backend = FakeCrmBackend()
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", backend.handle)
    server = TestServer(app)
    await server.start_server()
    backend.base_url = str(server.make_url("/"))
    yield backend
    await server.close()


@pytest_asyncio.fixture
async def crm_client(crm_backend):
    client = CrmApiClient(crm_backend.base_url, static_token_provider(TEST_TOKEN))
    yield client
    await client.close()


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


CLIENT_ASSIGNEE = {"id": "c1", "name": "Jane Doe", "type": "client", "client_id": "c1"}
EMPLOYEE_ASSIGNEE = {"id": "e1", "name": "Sam Agent", "type": "employee", "employee_id": "e1"}


def task_body(**overrides) -> dict:
    """A task as the CRM service sends it."""
    body = {
        "_id": "t1",
        "title": "Call back",
        "description": "About the renewal",
        "status": "pending",
        "priority": "high",
        "due_date": "2024-01-10",
        "assignees": [EMPLOYEE_ASSIGNEE, CLIENT_ASSIGNEE],
        "created_by": "Sam Agent",
        "created_at": "2024-01-01T10:00:00Z",
        "updated_at": "not a time",
    }
    body.update(overrides)
    return body
