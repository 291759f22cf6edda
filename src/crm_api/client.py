# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import asyncio
import logging
from dataclasses import dataclass
from time import time
from typing import Any, Callable, Coroutine, Optional, Type, TypeVar
from urllib.parse import quote

import aiohttp
from pydantic import BaseModel, ValidationError

from .config import DEFAULT_TIMEOUT
from .errors import DecodeFailure, InvalidStatus, TransportFailure

logger = logging.getLogger(__name__)

SUCCESS_STATUS = 200

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def static_token_provider(token: str) -> Callable[[], Coroutine[Any, Any, str]]:
    """Wraps a fixed credential as a bearer token provider."""
    async def bearer_token_provider() -> str:
        return token

    return bearer_token_provider


@dataclass(frozen=True)
class CrmResponse:
    status: int
    url: str
    body: bytes

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS_STATUS

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def raise_for_status(self) -> None:
        if not self.ok:
            raise InvalidStatus(self.status, self.url, self.text())


class CrmApiClient:
    """
    Client for the CRM REST service.

    One instance is created at startup and shared by every accessor. It owns a single
    aiohttp session and resolves the bearer credential through the injected provider.
    """

    def __init__(
        self,
        base_url: str,
        bearer_token_provider: Callable[[], Coroutine[Any, Any, str]],
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initializes the CrmApiClient.

        :param base_url: The base URL of the CRM service.
        :param bearer_token_provider: Coroutine function returning the bearer token.
        :param session: Optional aiohttp session. When omitted the client creates and owns one.
        :param timeout: Total timeout in seconds for a single request.
        """
        if not base_url:
            raise ValueError("CRM base URL is required.")
        if not bearer_token_provider:
            raise ValueError("bearer_token_provider is required.")

        self.base_url = base_url.rstrip("/")
        self.bearer_token_provider = bearer_token_provider
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def get_headers(self) -> dict:
        """
        Returns the headers required for CRM API requests.

        :return: A dictionary of headers.
        """
        return {
            "Authorization": f"Bearer {await self.bearer_token_provider()}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def build_path(template: str, **params: Any) -> str:
        """Fills a path template, escaping every parameter as a single path segment."""
        return template.format(**{key: quote(str(value), safe="") for key, value in params.items()})

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
            self._owns_session = True
        return self._session

    async def send(
        self,
        method: str,
        path: str,
        headers: Optional[dict] = None,
        params: Optional[dict] = None,
        json: Any = None,
    ) -> CrmResponse:
        """
        Sends a single request and returns the raw response.

        :param headers: Pre-resolved headers. Resolved from the token provider when omitted.
        :raises TransportFailure: If the request could not complete.
        """
        url = self.url_for(path)
        if headers is None:
            headers = await self.get_headers()
        if params:
            params = {key: value for key, value in params.items() if value is not None}

        start = time()
        status = None
        try:
            session = self._get_session()
            async with session.request(method, url, headers=headers, params=params or None, json=json) as response:
                status = response.status
                body = await response.read()
            return CrmResponse(status=status, url=url, body=body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"{method} {url} could not complete: {e!r}")
            raise TransportFailure(method, url, e) from e
        finally:
            logger.info(f"{method} {url} -> {status}. Duration: {time() - start}s")

    @staticmethod
    def decode(response: CrmResponse, schema: Type[SchemaT]) -> SchemaT:
        """
        Validates a JSON body against a pydantic schema.

        :raises DecodeFailure: If the body is empty, not JSON, or does not match the schema.
        """
        if not response.body:
            raise DecodeFailure(response.url, "empty response body")
        try:
            return schema.model_validate_json(response.body)
        except ValidationError as e:
            logger.debug(f"Raw response from {response.url}: {response.text()}")
            raise DecodeFailure(response.url, str(e)) from e

    async def get_json(
        self,
        path: str,
        schema: Type[SchemaT],
        headers: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> SchemaT:
        """GET a resource, require a success status and decode it."""
        response = await self.send("GET", path, headers=headers, params=params)
        response.raise_for_status()
        return self.decode(response, schema)

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
