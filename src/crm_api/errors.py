# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


class CrmApiError(Exception):
    """Base exception for CRM API errors."""
    pass


class TransportFailure(CrmApiError):
    """Raised when a request could not complete (DNS, timeout, connection reset)."""

    def __init__(self, method: str, url: str, cause: BaseException):
        super().__init__(f"{method} {url} failed: {str(cause) or type(cause).__name__}")
        self.method = method
        self.url = url
        self.cause = cause


class InvalidStatus(CrmApiError):
    """Raised when the service answers with a status outside the accepted range."""

    def __init__(self, status: int, url: str, body: str = ""):
        super().__init__(f"{url} returned status {status}")
        self.status = status
        self.url = url
        self.body = body


class DecodeFailure(CrmApiError):
    """Raised when a response body does not match the expected schema."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Could not decode response from {url}: {reason}")
        self.url = url
        self.reason = reason
