# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from .client import CrmApiClient, CrmResponse, static_token_provider
from .config import CrmApiConfig
from .errors import CrmApiError, DecodeFailure, InvalidStatus, TransportFailure

__all__ = [
    "CrmApiClient",
    "CrmApiConfig",
    "CrmApiError",
    "CrmResponse",
    "DecodeFailure",
    "InvalidStatus",
    "TransportFailure",
    "static_token_provider",
]
