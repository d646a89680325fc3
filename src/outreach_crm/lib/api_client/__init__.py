"""API client library — async REST access to the CRM job endpoints.

Public API:
    - CrmApiClient: httpx-based client for import/export endpoints
    - ApiError, TransportError, NetworkError, UnknownError: Failure variants
    - describe_error: Map any failure to a display string
"""

from outreach_crm.lib.api_client.client import CrmApiClient
from outreach_crm.lib.api_client.errors import (
    ApiError,
    NetworkError,
    TransportError,
    UnknownError,
    describe_error,
)

__all__ = [
    "ApiError",
    "CrmApiClient",
    "NetworkError",
    "TransportError",
    "UnknownError",
    "describe_error",
]
