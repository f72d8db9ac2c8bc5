"""Proxmox VE API client runtime.

The client and factory live in ``prox.api_clients.client`` and
``prox.api_clients.factory``; this package exports the error types and
session handling that every layer depends on.
"""

from .errors import (
    APIConnectionError,
    APIRequestError,
    AuthenticationError,
    ProxError,
    ResourceNotFoundError,
    TaskCancelledError,
    TaskError,
    TaskFailedError,
    TaskTimeoutError,
    UnexpectedResponseError,
)
from .session import Session, SessionManager

__all__ = [
    "APIConnectionError",
    "APIRequestError",
    "AuthenticationError",
    "ProxError",
    "ResourceNotFoundError",
    "Session",
    "SessionManager",
    "TaskCancelledError",
    "TaskError",
    "TaskFailedError",
    "TaskTimeoutError",
    "UnexpectedResponseError",
]
