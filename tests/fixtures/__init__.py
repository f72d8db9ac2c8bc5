"""Test fixtures package for prox.

Usage:
    from tests.fixtures.proxmox import make_response, make_http, RecordingEvent
"""

from .proxmox import (
    TEST_IDENTITY,
    FakeClock,
    RecordingEvent,
    cluster_rows,
    credentials,
    login_response,
    make_http,
    make_response,
    identity_cipher,
)

__all__ = [
    "TEST_IDENTITY",
    "FakeClock",
    "RecordingEvent",
    "cluster_rows",
    "credentials",
    "login_response",
    "make_http",
    "make_response",
    "identity_cipher",
]
