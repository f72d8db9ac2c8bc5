"""Proxmox API test fixtures and fakes for prox tests."""

import json
from typing import Any, List, Optional
from unittest.mock import Mock

import pytest
import requests

from prox.encryption import CredentialCipher, IdentityKeyManager
from prox.models import Credentials

TEST_IDENTITY = ("1000", "tester", "build-host", "linux")


def make_response(status_code: int = 200, data: Any = None, body: Optional[str] = None) -> Mock:
    """Build a stand-in for ``requests.Response``."""
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    if body is None:
        body = json.dumps({"data": data})
    response.text = body

    def _json():
        return json.loads(body)

    response.json.side_effect = _json
    return response


def login_response(ticket: str = "PVE:root@pam:TICKET", csrf: str = "CSRF-TOKEN") -> Mock:
    return make_response(200, {"ticket": ticket, "CSRFPreventionToken": csrf, "username": "root@pam"})


def make_http(responses: Optional[List[Mock]] = None, logins: Optional[List[Mock]] = None) -> Mock:
    """
    Mock ``requests.Session``.

    ``post`` serves login responses, ``request`` serves API responses in order.
    """
    http = Mock(spec=requests.Session)
    http.post.side_effect = list(logins) if logins is not None else None
    if logins is None:
        http.post.return_value = login_response()
    if responses is not None:
        http.request.side_effect = list(responses)
    return http


class RecordingEvent:
    """Cancellation event that records wait timeouts instead of sleeping."""

    def __init__(self, cancel_after: Optional[int] = None):
        self.waits: List[float] = []
        self.cancel_after = cancel_after
        self._set = False

    def is_set(self) -> bool:
        return self._set

    def set(self) -> None:
        self._set = True

    def wait(self, timeout: Optional[float] = None) -> bool:
        self.waits.append(timeout)
        if self.cancel_after is not None and len(self.waits) >= self.cancel_after:
            self._set = True
        return self._set


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def credentials():
    """Credentials for a test cluster."""
    return Credentials(username="root@pam", password="secret", url="https://pve.test:8006")


@pytest.fixture
def identity_cipher():
    """Cipher with a fixed identity so tests do not depend on the host."""
    return CredentialCipher(IdentityKeyManager(identity=TEST_IDENTITY))


@pytest.fixture
def cluster_rows():
    """Sample ``/cluster/resources`` rows."""
    return [
        {"id": "node/pve1", "type": "node", "node": "pve1", "status": "online", "maxcpu": 8},
        {
            "id": "qemu/100",
            "type": "qemu",
            "node": "pve1",
            "vmid": 100,
            "name": "web",
            "status": "running",
            "cpu": 0.25,
            "maxcpu": 2,
            "mem": 1073741824,
            "maxmem": 2147483648,
            "uptime": 3600,
        },
        {
            "id": "qemu/101",
            "type": "qemu",
            "node": "pve2",
            "vmid": 101,
            "name": "db",
            "status": "stopped",
            "maxmem": 4294967296,
        },
        {
            "id": "lxc/200",
            "type": "lxc",
            "node": "pve1",
            "vmid": 200,
            "name": "cache",
            "status": "running",
            "cpu": 0.01,
        },
        {"id": "storage/pve1/local", "type": "storage", "node": "pve1", "status": "available"},
        {"id": "sdn/pve1/zone", "type": "sdn", "node": "pve1"},
    ]
