"""Ticket based authentication against the Proxmox VE API."""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from ..models import Credentials
from .errors import APIConnectionError, AuthenticationError, UnexpectedResponseError

logger = logging.getLogger(__name__)

API_PREFIX = "/api2/json"
TICKET_PATH = "/access/ticket"
AUTH_COOKIE_NAME = "PVEAuthCookie"
CSRF_HEADER = "CSRFPreventionToken"

# Methods that do not need the anti-forgery header
SAFE_METHODS = frozenset({"GET", "HEAD"})


@dataclass(frozen=True)
class Session:
    """An authenticated session: the login ticket and its CSRF token."""

    endpoint: str
    principal: str
    ticket: str
    csrf_token: str
    issued_at: float = field(default_factory=time.time)

    def auth_headers(self, method: str) -> Dict[str, str]:
        """Headers that authenticate a request made with ``method``."""
        headers = {"Cookie": f"{AUTH_COOKIE_NAME}={self.ticket}"}
        if method.upper() not in SAFE_METHODS:
            headers[CSRF_HEADER] = self.csrf_token
        return headers

    def __repr__(self) -> str:
        return f"Session(endpoint={self.endpoint!r}, principal={self.principal!r}, ticket='***')"


def api_url(endpoint: str, path: str) -> str:
    """Join the server endpoint, the API prefix and a resource path."""
    return f"{endpoint.rstrip('/')}{API_PREFIX}{path}"


class SessionManager:
    """
    Holds the session of one client and creates it on demand.

    The session is created lazily by the first request that needs one and is
    never refreshed proactively. The client calls :meth:`invalidate` when the
    server rejects the ticket.

    The manager lock is held across the login request, so callers racing on
    an unauthenticated client share a single login instead of each posting
    their own. Besides the resource cache refresh this is the only lock held
    over network I/O, and only until the first ticket is issued.
    """

    def __init__(
        self,
        credentials: Credentials,
        http: requests.Session,
        timeout: float = 30.0,
    ):
        """
        Initialize the session manager.

        Args:
            credentials: Principal, password and endpoint to log in with
            http: requests session shared with the owning client
            timeout: Seconds to wait for the login request
        """
        self.credentials = credentials
        self.http = http
        self.timeout = timeout
        self._session: Optional[Session] = None
        self._lock = threading.Lock()

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def get_session(self) -> Session:
        """Return the current session, logging in first if there is none."""
        with self._lock:
            if self._session is None:
                self._session = self._login()
            return self._session

    def authenticate(self) -> Session:
        """
        Log in and replace the current session.

        Returns:
            The new session

        Raises:
            APIConnectionError: If the server could not be reached
            AuthenticationError: If the server refused the credentials
            UnexpectedResponseError: If the login response is malformed
        """
        with self._lock:
            self._session = self._login()
            return self._session

    def invalidate(self, stale: Optional[Session] = None) -> None:
        """
        Forget the current session.

        When ``stale`` is given the session is only dropped if it is still the
        current one, so a thread that already logged in again is not undone.
        """
        with self._lock:
            if stale is None or self._session is stale:
                self._session = None

    def _login(self) -> Session:
        endpoint = self.credentials.url
        url = api_url(endpoint, TICKET_PATH)
        logger.debug(f"Authenticating {self.credentials.username} against {endpoint}")

        try:
            response = self.http.post(
                url,
                data={
                    "username": self.credentials.username,
                    "password": self.credentials.password,
                },
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise APIConnectionError("authentication request failed", e) from e

        if response.status_code != 200:
            raise AuthenticationError(
                "authentication failed", status_code=response.status_code, body=response.text
            )

        try:
            payload: Any = response.json()
        except ValueError as e:
            raise UnexpectedResponseError("failed to parse auth response", e) from e

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict) or not data.get("ticket"):
            raise UnexpectedResponseError("auth response did not contain a ticket")

        logger.debug(f"Authenticated {self.credentials.username}")
        return Session(
            endpoint=endpoint,
            principal=self.credentials.username,
            ticket=data["ticket"],
            csrf_token=data.get("CSRFPreventionToken", ""),
        )
