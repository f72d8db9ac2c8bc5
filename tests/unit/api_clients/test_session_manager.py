"""Tests for ticket authentication."""

import threading
import time

import pytest
import requests

from prox.api_clients import (
    APIConnectionError,
    AuthenticationError,
    Session,
    SessionManager,
    UnexpectedResponseError,
)
from prox.api_clients.session import api_url
from tests.fixtures.proxmox import login_response, make_http, make_response


class TestSession:
    """Test cases for the Session value."""

    def setup_method(self):
        self.session = Session(
            endpoint="https://pve.test:8006",
            principal="root@pam",
            ticket="TICKET",
            csrf_token="CSRF",
        )

    def test_get_sends_cookie_only(self):
        assert self.session.auth_headers("GET") == {"Cookie": "PVEAuthCookie=TICKET"}

    def test_mutating_methods_send_csrf_token(self):
        for method in ("POST", "PUT", "DELETE", "post"):
            headers = self.session.auth_headers(method)
            assert headers["Cookie"] == "PVEAuthCookie=TICKET"
            assert headers["CSRFPreventionToken"] == "CSRF"

    def test_repr_masks_ticket(self):
        assert "TICKET" not in repr(self.session)

    def test_api_url(self):
        assert api_url("https://pve:8006/", "/version") == "https://pve:8006/api2/json/version"


class TestSessionManager:
    """Test cases for SessionManager."""

    @pytest.fixture(autouse=True)
    def setup(self, credentials):
        self.credentials = credentials

    def test_login_posts_form_credentials(self):
        http = make_http(logins=[login_response("T1", "C1")])
        manager = SessionManager(self.credentials, http, timeout=12)

        session = manager.authenticate()

        http.post.assert_called_once_with(
            "https://pve.test:8006/api2/json/access/ticket",
            data={"username": "root@pam", "password": "secret"},
            timeout=12,
        )
        assert session.ticket == "T1"
        assert session.csrf_token == "C1"
        assert session.principal == "root@pam"

    def test_get_session_logs_in_lazily_once(self):
        http = make_http()
        manager = SessionManager(self.credentials, http)

        assert not manager.is_authenticated
        first = manager.get_session()
        second = manager.get_session()

        assert first is second
        assert http.post.call_count == 1

    def test_concurrent_callers_share_one_login(self):
        """Threads racing on an unauthenticated manager trigger a single login."""
        http = make_http()

        def slow_login(*args, **kwargs):
            time.sleep(0.05)
            return login_response("SHARED")

        http.post.side_effect = slow_login
        manager = SessionManager(self.credentials, http)
        workers = 6
        barrier = threading.Barrier(workers, timeout=5)
        sessions = []
        sessions_lock = threading.Lock()

        def worker():
            barrier.wait()
            session = manager.get_session()
            with sessions_lock:
                sessions.append(session)

        threads = [threading.Thread(target=worker) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert http.post.call_count == 1
        assert len(sessions) == workers
        assert all(s is sessions[0] for s in sessions)

    def test_invalidate_only_drops_matching_session(self):
        http = make_http(logins=[login_response("T1"), login_response("T2")])
        manager = SessionManager(self.credentials, http)
        old = manager.get_session()
        new = manager.authenticate()

        manager.invalidate(old)
        assert manager.session is new

        manager.invalidate(new)
        assert manager.session is None

    def test_rejected_credentials(self):
        http = make_http(logins=[make_response(401, body="authentication failure")])
        manager = SessionManager(self.credentials, http)

        with pytest.raises(AuthenticationError) as exc_info:
            manager.authenticate()

        assert exc_info.value.status_code == 401
        assert str(exc_info.value).startswith("authentication failed")
        assert not manager.is_authenticated

    def test_transport_failure(self):
        http = make_http()
        http.post.side_effect = requests.exceptions.ConnectionError("refused")
        manager = SessionManager(self.credentials, http)

        with pytest.raises(APIConnectionError, match="authentication request failed"):
            manager.authenticate()

    def test_unparseable_response(self):
        http = make_http(logins=[make_response(200, body="<html>")])
        manager = SessionManager(self.credentials, http)

        with pytest.raises(UnexpectedResponseError, match="failed to parse auth response"):
            manager.authenticate()

    def test_response_without_ticket(self):
        http = make_http(logins=[make_response(200, {"username": "root@pam"})])
        manager = SessionManager(self.credentials, http)

        with pytest.raises(UnexpectedResponseError):
            manager.authenticate()

    def test_password_never_logged(self, caplog):
        caplog.set_level("DEBUG", logger="prox")
        http = make_http()
        manager = SessionManager(self.credentials, http)
        manager.authenticate()

        assert "secret" not in caplog.text
