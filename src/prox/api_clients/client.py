"""Typed wrapper over the Proxmox VE REST API."""

import logging
from typing import Any, Dict, List, Optional, Union

import requests
import urllib3
from requests.adapters import HTTPAdapter

from ..cache.resource_cache import DEFAULT_RESOURCES_TTL, ResourceCache
from ..models import Credentials, NodeInfo, Resource, ResourceKind, TaskHandle, TaskStatus, VersionInfo
from .errors import (
    APIConnectionError,
    APIRequestError,
    AuthenticationError,
    UnexpectedResponseError,
)
from .session import Session, SessionManager, api_url

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_POOL_SIZE = 10

GUEST_KINDS = (ResourceKind.QEMU, ResourceKind.LXC)


def build_http_session(
    verify_tls: bool = False,
    ca_bundle: Optional[str] = None,
    pool_size: int = DEFAULT_POOL_SIZE,
) -> requests.Session:
    """
    Create the pooled requests session used by a client.

    Proxmox installations commonly run with a self-signed certificate, so
    verification is off unless ``verify_tls`` or ``ca_bundle`` is given.
    """
    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
    session.mount("https://", adapter)
    session.mount("http://", adapter)

    verify: Union[bool, str]
    if ca_bundle:
        verify = ca_bundle
    else:
        verify = verify_tls
    session.verify = verify

    if verify is False:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    session.headers.update({"Accept": "application/json"})
    return session


class ProxmoxClient:
    """
    Client for one Proxmox VE endpoint authenticated as one principal.

    Every request goes through :meth:`_request`, which logs in lazily, sends
    the ticket cookie (and the CSRF header on mutating methods) and unwraps
    the ``{"data": ...}`` envelope. Mutating calls return a
    :class:`TaskHandle` for the server-side task they started.
    """

    def __init__(
        self,
        credentials: Credentials,
        verify_tls: bool = False,
        ca_bundle: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        pool_size: int = DEFAULT_POOL_SIZE,
        resources_ttl: float = DEFAULT_RESOURCES_TTL,
        reauthenticate_on_401: bool = True,
        http: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            credentials: Principal, password and endpoint URL
            verify_tls: Verify the server certificate
            ca_bundle: Path to a CA bundle; implies verification
            timeout: Per-request timeout in seconds
            pool_size: Connections kept per host
            resources_ttl: Seconds the cluster inventory stays cached
            reauthenticate_on_401: Log in again and retry once when the
                server rejects the ticket
            http: Pre-built requests session, mainly for tests
        """
        self.credentials = credentials
        self.timeout = timeout
        self.reauthenticate_on_401 = reauthenticate_on_401
        self.http = http or build_http_session(verify_tls, ca_bundle, pool_size)
        self.sessions = SessionManager(credentials, self.http, timeout=timeout)
        self.resources = ResourceCache(self.fetch_cluster_resources, ttl=resources_ttl)

    @property
    def endpoint(self) -> str:
        return self.credentials.url

    @property
    def principal(self) -> str:
        return self.credentials.username

    def authenticate(self) -> Session:
        """Log in now instead of on the first request."""
        return self.sessions.authenticate()

    def close(self) -> None:
        """Release pooled connections."""
        self.http.close()

    # Transport

    def _send(
        self,
        method: str,
        path: str,
        session: Session,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        try:
            return self.http.request(
                method,
                api_url(self.endpoint, path),
                params=params,
                json=body,
                headers=session.auth_headers(method),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise APIConnectionError(f"{method} {path} request failed", e) from e

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Perform an authenticated request and return the ``data`` payload.

        Raises:
            APIConnectionError: On transport failures
            AuthenticationError: If the ticket is rejected (after one re-login
                when enabled)
            APIRequestError: On any other non-2xx status
            UnexpectedResponseError: If the body is not the JSON envelope
        """
        session = self.sessions.get_session()
        response = self._send(method, path, session, params, body)

        if response.status_code == 401 and self.reauthenticate_on_401:
            logger.debug(f"{method} {path} returned 401, re-authenticating")
            self.sessions.invalidate(session)
            session = self.sessions.get_session()
            response = self._send(method, path, session, params, body)

        if response.status_code == 401:
            raise AuthenticationError(
                "request was not authorized", status_code=401, body=response.text
            )
        if not 200 <= response.status_code < 300:
            raise APIRequestError(
                f"{method} {path} failed", status_code=response.status_code, body=response.text
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise UnexpectedResponseError(f"failed to parse response of {method} {path}", e) from e

        if not isinstance(payload, dict) or "data" not in payload:
            raise UnexpectedResponseError(f"response of {method} {path} has no data envelope")
        return payload["data"]

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._request("GET", path, params=params)

    def _get_dict(self, path: str) -> Dict[str, Any]:
        data = self._get(path)
        if not isinstance(data, dict):
            raise UnexpectedResponseError(f"unexpected response format for {path}")
        return data

    def _task(self, method: str, path: str, node: str, body: Optional[Dict[str, Any]] = None) -> TaskHandle:
        data = self._request(method, path, body=body)
        if not isinstance(data, str) or not data:
            raise UnexpectedResponseError(f"{method} {path} did not return a task id")
        logger.debug(f"Started task {data}")
        return TaskHandle(upid=data, node=node)

    @staticmethod
    def _guest_path(kind: ResourceKind, node: str, vmid: int) -> str:
        if kind not in GUEST_KINDS:
            raise ValueError(f"not a guest kind: {kind}")
        return f"/nodes/{node}/{kind.value}/{vmid}"

    # Cluster

    def get_version(self) -> VersionInfo:
        data = self._get_dict("/version")
        return VersionInfo(
            version=str(data.get("version", "")),
            release=str(data.get("release", "")),
            repoid=str(data.get("repoid", "")),
        )

    def get_nodes(self) -> List[NodeInfo]:
        data = self._get("/nodes")
        if not isinstance(data, list):
            raise UnexpectedResponseError("unexpected response format for /nodes")
        nodes = [NodeInfo.from_api(row) for row in data if isinstance(row, dict)]
        return sorted(nodes, key=lambda n: n.node)

    def fetch_cluster_resources(self) -> List[Dict[str, Any]]:
        """Fetch the raw inventory rows, bypassing the cache."""
        data = self._get("/cluster/resources")
        if not isinstance(data, list):
            raise UnexpectedResponseError("unexpected response format for /cluster/resources")
        return [row for row in data if isinstance(row, dict)]

    def get_cluster_resources(self) -> List[Resource]:
        """Return the cluster inventory through the resource cache."""
        return self.resources.get_resources()

    def invalidate_resources(self) -> None:
        self.resources.invalidate()

    def find_vm_node(self, vmid: int) -> str:
        return self.resources.find_vm_node(vmid)

    def get_next_vmid(self) -> int:
        data = self._get("/cluster/nextid")
        try:
            return int(data)
        except (TypeError, ValueError) as e:
            raise UnexpectedResponseError("unexpected response format for /cluster/nextid", e) from e

    # Guest details

    def get_guest_config(self, kind: ResourceKind, node: str, vmid: int) -> Dict[str, Any]:
        return self._get_dict(f"{self._guest_path(kind, node, vmid)}/config")

    def get_guest_status(self, kind: ResourceKind, node: str, vmid: int) -> Dict[str, Any]:
        return self._get_dict(f"{self._guest_path(kind, node, vmid)}/status/current")

    def get_agent_interfaces(self, kind: ResourceKind, node: str, vmid: int) -> Any:
        """Query the guest agent for its network interfaces."""
        return self._get(f"{self._guest_path(kind, node, vmid)}/agent/network-get-interfaces")

    def get_interfaces(self, kind: ResourceKind, node: str, vmid: int) -> Any:
        return self._get(f"{self._guest_path(kind, node, vmid)}/interfaces")

    def get_vm_config(self, node: str, vmid: int) -> Dict[str, Any]:
        return self.get_guest_config(ResourceKind.QEMU, node, vmid)

    def get_vm_status(self, node: str, vmid: int) -> Dict[str, Any]:
        return self.get_guest_status(ResourceKind.QEMU, node, vmid)

    def get_container_config(self, node: str, vmid: int) -> Dict[str, Any]:
        return self.get_guest_config(ResourceKind.LXC, node, vmid)

    def get_container_status(self, node: str, vmid: int) -> Dict[str, Any]:
        return self.get_guest_status(ResourceKind.LXC, node, vmid)

    # Mutations

    def start_guest(self, kind: ResourceKind, node: str, vmid: int) -> TaskHandle:
        return self._task("POST", f"{self._guest_path(kind, node, vmid)}/status/start", node)

    def shutdown_guest(self, kind: ResourceKind, node: str, vmid: int) -> TaskHandle:
        return self._task("POST", f"{self._guest_path(kind, node, vmid)}/status/shutdown", node)

    def delete_guest(self, kind: ResourceKind, node: str, vmid: int) -> TaskHandle:
        return self._task("DELETE", self._guest_path(kind, node, vmid), node)

    def start_vm(self, node: str, vmid: int) -> TaskHandle:
        return self.start_guest(ResourceKind.QEMU, node, vmid)

    def stop_vm(self, node: str, vmid: int) -> TaskHandle:
        return self.shutdown_guest(ResourceKind.QEMU, node, vmid)

    def delete_vm(self, node: str, vmid: int) -> TaskHandle:
        return self.delete_guest(ResourceKind.QEMU, node, vmid)

    def start_container(self, node: str, vmid: int) -> TaskHandle:
        return self.start_guest(ResourceKind.LXC, node, vmid)

    def stop_container(self, node: str, vmid: int) -> TaskHandle:
        return self.shutdown_guest(ResourceKind.LXC, node, vmid)

    def delete_container(self, node: str, vmid: int) -> TaskHandle:
        return self.delete_guest(ResourceKind.LXC, node, vmid)

    def clone_vm(self, node: str, vmid: int, newid: int, name: str = "", full: bool = True) -> TaskHandle:
        """
        Clone a VM.

        Args:
            node: Node hosting the source VM
            vmid: Source VM ID
            newid: ID for the clone
            name: Name for the clone
            full: Full clone instead of a linked clone
        """
        body: Dict[str, Any] = {"newid": newid, "full": 1 if full else 0}
        if name:
            body["name"] = name
        return self._task("POST", f"{self._guest_path(ResourceKind.QEMU, node, vmid)}/clone", node, body)

    def migrate_vm(
        self,
        node: str,
        vmid: int,
        target_node: str,
        online: bool = False,
        with_local_disks: bool = False,
    ) -> TaskHandle:
        body: Dict[str, Any] = {"target": target_node}
        if online:
            body["online"] = 1
        if with_local_disks:
            body["with-local-disks"] = 1
        return self._task(
            "POST", f"{self._guest_path(ResourceKind.QEMU, node, vmid)}/migrate", node, body
        )

    # Tasks

    def get_task_status(self, handle: TaskHandle) -> TaskStatus:
        data = self._get_dict(f"/nodes/{handle.node}/tasks/{handle.upid}/status")
        return TaskStatus.from_api(data, handle)
