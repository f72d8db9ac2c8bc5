"""Data models shared by the Proxmox client runtime."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

# Proxmox reports finished tasks with status "stopped"; "OK" is the only
# exit status that means success.
TASK_STATE_RUNNING = "running"
TASK_STATE_STOPPED = "stopped"
TASK_EXIT_OK = "OK"

STATUS_RUNNING = "running"

# Placeholder used wherever a live network address could not be determined
ADDRESS_UNAVAILABLE = "N/A"


class ResourceKind(str, Enum):
    """Kinds of rows reported by the cluster inventory endpoint."""

    NODE = "node"
    QEMU = "qemu"
    LXC = "lxc"
    STORAGE = "storage"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ResourceKind":
        """Map an API type string onto a kind, falling back to OTHER."""
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER

    @property
    def is_guest(self) -> bool:
        """True for VMs and containers."""
        return self in (ResourceKind.QEMU, ResourceKind.LXC)


def _as_int(value: Any, default: int = 0) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class Resource:
    """
    One row of the cluster inventory.

    Rows are immutable; enrichment produces a copy with ``address`` filled in
    rather than patching the cached snapshot.
    """

    id: str
    kind: ResourceKind
    node: str
    vmid: Optional[int] = None
    name: Optional[str] = None
    status: Optional[str] = None
    cpu: Optional[float] = None
    max_cpu: Optional[int] = None
    mem: int = 0
    max_mem: int = 0
    disk: int = 0
    max_disk: int = 0
    uptime: int = 0
    address: Optional[str] = None

    @classmethod
    def from_api(cls, row: Dict[str, Any]) -> "Resource":
        """
        Build a resource from a ``/cluster/resources`` row.

        Args:
            row: Raw dictionary from the API response

        Returns:
            Resource instance
        """
        vmid = row.get("vmid")
        max_cpu = row.get("maxcpu")
        return cls(
            id=str(row.get("id", "")),
            kind=ResourceKind.parse(row.get("type")),
            node=str(row.get("node", "")),
            vmid=_as_int(vmid) if vmid is not None else None,
            name=row.get("name"),
            status=row.get("status"),
            cpu=_as_float(row.get("cpu")),
            max_cpu=_as_int(max_cpu) if max_cpu is not None else None,
            mem=_as_int(row.get("mem")),
            max_mem=_as_int(row.get("maxmem")),
            disk=_as_int(row.get("disk")),
            max_disk=_as_int(row.get("maxdisk")),
            uptime=_as_int(row.get("uptime")),
        )

    @property
    def is_running(self) -> bool:
        return self.status == STATUS_RUNNING

    @property
    def cpu_percent(self) -> int:
        """CPU usage as an integer percentage."""
        if self.cpu is None:
            return 0
        return int(self.cpu * 100)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "id": self.id,
            "type": self.kind.value,
            "node": self.node,
            "vmid": self.vmid,
            "name": self.name,
            "status": self.status,
            "cpu": self.cpu,
            "maxcpu": self.max_cpu,
            "mem": self.mem,
            "maxmem": self.max_mem,
            "disk": self.disk,
            "maxdisk": self.max_disk,
            "uptime": self.uptime,
            "address": self.address,
        }


@dataclass(frozen=True)
class TaskHandle:
    """Reference to a server-side task returned by a mutating call."""

    upid: str
    node: str

    def __str__(self) -> str:
        return self.upid


@dataclass(frozen=True)
class TaskStatus:
    """Snapshot of a task as reported by the task status endpoint."""

    upid: str
    node: str
    status: str
    exit_status: Optional[str] = None
    type: Optional[str] = None
    pid: Optional[int] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any], handle: TaskHandle) -> "TaskStatus":
        pid = data.get("pid")
        return cls(
            upid=data.get("upid") or handle.upid,
            node=data.get("node") or handle.node,
            status=str(data.get("status", "")),
            exit_status=data.get("exitstatus"),
            type=data.get("type"),
            pid=_as_int(pid) if pid is not None else None,
        )

    @property
    def is_stopped(self) -> bool:
        return self.status == TASK_STATE_STOPPED

    @property
    def succeeded(self) -> bool:
        return self.is_stopped and self.exit_status == TASK_EXIT_OK


@dataclass(frozen=True)
class NodeInfo:
    """A cluster node as reported by ``/nodes``."""

    node: str
    status: Optional[str] = None
    type: Optional[str] = None
    id: Optional[str] = None
    cpu: Optional[float] = None
    max_cpu: Optional[int] = None
    mem: int = 0
    max_mem: int = 0
    uptime: int = 0

    @classmethod
    def from_api(cls, row: Dict[str, Any]) -> "NodeInfo":
        max_cpu = row.get("maxcpu")
        return cls(
            node=str(row.get("node", "")),
            status=row.get("status"),
            type=row.get("type"),
            id=row.get("id"),
            cpu=_as_float(row.get("cpu")),
            max_cpu=_as_int(max_cpu) if max_cpu is not None else None,
            mem=_as_int(row.get("mem")),
            max_mem=_as_int(row.get("maxmem")),
            uptime=_as_int(row.get("uptime")),
        )

    @property
    def is_online(self) -> bool:
        return self.status == "online"

    @property
    def cpu_percent(self) -> int:
        if self.cpu is None:
            return 0
        return int(self.cpu * 100)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node": self.node,
            "status": self.status,
            "cpu": self.cpu,
            "maxcpu": self.max_cpu,
            "mem": self.mem,
            "maxmem": self.max_mem,
            "uptime": self.uptime,
        }


@dataclass(frozen=True)
class GuestDetails:
    """
    Inventory row of one guest merged with its live config and status.

    ``address`` is None for guests that are not running.
    """

    resource: Resource
    config: Dict[str, Any]
    status: Dict[str, Any]
    address: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.resource.vmid,
            "name": self.resource.name,
            "type": self.resource.kind.value,
            "node": self.resource.node,
            "address": self.address,
            "config": self.config,
            "status": self.status,
        }


@dataclass(frozen=True)
class VersionInfo:
    """Proxmox VE version information."""

    version: str = ""
    release: str = ""
    repoid: str = ""


@dataclass(frozen=True)
class Credentials:
    """Principal, secret and endpoint supplied by the profile store."""

    username: str
    password: str
    url: str

    @property
    def cache_key(self) -> str:
        """Key identifying one authenticated client."""
        return f"{self.username}@{self.url}"

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***', url={self.url!r})"
