"""TTL-bound cache for the cluster resource inventory."""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..api_clients.errors import ResourceNotFoundError
from ..models import Resource, ResourceKind
from .entry import CacheEntry
from .errors import CacheRefreshError

logger = logging.getLogger(__name__)

DEFAULT_RESOURCES_TTL = 10.0

FETCH_ERROR_MESSAGE = "failed to get cluster resources"


class ResourceCache:
    """
    Caches the ``/cluster/resources`` snapshot of one client.

    The snapshot is an immutable tuple of :class:`Resource` rows that is
    replaced as a whole on refresh. Callers always receive either the
    previous snapshot or the new one, never a mix.
    """

    def __init__(
        self,
        fetch_rows: Callable[[], Iterable[Dict[str, Any]]],
        ttl: float = DEFAULT_RESOURCES_TTL,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize the resource cache.

        Args:
            fetch_rows: Callable returning the raw inventory rows
            ttl: Seconds a snapshot stays fresh
            clock: Optional monotonic time source for tests
        """
        self._fetch_rows = fetch_rows
        kwargs = {"clock": clock} if clock is not None else {}
        self._entry: CacheEntry[Tuple[Resource, ...]] = CacheEntry(
            self._load_snapshot, ttl=ttl, name="cluster-resources", **kwargs
        )

    @property
    def ttl(self) -> float:
        return self._entry.ttl  # type: ignore[return-value]

    def _load_snapshot(self) -> Tuple[Resource, ...]:
        try:
            rows = self._fetch_rows()
            snapshot = tuple(Resource.from_api(row) for row in rows)
        except Exception as e:
            logger.debug(f"Cluster resource fetch failed: {e}")
            raise CacheRefreshError(FETCH_ERROR_MESSAGE, e) from e

        logger.debug(f"Cached {len(snapshot)} cluster resources")
        return snapshot

    def get_resources(self) -> List[Resource]:
        """
        Return the cluster inventory, fetching it when the snapshot is stale.

        Returns:
            List of resources (a fresh list; the snapshot itself is shared)

        Raises:
            CacheRefreshError: If the fetch failed; the stale snapshot is kept
        """
        return list(self._entry.get())

    def invalidate(self) -> None:
        """Force the next get_resources() call to fetch."""
        self._entry.invalidate()

    def is_fresh(self) -> bool:
        return self._entry.is_fresh()

    def get_stats(self) -> Dict[str, int]:
        return self._entry.get_stats()

    def find_vm_node(self, vmid: int) -> str:
        """
        Find the node hosting a VM or container.

        Raises:
            ResourceNotFoundError: If no guest has the given ID
        """
        for resource in self.get_resources():
            if resource.kind.is_guest and resource.vmid == vmid:
                return resource.node
        raise ResourceNotFoundError(f"VM {vmid} not found in cluster")

    def find_resource(self, name_or_id: str, kind: Optional[ResourceKind] = None) -> Resource:
        """
        Resolve a guest by numeric ID or by exact name.

        A numeric argument is first matched against IDs and only then against
        names, so a guest literally named "105" is still reachable when no
        guest has ID 105.

        Args:
            name_or_id: VM/container ID or name
            kind: Restrict the search to one kind (qemu or lxc)

        Raises:
            ResourceNotFoundError: If nothing matches
        """
        candidates = [
            r
            for r in self.get_resources()
            if r.kind.is_guest and (kind is None or r.kind == kind)
        ]

        value = str(name_or_id).strip()
        if value.isdigit():
            vmid = int(value)
            for resource in candidates:
                if resource.vmid == vmid:
                    return resource

        for resource in candidates:
            if resource.name == value:
                return resource

        label = "container" if kind == ResourceKind.LXC else "VM"
        raise ResourceNotFoundError(f"{label} '{value}' not found")
