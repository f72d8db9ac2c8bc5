"""Concurrent resolution of live network addresses for inventory rows."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
from typing import Any, Dict, List

from ..models import ADDRESS_UNAVAILABLE, Resource

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 10


class AddressEnricher:
    """
    Fills in ``Resource.address`` for running VMs and containers.

    Lookups run on a thread pool sized ``min(max_workers, jobs)``. A lookup
    that fails or finds nothing yields ``"N/A"``; it never fails the batch.
    """

    def __init__(self, resolver: Any, max_workers: int = DEFAULT_MAX_WORKERS, lookup_retries: int = 0):
        """
        Initialize the enricher.

        Args:
            resolver: Object with ``resolve(kind, node, vmid) -> str``
            max_workers: Upper bound on concurrent lookups
            lookup_retries: Extra attempts per item after a failed lookup
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.resolver = resolver
        self.max_workers = max_workers
        self.lookup_retries = max(0, lookup_retries)

    @classmethod
    def from_config(cls, resolver: Any, config: Any) -> "AddressEnricher":
        return cls(
            resolver,
            max_workers=int(config.get("enrichment.max_workers", DEFAULT_MAX_WORKERS)),
            lookup_retries=int(config.get("enrichment.lookup_retries", 0)),
        )

    @staticmethod
    def _needs_address(resource: Resource) -> bool:
        return resource.is_running and resource.kind.is_guest and resource.vmid is not None

    def _lookup(self, resource: Resource) -> str:
        for attempt in range(self.lookup_retries + 1):
            try:
                address = self.resolver.resolve(resource.kind, resource.node, resource.vmid)
            except Exception as e:
                logger.debug(f"Address lookup for {resource.id} failed (attempt {attempt + 1}): {e}")
                continue
            if address and address != ADDRESS_UNAVAILABLE:
                return address
        return ADDRESS_UNAVAILABLE

    def enrich(self, resources: List[Resource]) -> List[Resource]:
        """
        Resolve addresses for the running guests in ``resources``.

        The list is updated in place: each enriched row is replaced by a copy
        carrying the address, at the same index. Rows that are not running
        guests are left untouched.

        Args:
            resources: Inventory rows, typically a filtered listing

        Returns:
            The same list object
        """
        jobs = [(index, r) for index, r in enumerate(resources) if self._needs_address(r)]
        if not jobs:
            return resources

        workers = min(self.max_workers, len(jobs))
        logger.debug(f"Resolving addresses for {len(jobs)} guests with {workers} workers")

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="prox-enrich") as executor:
            future_to_index: Dict[Any, int] = {
                executor.submit(self._lookup, resource): index for index, resource in jobs
            }
            for future in as_completed(future_to_index):
                index = future_to_index[future]
                resources[index] = replace(resources[index], address=future.result())

        return resources
