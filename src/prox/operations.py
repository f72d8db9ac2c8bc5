"""High level VM and container operations built on the client runtime."""

import logging
import threading
from typing import List, Optional

from .api_clients.client import ProxmoxClient
from .api_clients.errors import ResourceNotFoundError
from .api_clients.network import AddressResolver
from .models import GuestDetails, Resource, ResourceKind, TaskHandle, TaskStatus
from .utils.enrichment import AddressEnricher
from .utils.task_monitor import TaskMonitor
from .utils.validators import ValidationError, validate_node_name, validate_vm_name, validate_vmid

logger = logging.getLogger(__name__)


class ResourceOperations:
    """
    Lists and changes guests of one cluster.

    Every mutating call waits for its task to stop successfully and then
    invalidates the resource cache, so the next listing reflects the change.
    """

    def __init__(
        self,
        client: ProxmoxClient,
        monitor: Optional[TaskMonitor] = None,
        enricher: Optional[AddressEnricher] = None,
        task_timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        resolver: Optional[AddressResolver] = None,
    ):
        """
        Initialize operations.

        Args:
            client: Client for the target cluster
            monitor: Task monitor; one with the default policy when None
            enricher: Address enricher used when listings ask for addresses
            task_timeout: Overall limit for each task wait
            cancel_event: Event that aborts task waits when set
            resolver: Address resolver for describe; built on the client when None
        """
        self.client = client
        self.monitor = monitor or TaskMonitor(client)
        self.enricher = enricher
        self.task_timeout = task_timeout
        self.cancel_event = cancel_event
        self.resolver = resolver or AddressResolver(client)

    # Listings

    def _list(
        self,
        kind: ResourceKind,
        node: Optional[str],
        running_only: bool,
        show_addresses: bool,
    ) -> List[Resource]:
        resources = [
            r
            for r in self.client.get_cluster_resources()
            if r.kind == kind
            and (node is None or r.node == node)
            and (not running_only or r.is_running)
        ]
        resources.sort(key=lambda r: (r.node, r.vmid or 0))

        if show_addresses and self.enricher is not None:
            self.enricher.enrich(resources)
        return resources

    def list_vms(
        self, node: Optional[str] = None, running_only: bool = False, show_addresses: bool = False
    ) -> List[Resource]:
        return self._list(ResourceKind.QEMU, node, running_only, show_addresses)

    def list_containers(
        self, node: Optional[str] = None, running_only: bool = False, show_addresses: bool = False
    ) -> List[Resource]:
        return self._list(ResourceKind.LXC, node, running_only, show_addresses)

    def find(self, name_or_id: str, kind: ResourceKind) -> Resource:
        return self.client.resources.find_resource(name_or_id, kind)

    def describe(self, name_or_id: str, kind: ResourceKind = ResourceKind.QEMU) -> GuestDetails:
        """
        Collect the config, live status and address of one guest.

        The address is only looked up for running guests.

        Raises:
            ResourceNotFoundError: If no guest matches
        """
        resource = self.find(name_or_id, kind)
        config = self.client.get_guest_config(kind, resource.node, resource.vmid)
        status = self.client.get_guest_status(kind, resource.node, resource.vmid)

        address = None
        if status.get("status", resource.status) == "running":
            address = self.resolver.resolve(kind, resource.node, resource.vmid)
        return GuestDetails(resource=resource, config=config, status=status, address=address)

    # Mutations

    def _complete(self, handle: TaskHandle, description: str) -> TaskStatus:
        try:
            return self.monitor.wait_for_task(
                handle,
                cancel_event=self.cancel_event,
                timeout=self.task_timeout,
                description=description,
            )
        finally:
            # The task may have changed state even if waiting failed
            self.client.invalidate_resources()

    def start(self, name_or_id: str, kind: ResourceKind = ResourceKind.QEMU) -> TaskStatus:
        resource = self.find(name_or_id, kind)
        logger.info(f"Starting {resource.kind.value} {resource.vmid} on {resource.node}")
        handle = self.client.start_guest(kind, resource.node, resource.vmid)  # type: ignore[arg-type]
        return self._complete(handle, f"Starting {resource.name or resource.vmid}")

    def shutdown(self, name_or_id: str, kind: ResourceKind = ResourceKind.QEMU) -> TaskStatus:
        resource = self.find(name_or_id, kind)
        logger.info(f"Shutting down {resource.kind.value} {resource.vmid} on {resource.node}")
        handle = self.client.shutdown_guest(kind, resource.node, resource.vmid)  # type: ignore[arg-type]
        return self._complete(handle, f"Stopping {resource.name or resource.vmid}")

    def delete(self, name_or_id: str, kind: ResourceKind = ResourceKind.QEMU) -> TaskStatus:
        """
        Delete a stopped guest.

        Raises:
            ValidationError: If the guest is still running
        """
        resource = self.find(name_or_id, kind)
        if resource.is_running:
            raise ValidationError(
                f"{resource.name or resource.vmid} is running; stop it before deleting"
            )
        logger.info(f"Deleting {resource.kind.value} {resource.vmid} on {resource.node}")
        handle = self.client.delete_guest(kind, resource.node, resource.vmid)  # type: ignore[arg-type]
        return self._complete(handle, f"Deleting {resource.name or resource.vmid}")

    def clone_vm(
        self,
        source: str,
        new_id: Optional[int] = None,
        name: str = "",
        full: bool = True,
    ) -> TaskStatus:
        """
        Clone a VM.

        Args:
            source: Source VM name or ID
            new_id: ID for the clone; the next free ID when None
            name: Name for the clone
            full: Full clone instead of a linked clone

        Raises:
            ValidationError: If the ID is taken or the inputs are invalid
        """
        resource = self.find(source, ResourceKind.QEMU)
        if name:
            validate_vm_name(name)

        if new_id is None:
            new_id = self.client.get_next_vmid()
        validate_vmid(new_id)

        try:
            self.client.find_vm_node(new_id)
        except ResourceNotFoundError:
            pass
        else:
            raise ValidationError(f"VM ID {new_id} is already in use")

        logger.info(f"Cloning VM {resource.vmid} to {new_id}")
        handle = self.client.clone_vm(resource.node, resource.vmid, new_id, name, full)  # type: ignore[arg-type]
        return self._complete(handle, f"Cloning {resource.name or resource.vmid} to {new_id}")

    def migrate_vm(
        self,
        vm: str,
        target_node: str,
        online: bool = False,
        with_local_disks: bool = False,
    ) -> TaskStatus:
        """
        Move a VM to another node.

        Raises:
            ValidationError: If the target is invalid or the VM is already there
        """
        validate_node_name(target_node)
        resource = self.find(vm, ResourceKind.QEMU)
        if resource.node == target_node:
            raise ValidationError(f"VM {resource.vmid} is already on node {target_node}")

        logger.info(f"Migrating VM {resource.vmid} from {resource.node} to {target_node}")
        handle = self.client.migrate_vm(
            resource.node, resource.vmid, target_node, online, with_local_disks  # type: ignore[arg-type]
        )
        return self._complete(handle, f"Migrating {resource.name or resource.vmid} to {target_node}")
