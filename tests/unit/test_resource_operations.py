"""Tests for VM and container operations."""

from unittest.mock import Mock

import pytest

from prox.api_clients.errors import ResourceNotFoundError, TaskFailedError
from prox.cache import ResourceCache
from prox.models import ResourceKind, TaskHandle, TaskStatus
from prox.operations import ResourceOperations
from prox.utils.validators import ValidationError

UPID = "UPID:pve1:0000AAAA:00000001:65000000:qmstart:100:root@pam:"


class TestResourceOperations:
    """Test cases for ResourceOperations."""

    @pytest.fixture(autouse=True)
    def setup(self, cluster_rows):
        self.client = Mock()
        self.client.resources = ResourceCache(lambda: cluster_rows, ttl=60)
        self.client.get_cluster_resources.side_effect = self.client.resources.get_resources
        self.client.find_vm_node.side_effect = self.client.resources.find_vm_node
        self.handle = TaskHandle(upid=UPID, node="pve1")
        for method in ("start_guest", "shutdown_guest", "delete_guest", "clone_vm", "migrate_vm"):
            getattr(self.client, method).return_value = self.handle

        self.monitor = Mock()
        self.monitor.wait_for_task.return_value = TaskStatus(
            upid=UPID, node="pve1", status="stopped", exit_status="OK"
        )
        self.enricher = Mock()
        self.operations = ResourceOperations(self.client, monitor=self.monitor, enricher=self.enricher)

    def test_list_vms_sorted_by_node_and_id(self):
        vms = self.operations.list_vms()

        assert [(v.node, v.vmid) for v in vms] == [("pve1", 100), ("pve2", 101)]
        self.enricher.enrich.assert_not_called()

    def test_list_filters(self):
        assert [v.vmid for v in self.operations.list_vms(node="pve2")] == [101]
        assert [v.vmid for v in self.operations.list_vms(running_only=True)] == [100]
        assert [c.vmid for c in self.operations.list_containers()] == [200]

    def test_list_with_addresses_uses_enricher(self):
        vms = self.operations.list_vms(show_addresses=True)

        self.enricher.enrich.assert_called_once_with(vms)

    def test_start_waits_and_invalidates(self):
        status = self.operations.start("web")

        self.client.start_guest.assert_called_once_with(ResourceKind.QEMU, "pve1", 100)
        self.monitor.wait_for_task.assert_called_once()
        assert self.monitor.wait_for_task.call_args.args[0] == self.handle
        self.client.invalidate_resources.assert_called_once()
        assert status.succeeded

    def test_cache_invalidated_when_task_fails(self):
        self.monitor.wait_for_task.side_effect = TaskFailedError(UPID, "error")

        with pytest.raises(TaskFailedError):
            self.operations.shutdown("200", ResourceKind.LXC)

        self.client.shutdown_guest.assert_called_once_with(ResourceKind.LXC, "pve1", 200)
        self.client.invalidate_resources.assert_called_once()

    def test_unknown_guest(self):
        with pytest.raises(ResourceNotFoundError):
            self.operations.start("nope")

        self.client.start_guest.assert_not_called()

    def test_delete_refuses_running_guest(self):
        with pytest.raises(ValidationError, match="is running"):
            self.operations.delete("web")

        self.client.delete_guest.assert_not_called()

    def test_delete_stopped_guest(self):
        self.operations.delete("db")

        self.client.delete_guest.assert_called_once_with(ResourceKind.QEMU, "pve2", 101)

    def test_clone_with_next_free_id(self):
        self.client.get_next_vmid.return_value = 150

        self.operations.clone_vm("web", name="web-copy")

        self.client.clone_vm.assert_called_once_with("pve1", 100, 150, "web-copy", True)

    def test_clone_refuses_used_id(self):
        with pytest.raises(ValidationError, match="VM ID 101 is already in use"):
            self.operations.clone_vm("web", new_id=101, name="copy")

        self.client.clone_vm.assert_not_called()

    def test_clone_validates_inputs(self):
        with pytest.raises(ValidationError):
            self.operations.clone_vm("web", new_id=50, name="copy")
        with pytest.raises(ValidationError):
            self.operations.clone_vm("web", new_id=150, name="bad_name")

    def test_migrate(self):
        self.operations.migrate_vm("web", "pve2", online=True)

        self.client.migrate_vm.assert_called_once_with("pve1", 100, "pve2", True, False)
        self.client.invalidate_resources.assert_called_once()

    def test_migrate_to_current_node(self):
        with pytest.raises(ValidationError, match="already on node pve1"):
            self.operations.migrate_vm("web", "pve1")

    def test_describe_running_vm_resolves_address(self):
        self.client.get_guest_config.return_value = {"memory": 2048, "cores": 2}
        self.client.get_guest_status.return_value = {"status": "running", "uptime": 10}
        resolver = Mock()
        resolver.resolve.return_value = "10.0.0.5"
        operations = ResourceOperations(self.client, monitor=self.monitor, resolver=resolver)

        details = operations.describe("web")

        self.client.get_guest_config.assert_called_once_with(ResourceKind.QEMU, "pve1", 100)
        self.client.get_guest_status.assert_called_once_with(ResourceKind.QEMU, "pve1", 100)
        resolver.resolve.assert_called_once_with(ResourceKind.QEMU, "pve1", 100)
        assert details.resource.vmid == 100
        assert details.config["memory"] == 2048
        assert details.address == "10.0.0.5"
        assert details.to_dict()["status"] == {"status": "running", "uptime": 10}

    def test_describe_stopped_guest_skips_address_lookup(self):
        self.client.get_guest_config.return_value = {}
        self.client.get_guest_status.return_value = {"status": "stopped"}
        resolver = Mock()
        operations = ResourceOperations(self.client, monitor=self.monitor, resolver=resolver)

        details = operations.describe("db")

        resolver.resolve.assert_not_called()
        assert details.address is None

    def test_describe_container(self):
        self.client.get_guest_config.return_value = {"hostname": "cache"}
        self.client.get_guest_status.return_value = {"status": "stopped"}

        details = self.operations.describe("cache", ResourceKind.LXC)

        self.client.get_guest_config.assert_called_once_with(ResourceKind.LXC, "pve1", 200)
        assert details.to_dict()["type"] == "lxc"
