"""Tests for the vm and ct command groups."""

from unittest.mock import Mock, patch

from typer.testing import CliRunner

from prox.api_clients.errors import ResourceNotFoundError, TaskFailedError
from prox.cli import app
from prox.models import GuestDetails, Resource, ResourceKind


def _runtime(operations):
    runtime = Mock()
    runtime.operations.return_value = operations
    runtime.profile_name = "lab"
    return runtime


class TestVmCommands:
    """Test cases for prox vm commands."""

    def setup_method(self):
        self.runner = CliRunner()
        self.operations = Mock()

    @patch("prox.commands.common.get_runtime")
    def test_list_json(self, mock_get_runtime):
        self.operations.list_vms.return_value = [
            Resource(id="qemu/100", kind=ResourceKind.QEMU, node="pve1", vmid=100, name="web", status="running")
        ]
        mock_get_runtime.return_value = _runtime(self.operations)

        result = self.runner.invoke(app, ["vm", "list", "--json", "--running", "--node", "pve1"])

        assert result.exit_code == 0
        self.operations.list_vms.assert_called_once_with(
            node="pve1", running_only=True, show_addresses=False
        )
        assert '"vmid": 100' in result.output
        assert '"name": "web"' in result.output

    @patch("prox.commands.common.get_runtime")
    def test_list_empty(self, mock_get_runtime):
        self.operations.list_vms.return_value = []
        mock_get_runtime.return_value = _runtime(self.operations)

        result = self.runner.invoke(app, ["vm", "list"])

        assert result.exit_code == 0
        assert "No VMs found." in result.output

    @patch("prox.commands.common.get_runtime")
    def test_start(self, mock_get_runtime):
        mock_get_runtime.return_value = _runtime(self.operations)

        result = self.runner.invoke(app, ["vm", "start", "web"])

        assert result.exit_code == 0
        self.operations.start.assert_called_once_with("web", ResourceKind.QEMU)
        assert "VM 'web' started." in result.output

    @patch("prox.commands.common.get_runtime")
    def test_stop_reports_task_failure(self, mock_get_runtime):
        self.operations.shutdown.side_effect = TaskFailedError("UPID:x", "timeout")
        mock_get_runtime.return_value = _runtime(self.operations)

        result = self.runner.invoke(app, ["vm", "stop", "100"])

        assert result.exit_code == 1
        assert "task failed with exit code: timeout" in result.output

    @patch("prox.commands.common.get_runtime")
    def test_delete_requires_confirmation(self, mock_get_runtime):
        mock_get_runtime.return_value = _runtime(self.operations)

        result = self.runner.invoke(app, ["vm", "delete", "db"], input="n\n")

        assert result.exit_code == 0
        assert "Operation cancelled." in result.output
        self.operations.delete.assert_not_called()

    @patch("prox.commands.common.get_runtime")
    def test_delete_forced(self, mock_get_runtime):
        mock_get_runtime.return_value = _runtime(self.operations)

        result = self.runner.invoke(app, ["vm", "delete", "db", "--force"])

        assert result.exit_code == 0
        self.operations.delete.assert_called_once_with("db", ResourceKind.QEMU)

    @patch("prox.commands.vm.get_runtime")
    def test_clone(self, mock_get_runtime):
        mock_get_runtime.return_value = _runtime(self.operations)

        result = self.runner.invoke(app, ["vm", "clone", "web", "web-copy", "--id", "150", "--linked"])

        assert result.exit_code == 0
        self.operations.clone_vm.assert_called_once_with("web", new_id=150, name="web-copy", full=False)

    @patch("prox.commands.vm.get_runtime")
    def test_migrate(self, mock_get_runtime):
        mock_get_runtime.return_value = _runtime(self.operations)

        result = self.runner.invoke(app, ["vm", "migrate", "web", "pve2", "--online"])

        assert result.exit_code == 0
        self.operations.migrate_vm.assert_called_once_with(
            "web", "pve2", online=True, with_local_disks=False
        )
        assert "migrated to pve2" in result.output


    @patch("prox.commands.common.get_runtime")
    def test_describe_json(self, mock_get_runtime):
        resource = Resource(
            id="qemu/100", kind=ResourceKind.QEMU, node="pve1", vmid=100, name="web", status="running"
        )
        self.operations.describe.return_value = GuestDetails(
            resource=resource,
            config={"memory": 2048, "cores": 2, "net0": "virtio=AA:BB,bridge=vmbr0"},
            status={"status": "running", "uptime": 3600},
            address="10.0.0.5",
        )
        mock_get_runtime.return_value = _runtime(self.operations)

        result = self.runner.invoke(app, ["vm", "describe", "web", "--json"])

        assert result.exit_code == 0
        self.operations.describe.assert_called_once_with("web", ResourceKind.QEMU)
        assert '"address": "10.0.0.5"' in result.output
        assert '"memory": 2048' in result.output
        assert '"uptime": 3600' in result.output

    @patch("prox.commands.common.get_runtime")
    def test_describe_table(self, mock_get_runtime):
        resource = Resource(
            id="qemu/101", kind=ResourceKind.QEMU, node="pve2", vmid=101, name="db", status="stopped"
        )
        self.operations.describe.return_value = GuestDetails(
            resource=resource,
            config={"memory": 4096, "sockets": 1, "cores": 4, "agent": "1", "scsi0": "local:vm-101-disk-0"},
            status={"status": "stopped"},
        )
        mock_get_runtime.return_value = _runtime(self.operations)

        result = self.runner.invoke(app, ["vm", "describe", "101"])

        assert result.exit_code == 0
        assert "4096 MiB" in result.output
        assert "Enabled" in result.output
        assert "scsi0" in result.output
        assert "Address" not in result.output

    @patch("prox.commands.common.get_runtime")
    def test_describe_unknown_vm(self, mock_get_runtime):
        self.operations.describe.side_effect = ResourceNotFoundError("VM 'ghost' not found")
        mock_get_runtime.return_value = _runtime(self.operations)

        result = self.runner.invoke(app, ["vm", "describe", "ghost"])

        assert result.exit_code == 1
        assert "not found" in result.output


class TestCtCommands:
    """Test cases for prox ct commands."""

    def setup_method(self):
        self.runner = CliRunner()
        self.operations = Mock()

    @patch("prox.commands.common.get_runtime")
    def test_start_container(self, mock_get_runtime):
        mock_get_runtime.return_value = _runtime(self.operations)

        result = self.runner.invoke(app, ["ct", "start", "200"])

        assert result.exit_code == 0
        self.operations.start.assert_called_once_with("200", ResourceKind.LXC)
        assert "container '200' started." in result.output

    @patch("prox.commands.common.get_runtime")
    def test_missing_container(self, mock_get_runtime):
        self.operations.start.side_effect = ResourceNotFoundError("container 'x' not found")
        mock_get_runtime.return_value = _runtime(self.operations)

        result = self.runner.invoke(app, ["ct", "start", "x"])

        assert result.exit_code == 1
        assert "not found" in result.output

    @patch("prox.commands.common.get_runtime")
    def test_list_containers(self, mock_get_runtime):
        self.operations.list_containers.return_value = []
        mock_get_runtime.return_value = _runtime(self.operations)

        result = self.runner.invoke(app, ["ct", "list", "--ip"])

        assert result.exit_code == 0
        self.operations.list_containers.assert_called_once_with(
            node=None, running_only=False, show_addresses=True
        )

    @patch("prox.commands.common.get_runtime")
    def test_describe_container(self, mock_get_runtime):
        resource = Resource(id="lxc/200", kind=ResourceKind.LXC, node="pve1", vmid=200, name="cache", status="running")
        self.operations.describe.return_value = GuestDetails(
            resource=resource,
            config={"memory": 512, "swap": 256, "rootfs": "local-lvm:vm-200-disk-0,size=8G"},
            status={"status": "running", "cpu": 0.05, "mem": 104857600, "maxmem": 536870912, "uptime": 120},
            address="10.0.3.7",
        )
        mock_get_runtime.return_value = _runtime(self.operations)

        result = self.runner.invoke(app, ["ct", "describe", "cache"])

        assert result.exit_code == 0
        self.operations.describe.assert_called_once_with("cache", ResourceKind.LXC)
        assert "10.0.3.7" in result.output
        assert "256 MiB" in result.output
        assert "rootfs" in result.output
        assert "QEMU Agent" not in result.output
