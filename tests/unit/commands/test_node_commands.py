"""Tests for the node command group."""

from unittest.mock import Mock, patch

from typer.testing import CliRunner

from prox.api_clients.errors import APIConnectionError
from prox.cli import app
from prox.models import NodeInfo


class TestNodeCommands:
    """Test cases for prox node commands."""

    def setup_method(self):
        self.runner = CliRunner()
        self.client = Mock()
        self.runtime = Mock()
        self.runtime.client.return_value = self.client
        self.runtime.profile_name = "lab"

    @patch("prox.commands.node.get_runtime")
    def test_list_table(self, mock_get_runtime):
        self.client.get_nodes.return_value = [
            NodeInfo(node="pve1", status="online", cpu=0.12, max_cpu=8, mem=2 * 1024**3, max_mem=16 * 1024**3, uptime=90000),
            NodeInfo(node="pve2", status="offline"),
        ]
        mock_get_runtime.return_value = self.runtime

        result = self.runner.invoke(app, ["node", "list"])

        assert result.exit_code == 0
        assert "pve1" in result.output
        assert "pve2" in result.output
        assert "12% of 8" in result.output
        assert "offline" in result.output
        assert "1d 1h" in result.output

    @patch("prox.commands.node.get_runtime")
    def test_list_json(self, mock_get_runtime):
        self.client.get_nodes.return_value = [NodeInfo(node="pve1", status="online", max_cpu=4)]
        mock_get_runtime.return_value = self.runtime

        result = self.runner.invoke(app, ["node", "list", "--json", "--profile", "lab"])

        assert result.exit_code == 0
        mock_get_runtime.assert_called_once_with("lab", False)
        assert '"node": "pve1"' in result.output
        assert '"maxcpu": 4' in result.output

    @patch("prox.commands.node.get_runtime")
    def test_list_connection_error(self, mock_get_runtime):
        self.client.get_nodes.side_effect = APIConnectionError("GET /nodes request failed")
        mock_get_runtime.return_value = self.runtime

        result = self.runner.invoke(app, ["node", "list"])

        assert result.exit_code == 1
        assert "Error listing nodes" in result.output
