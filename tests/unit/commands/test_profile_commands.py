"""Tests for the profile command group."""

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from prox.cli import app
from prox.utils.config import Config, ProfileStore


class TestProfileCommands:
    """Test cases for prox profile commands."""

    @pytest.fixture(autouse=True)
    def setup(self, tmp_path, identity_cipher, monkeypatch):
        monkeypatch.delenv("PROX_PROFILE", raising=False)
        self.runner = CliRunner()
        self.store = ProfileStore(Config(tmp_path / "prox"), cipher=identity_cipher)
        patcher = patch("prox.commands.profile.get_profile_store", return_value=self.store)
        patcher.start()
        yield
        patcher.stop()

    def test_add_and_list(self):
        result = self.runner.invoke(
            app,
            ["profile", "add", "lab", "--url", "https://lab:8006/", "--username", "root@pam", "--password", "pw"],
        )

        assert result.exit_code == 0
        assert "Profile 'lab' added." in result.output
        assert self.store.read_profile("lab").url == "https://lab:8006"

        result = self.runner.invoke(app, ["profile", "list"])
        assert result.exit_code == 0
        assert "lab" in result.output

    def test_add_prompts_for_password(self):
        result = self.runner.invoke(
            app,
            ["profile", "add", "--url", "https://pve:8006", "--username", "root@pam", "--use"],
            input="secret\nsecret\n",
        )

        assert result.exit_code == 0
        assert self.store.read_profile("default").password == "secret"
        assert self.store.get_current_profile() == "default"

    def test_use_unknown_profile(self):
        result = self.runner.invoke(app, ["profile", "use", "ghost"])

        assert result.exit_code == 1
        assert "profile 'ghost' does not exist" in result.output

    def test_delete_default_is_refused(self):
        self.store.create_profile("default", "a", "b", "https://x")

        result = self.runner.invoke(app, ["profile", "delete", "default", "--force"])

        assert result.exit_code == 1
        assert "cannot delete the default profile" in result.output
        assert self.store.profile_exists("default")

    def test_fingerprint_matches_profile(self):
        self.store.create_profile("lab", "a", "b", "https://x")

        result = self.runner.invoke(app, ["profile", "fingerprint", "lab"])

        assert result.exit_code == 0
        assert self.store.cipher.fingerprint() in result.output
        assert "was written with this key" in result.output

    def test_migrate(self):
        self.store.config.set(
            "profiles", {"old": {"username": "root@pam", "password": "plain", "url": "https://old"}}
        )

        result = self.runner.invoke(app, ["profile", "migrate"])

        assert result.exit_code == 0
        assert "Encrypted credentials of: old" in result.output
