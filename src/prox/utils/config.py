"""Configuration and profile storage for prox."""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from rich.console import Console

from ..api_clients.errors import ProxError
from ..encryption import CredentialCipher, create_cipher
from ..models import Credentials

logger = logging.getLogger(__name__)
console = Console(stderr=True)

CONFIG_DIR = Path.home() / ".prox"
CONFIG_FILE_YAML = CONFIG_DIR / "config.yaml"

DEFAULT_PROFILE = "default"
PROFILE_ENV_VAR = "PROX_PROFILE"

DEFAULT_API_CONFIG = {
    "verify_tls": False,
    "ca_bundle": None,
    "timeout": 30,
    "pool_size": 10,
    "reauthenticate_on_401": True,
}

DEFAULT_CACHE_CONFIG = {
    "resources_ttl": 10,  # seconds
}

DEFAULT_ENRICHMENT_CONFIG = {
    "max_workers": 10,
    "lookup_retries": 0,
}

DEFAULT_TASKS_CONFIG = {
    "initial_interval": 0.5,
    "multiplier": 2.0,
    "max_interval": 5.0,
    "timeout": None,  # wait forever
    "show_progress": True,
}

DEFAULT_ENCRYPTION_CONFIG = {
    "key_source": "identity",  # Options: "identity", "keyring"
}

DEFAULT_LOGGING_CONFIG = {
    "level": "WARNING",
    "file": None,
    "use_colors": True,
}

DEFAULT_CONFIG: Dict[str, Any] = {
    "api": DEFAULT_API_CONFIG,
    "cache": DEFAULT_CACHE_CONFIG,
    "enrichment": DEFAULT_ENRICHMENT_CONFIG,
    "tasks": DEFAULT_TASKS_CONFIG,
    "encryption": DEFAULT_ENCRYPTION_CONFIG,
    "logging": DEFAULT_LOGGING_CONFIG,
}


class ConfigurationError(ProxError):
    """Invalid configuration or profile data."""

    pass


class ProfileNotFoundError(ConfigurationError):
    """The requested profile does not exist."""

    def __init__(self, profile: str):
        super().__init__(f"profile '{profile}' does not exist")
        self.profile = profile


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class Config:
    """Manages the prox YAML configuration file."""

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize the configuration manager.

        Args:
            config_dir: Directory holding config.yaml; ~/.prox by default
        """
        self._config_dir = Path(config_dir) if config_dir else CONFIG_DIR
        self._config_file_yaml = self._config_dir / "config.yaml"
        self.config_data: Dict[str, Any] = {}
        self._config_loaded = False
        self._config_dir_ensured = False

    def _ensure_config_dir(self):
        """Ensure the configuration directory exists."""
        if not self._config_dir_ensured:
            if not self._config_dir.exists():
                self._config_dir.mkdir(parents=True, mode=0o700)
                logger.debug(f"Created configuration directory: {self._config_dir}")
            self._config_dir_ensured = True

    def _ensure_config_loaded(self):
        """Ensure configuration is loaded from file."""
        if not self._config_loaded:
            self._load_config()
            self._config_loaded = True

    def reload_config(self):
        """Force reload configuration from file."""
        self._config_loaded = False
        self._ensure_config_loaded()

    def _load_config(self):
        """Load configuration from the YAML file."""
        if not self._config_file_yaml.exists():
            self.config_data = {}
            return

        try:
            with open(self._config_file_yaml, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            console.print(
                f"[red]Error: Configuration file {self._config_file_yaml} is not valid YAML: {e}[/red]"
            )
            data = {}
        except OSError as e:
            console.print(f"[red]Error reading configuration file {self._config_file_yaml}: {e}[/red]")
            data = {}

        if not isinstance(data, dict):
            console.print(
                f"[yellow]Warning: Ignoring configuration file {self._config_file_yaml}, "
                "top level is not a mapping[/yellow]"
            )
            data = {}
        self.config_data = data

    def save_config(self):
        """
        Save the configuration to the YAML file.

        The file holds credentials, so it is created readable by the owner only.

        Raises:
            ConfigurationError: If the file cannot be written
        """
        self._ensure_config_dir()
        try:
            fd = os.open(self._config_file_yaml, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                yaml.dump(self.config_data, f, default_flow_style=False, indent=2, sort_keys=False)
        except OSError as e:
            raise ConfigurationError(f"failed to save configuration to {self._config_file_yaml}", e)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value with dot notation support.

        Values missing from the file fall back to the built-in defaults, and
        then to ``default``.

        Args:
            key: Configuration key (supports dot notation like "api.verify_tls")
            default: Default value if key doesn't exist

        Returns:
            Configuration value
        """
        self._ensure_config_loaded()

        for source in (self.config_data, DEFAULT_CONFIG):
            value: Any = source
            found = True
            for part in key.split("."):
                if isinstance(value, dict) and part in value:
                    value = value[part]
                else:
                    found = False
                    break
            if found:
                if source is DEFAULT_CONFIG and isinstance(value, (dict, list)):
                    return copy.deepcopy(value)
                return value
        return default

    def set(self, key: str, value: Any):
        """
        Set a configuration value and save.

        Args:
            key: Configuration key (supports dot notation)
            value: Configuration value
        """
        self._ensure_config_loaded()

        parts = key.split(".")
        target = self.config_data
        for part in parts[:-1]:
            if not isinstance(target.get(part), dict):
                target[part] = {}
            target = target[part]
        target[parts[-1]] = value

        self.save_config()

    def set_section(self, section: str, value: Any):
        """
        Set a configuration section, merging with existing values.

        Args:
            section: Configuration section name
            value: Configuration section value
        """
        self._ensure_config_loaded()

        existing_section = self.config_data.get(section, {})
        if isinstance(existing_section, dict) and isinstance(value, dict):
            self.config_data[section] = _deep_merge(existing_section, value)
        else:
            self.config_data[section] = value

        self.save_config()

    def delete(self, key: str):
        """
        Delete a configuration value.

        Args:
            key: Configuration key (supports dot notation)
        """
        self._ensure_config_loaded()

        parts = key.split(".")
        target = self.config_data
        for part in parts[:-1]:
            target = target.get(part)
            if not isinstance(target, dict):
                return
        if parts[-1] in target:
            del target[parts[-1]]
            self.save_config()

    def get_all(self) -> Dict[str, Any]:
        """Return the defaults merged with the file contents."""
        self._ensure_config_loaded()
        return _deep_merge(DEFAULT_CONFIG, self.config_data)

    def get_config_file_path(self) -> Path:
        return self._config_file_yaml


class ProfileStore:
    """
    Named connection profiles kept in the ``profiles`` section of the config.

    Usernames and passwords are encrypted on write and decrypted on read.
    Values written before encryption was introduced still read back, since
    decryption passes plaintext through unchanged.
    """

    def __init__(
        self,
        config: Config,
        cipher: Optional[CredentialCipher] = None,
        profile_override: Optional[str] = None,
    ):
        """
        Initialize the profile store.

        Args:
            config: Configuration backing the store
            cipher: Cipher for secrets; built from ``encryption.key_source``
                when None
            profile_override: Profile forced for this process (e.g. --profile)
        """
        self.config = config
        self._cipher = cipher
        self.profile_override = profile_override

    @property
    def cipher(self) -> CredentialCipher:
        if self._cipher is None:
            self._cipher = create_cipher(self.config.get("encryption.key_source", "identity"))
        return self._cipher

    def _profiles(self) -> Dict[str, Any]:
        profiles = self.config.get("profiles", {})
        return profiles if isinstance(profiles, dict) else {}

    @staticmethod
    def _check_name(profile: str) -> None:
        if not profile or not profile.strip():
            raise ConfigurationError("profile name cannot be empty")

    def profile_exists(self, profile: str) -> bool:
        return profile in self._profiles()

    def list_profiles(self) -> List[str]:
        return sorted(self._profiles())

    def get_current_profile(self) -> str:
        """
        Return the active profile name.

        Precedence: explicit override, then the ``PROX_PROFILE`` environment
        variable, then the stored current profile, then ``default``.
        """
        if self.profile_override:
            return self.profile_override
        env_profile = os.environ.get(PROFILE_ENV_VAR)
        if env_profile:
            return env_profile
        return self.config.get("current_profile") or DEFAULT_PROFILE

    def set_current_profile(self, profile: str) -> None:
        self._check_name(profile)
        if not self.profile_exists(profile):
            raise ProfileNotFoundError(profile)
        self.config.set("current_profile", profile)

    def _write(self, profile: str, username: str, password: str, url: str) -> None:
        profiles = self._profiles()
        profiles[profile] = {
            "username": self.cipher.encrypt(username),
            "password": self.cipher.encrypt(password),
            "url": url,
            "key_fingerprint": self.cipher.fingerprint(),
        }
        self.config.set("profiles", profiles)

    def create_profile(self, profile: str, username: str, password: str, url: str) -> None:
        """
        Create or overwrite a profile with encrypted credentials.

        Raises:
            ConfigurationError: If the name is empty
            EncryptionError: If the secrets cannot be encrypted
        """
        self._check_name(profile)
        self._write(profile, username, password, url)
        logger.debug(f"Saved profile '{profile}'")

    def read_profile(self, profile: Optional[str] = None) -> Credentials:
        """
        Read and decrypt a profile.

        Args:
            profile: Profile name; the current profile when None

        Raises:
            ProfileNotFoundError: If the profile does not exist
            ConfigurationError: If the profile has no URL
        """
        name = profile or self.get_current_profile()
        data = self._profiles().get(name)
        if not isinstance(data, dict):
            raise ProfileNotFoundError(name)

        url = data.get("url") or ""
        if not url:
            raise ConfigurationError(f"profile '{name}' has no url")

        return Credentials(
            username=self.cipher.decrypt(str(data.get("username") or "")),
            password=self.cipher.decrypt(str(data.get("password") or "")),
            url=url,
        )

    def update_profile(
        self,
        profile: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        url: Optional[str] = None,
    ) -> None:
        """Change some fields of an existing profile, keeping the others."""
        current = self.read_profile(profile)
        self._write(
            profile,
            username if username is not None else current.username,
            password if password is not None else current.password,
            url if url is not None else current.url,
        )

    def delete_profile(self, profile: str) -> None:
        """
        Delete a profile. The default profile cannot be deleted.

        If the deleted profile was current, ``default`` becomes current.
        """
        if profile == DEFAULT_PROFILE:
            raise ConfigurationError("cannot delete the default profile")

        profiles = self._profiles()
        if profile not in profiles:
            raise ProfileNotFoundError(profile)

        del profiles[profile]
        self.config.set("profiles", profiles)

        if self.config.get("current_profile") == profile:
            self.config.set("current_profile", DEFAULT_PROFILE)

    def get_key_fingerprint(self, profile: str) -> Optional[str]:
        """Fingerprint recorded when the profile was last written."""
        data = self._profiles().get(profile)
        if not isinstance(data, dict):
            raise ProfileNotFoundError(profile)
        return data.get("key_fingerprint")

    def migrate_to_encrypted(self) -> List[Tuple[str, bool]]:
        """
        Encrypt any plaintext secrets left in stored profiles.

        Returns:
            List of (profile name, whether it was changed)
        """
        profiles = self._profiles()
        results = []
        changed_any = False

        for name, data in profiles.items():
            if not isinstance(data, dict):
                continue
            changed = False
            for field in ("username", "password"):
                value, field_changed = self.cipher.migrate_to_encrypted(str(data.get(field) or ""))
                if field_changed:
                    data[field] = value
                    changed = True
            if changed:
                data["key_fingerprint"] = self.cipher.fingerprint()
                changed_any = True
            results.append((name, changed))

        if changed_any:
            self.config.set("profiles", profiles)
        return results
