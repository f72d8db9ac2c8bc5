"""prox - A CLI tool and client runtime for managing Proxmox VE virtual machines and containers."""

from .models import (
    Credentials,
    GuestDetails,
    NodeInfo,
    Resource,
    ResourceKind,
    TaskHandle,
    TaskStatus,
    VersionInfo,
)


# Version will be set by build system
def _get_version():
    """Get the version from package metadata or pyproject.toml."""
    try:
        from importlib.metadata import PackageNotFoundError, version

        return version("prox")
    except PackageNotFoundError:
        # Fallback for development checkouts that were never installed
        import re
        from pathlib import Path

        pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
        if not pyproject_path.exists():
            return "0.0.0"

        with open(pyproject_path, "r", encoding="utf-8") as f:
            content = f.read()
            version_match = re.search(r'version\s*=\s*["\']([^"\']+)["\']', content)
            if not version_match:
                return "0.0.0"
            return version_match.group(1)


__version__ = _get_version()

__all__ = [
    "__version__",
    "Credentials",
    "GuestDetails",
    "NodeInfo",
    "Resource",
    "ResourceKind",
    "TaskHandle",
    "TaskStatus",
    "VersionInfo",
]
