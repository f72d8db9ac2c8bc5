"""Input validation for VM and container operations."""

import re

from ..api_clients.errors import ProxError

MIN_VMID = 100
MAX_VMID = 999999999
MAX_VM_NAME_LENGTH = 15

VM_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9-]+$")
NODE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9]$|^[a-zA-Z0-9]$")


class ValidationError(ProxError):
    """User input failed validation."""

    pass


def validate_vmid(vmid: int) -> int:
    """Check that a guest ID is within the range Proxmox accepts."""
    if vmid < MIN_VMID or vmid > MAX_VMID:
        raise ValidationError(f"VMID must be between {MIN_VMID} and {MAX_VMID}, got {vmid}")
    return vmid


def validate_vm_name(name: str) -> str:
    """
    Check a VM name: 1-15 characters, letters, digits and hyphens.

    Raises:
        ValidationError: If the name is not acceptable
    """
    if not name:
        raise ValidationError("VM name cannot be empty")
    if len(name) > MAX_VM_NAME_LENGTH:
        raise ValidationError(
            f"VM name cannot exceed {MAX_VM_NAME_LENGTH} characters, got {len(name)}"
        )
    if not VM_NAME_PATTERN.match(name):
        raise ValidationError("VM name can only contain alphanumeric characters and hyphens")
    return name


def validate_node_name(node: str) -> str:
    if not node:
        raise ValidationError("node name cannot be empty")
    if not NODE_NAME_PATTERN.match(node):
        raise ValidationError("node name must be a valid hostname")
    return node
