"""Shared pytest fixtures for prox tests."""

from tests.fixtures.proxmox import cluster_rows, credentials, identity_cipher  # noqa: F401
