"""Command modules for prox."""

from . import common, ct, node, profile, status, vm

__all__ = ["common", "ct", "node", "profile", "status", "vm"]
