"""Shared types for gitsyncbackup.

This module defines the root exception and type aliases used by every
layer (config, device identity, git, transfers).
"""

from __future__ import annotations

# Opaque, stable identifier of one machine (the OS machine id).
DeviceId = str


class GsbError(Exception):
    """Base exception for all gitsyncbackup errors."""
