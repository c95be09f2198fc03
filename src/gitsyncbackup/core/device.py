"""Device identity.

This module provides:
- read_machine_unique_id: Read the OS-level machine identifier
- current_device_id: Process-wide cached device id
- IdentityUnavailableError: Raised when no identifier can be read

The device id is the raw machine id reported by the OS. It never changes
for the lifetime of an installation, so it can be written into the config
file as a key for per-device paths and ignore lists.
"""

from __future__ import annotations

import functools
import logging
import platform
import re
import subprocess
from pathlib import Path

from gitsyncbackup.core.types import DeviceId, GsbError

logger = logging.getLogger(__name__)

# Checked in order on Linux and the BSDs
MACHINE_ID_FILES: tuple[Path, ...] = (
    Path("/var/lib/dbus/machine-id"),
    Path("/etc/machine-id"),
    Path("/etc/hostid"),
)

_IOREG_UUID = re.compile(r'"IOPlatformUUID"\s*=\s*"([^"]+)"')


class IdentityUnavailableError(GsbError):
    """The machine unique id could not be read."""


def _read_windows_machine_guid() -> str:
    import winreg  # type: ignore[import-not-found]

    key_path = r"SOFTWARE\Microsoft\Cryptography"
    try:
        with winreg.OpenKey(  # type: ignore[attr-defined]
            winreg.HKEY_LOCAL_MACHINE,  # type: ignore[attr-defined]
            key_path,
            0,
            winreg.KEY_READ | winreg.KEY_WOW64_64KEY,  # type: ignore[attr-defined]
        ) as key:
            value, _ = winreg.QueryValueEx(key, "MachineGuid")  # type: ignore[attr-defined]
    except OSError as e:
        raise IdentityUnavailableError(f"Cannot read MachineGuid: {e}") from e
    return str(value).strip()


def _read_macos_platform_uuid() -> str:
    try:
        output = subprocess.run(
            ["ioreg", "-rd1", "-c", "IOPlatformExpertDevice"],
            capture_output=True,
            text=True,
            check=True,
        ).stdout
    except (OSError, subprocess.CalledProcessError) as e:
        raise IdentityUnavailableError(f"Cannot run ioreg: {e}") from e

    match = _IOREG_UUID.search(output)
    if not match:
        raise IdentityUnavailableError("IOPlatformUUID not found in ioreg output")
    return match.group(1)


def _decode_machine_id(raw: bytes) -> str:
    # glibc writes /etc/hostid as 4 binary bytes
    try:
        return raw.decode("utf-8").strip()
    except UnicodeDecodeError:
        return raw.hex()


def _read_machine_id_files(paths: tuple[Path, ...] | None = None) -> str:
    errors: list[str] = []
    for path in paths or MACHINE_ID_FILES:
        try:
            value = _decode_machine_id(path.read_bytes())
        except FileNotFoundError:
            continue
        except OSError as e:
            errors.append(f"{path}: {e}")
            continue
        if value:
            return value

    detail = "; ".join(errors) if errors else "no machine id file found"
    raise IdentityUnavailableError(f"Cannot read machine id ({detail})")


def read_machine_unique_id() -> str:
    """Read the machine unique id from the operating system.

    Returns:
        The raw OS machine identifier.

    Raises:
        IdentityUnavailableError: If the identifier cannot be read
            (missing file, permission failure, unsupported platform).
    """
    system = platform.system()
    if system == "Windows":
        return _read_windows_machine_guid()
    if system == "Darwin":
        return _read_macos_platform_uuid()
    return _read_machine_id_files()


@functools.cache
def current_device_id() -> DeviceId:
    """Get the id of the current device.

    Computed on first call and reused for the rest of the process.
    A failed read is not cached, so a later call may retry.

    Raises:
        IdentityUnavailableError: If the machine id cannot be read.
    """
    device_id = read_machine_unique_id()
    logger.debug(f"Current device id: {device_id}")
    return device_id
