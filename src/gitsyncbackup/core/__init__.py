"""Core module - Config model, device identity and alias resolution."""

from gitsyncbackup.core.aliases import AliasTable
from gitsyncbackup.core.config import (
    CONFIG_FILE_NAME,
    Config,
    ConfigError,
    ConfigFormatError,
    ConfigNotFoundError,
    ConfigValidationError,
    DuplicateItemPathError,
    InvalidItemPathError,
    Item,
    RepoRootNotFoundError,
    SyncConfig,
    find_repo_root,
    load_config,
    parse_config,
)
from gitsyncbackup.core.device import (
    IdentityUnavailableError,
    current_device_id,
    read_machine_unique_id,
)
from gitsyncbackup.core.types import DeviceId, GsbError

__all__ = [
    # Aliases
    "AliasTable",
    # Config
    "CONFIG_FILE_NAME",
    "Config",
    "ConfigError",
    "ConfigFormatError",
    "ConfigNotFoundError",
    "ConfigValidationError",
    "DuplicateItemPathError",
    "InvalidItemPathError",
    "Item",
    "RepoRootNotFoundError",
    "SyncConfig",
    "find_repo_root",
    "load_config",
    "parse_config",
    # Device
    "IdentityUnavailableError",
    "current_device_id",
    "read_machine_unique_id",
    # Types
    "DeviceId",
    "GsbError",
]
