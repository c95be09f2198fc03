"""Configuration model for gitsyncbackup.

This module provides:
- Item, SyncConfig, Config: Frozen in-memory view of ``.gsb.config.toml``
- parse_config / load_config: Build and validate a Config
- find_repo_root: Locate the repository holding the config file
- ConfigError hierarchy: Fatal, pre-flight configuration errors

Validation is all-or-nothing: a Config is only returned when every item
passed, so no transfer can start against a half-valid config.
"""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from itertools import combinations
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Any

from gitsyncbackup.core.aliases import AliasTable
from gitsyncbackup.core.types import GsbError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".gsb.config.toml"

DEFAULT_SYNC_INTERVAL = 3600  # seconds
DEFAULT_GIT_REMOTE = "origin"
DEFAULT_GIT_BRANCH = "main"


class ConfigError(GsbError):
    """Base exception for configuration errors."""


class ConfigNotFoundError(ConfigError):
    """The config file does not exist."""


class RepoRootNotFoundError(ConfigError):
    """No directory containing the config file was found."""


class ConfigFormatError(ConfigError):
    """The config file is not valid TOML or has a field of the wrong type."""


class ConfigValidationError(ConfigError):
    """The config is well-formed but violates an invariant."""


class InvalidItemPathError(ConfigValidationError):
    """An item's ``path_in_repo`` is not a usable relative path."""


class DuplicateItemPathError(ConfigValidationError):
    """Two or more items share or nest the same ``path_in_repo``.

    Attributes:
        collisions: Every colliding (path, path) pair.
    """

    def __init__(self, collisions: list[tuple[str, str]]) -> None:
        self.collisions = collisions
        pairs = ", ".join(f"'{a}' <-> '{b}'" for a, b in collisions)
        super().__init__(f"Overlapping path_in_repo values: {pairs}")


@dataclass(frozen=True)
class Item:
    """One configured sync unit.

    Attributes:
        path_in_repo: Normalized POSIX path relative to the repository root.
        default_source: Local path used when the device has no entry in sources.
        sources: Device id or alias -> local path overrides.
        is_hardlink: Repository and local copies are the same file.
        ignore_collect: Devices (ids or aliases) that never collect this item.
        ignore_restore: Devices (ids or aliases) that never restore this item.
        ignore: Devices added to both ignore lists.
    """

    path_in_repo: str
    default_source: str | None = None
    sources: dict[str, str] = field(default_factory=dict)
    is_hardlink: bool = False
    ignore_collect: frozenset[str] = frozenset()
    ignore_restore: frozenset[str] = frozenset()
    ignore: frozenset[str] = frozenset()


@dataclass(frozen=True)
class SyncConfig:
    """Settings for the continuous sync loop."""

    sync_interval: float = DEFAULT_SYNC_INTERVAL
    git_remote: str = DEFAULT_GIT_REMOTE
    git_branch: str = DEFAULT_GIT_BRANCH


@dataclass(frozen=True)
class Config:
    """A fully validated configuration."""

    sync: SyncConfig
    aliases: AliasTable
    items: tuple[Item, ...]
    version: str | None = None


def normalize_repo_path(raw: str) -> str:
    """Normalize a ``path_in_repo`` value to a relative POSIX path.

    Args:
        raw: The value from the config file. Backslashes are accepted.

    Returns:
        The normalized path, e.g. ``"a/b"`` for ``"./a\\b/"``.

    Raises:
        InvalidItemPathError: If the path is empty, absolute, escapes the
            repository or points inside ``.git``.
    """
    text = raw.strip().replace("\\", "/")
    path = PurePosixPath(text)
    if path.is_absolute() or PureWindowsPath(raw).drive:
        raise InvalidItemPathError(f"path_in_repo must be relative: {raw!r}")

    parts = [part for part in path.parts if part != "."]
    if not parts:
        raise InvalidItemPathError(f"path_in_repo is empty: {raw!r}")
    if ".." in parts:
        raise InvalidItemPathError(f"path_in_repo must not contain '..': {raw!r}")
    if parts[0] == ".git":
        raise InvalidItemPathError(f"path_in_repo must not point inside .git: {raw!r}")
    return "/".join(parts)


def paths_overlap(a: str, b: str) -> bool:
    """Check whether two normalized repository paths are equal or nested."""
    return a == b or a.startswith(b + "/") or b.startswith(a + "/")


def find_overlapping_paths(paths: list[str]) -> list[tuple[str, str]]:
    """List every pair of overlapping repository paths."""
    return [(a, b) for a, b in combinations(paths, 2) if paths_overlap(a, b)]


def _expect(value: Any, expected: type | tuple[type, ...], where: str) -> Any:
    # bool is an int subclass; never accept it for numeric fields
    if isinstance(value, bool) and expected is not bool:
        raise ConfigFormatError(f"{where}: expected {_type_name(expected)}, got bool")
    if not isinstance(value, expected):
        raise ConfigFormatError(
            f"{where}: expected {_type_name(expected)}, got {type(value).__name__}"
        )
    return value


def _type_name(expected: type | tuple[type, ...]) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__


def _string_list(value: Any, where: str) -> frozenset[str]:
    _expect(value, list, where)
    for index, token in enumerate(value):
        _expect(token, str, f"{where}[{index}]")
    return frozenset(value)


def _parse_item(data: Any, index: int) -> Item:
    where = f"item[{index}]"
    _expect(data, dict, where)

    if "path_in_repo" not in data:
        raise ConfigFormatError(f"{where}: missing required field 'path_in_repo'")
    path_in_repo = normalize_repo_path(_expect(data["path_in_repo"], str, f"{where}.path_in_repo"))

    default_source = data.get("default_source")
    if default_source is not None:
        _expect(default_source, str, f"{where}.default_source")

    sources = _expect(data.get("sources", {}), dict, f"{where}.sources")
    for key, path in sources.items():
        _expect(path, str, f"{where}.sources.{key}")

    return Item(
        path_in_repo=path_in_repo,
        default_source=default_source,
        sources=dict(sources),
        is_hardlink=_expect(data.get("is_hardlink", False), bool, f"{where}.is_hardlink"),
        ignore_collect=_string_list(data.get("ignore_collect", []), f"{where}.ignore_collect"),
        ignore_restore=_string_list(data.get("ignore_restore", []), f"{where}.ignore_restore"),
        ignore=_string_list(data.get("ignore", []), f"{where}.ignore"),
    )


def _parse_aliases(data: Any) -> AliasTable:
    _expect(data, dict, "alias")
    for name, device_id in data.items():
        _expect(device_id, str, f"alias.{name}")
        if not device_id.strip():
            raise ConfigValidationError(f"alias.{name}: device id is empty")
    return AliasTable(data)


def _parse_sync(data: Mapping[str, Any]) -> SyncConfig:
    interval = _expect(
        data.get("sync_interval", DEFAULT_SYNC_INTERVAL), (int, float), "sync_interval"
    )
    if interval <= 0:
        raise ConfigValidationError(f"sync_interval must be positive, got {interval}")

    git = _expect(data.get("git", {}), dict, "git")
    return SyncConfig(
        sync_interval=interval,
        git_remote=_expect(git.get("remote", DEFAULT_GIT_REMOTE), str, "git.remote"),
        git_branch=_expect(git.get("branch", DEFAULT_GIT_BRANCH), str, "git.branch"),
    )


def _check_sources(items: tuple[Item, ...], aliases: AliasTable) -> None:
    for item in items:
        seen: dict[str, str] = {}
        for key in item.sources:
            device_id = aliases.resolve(key)
            if device_id in seen:
                raise ConfigValidationError(
                    f"item '{item.path_in_repo}': sources keys '{seen[device_id]}' and "
                    f"'{key}' refer to the same device"
                )
            seen[device_id] = key


def parse_config(data: Mapping[str, Any]) -> Config:
    """Build a validated Config from parsed TOML data.

    Args:
        data: The decoded TOML document.

    Returns:
        The validated configuration.

    Raises:
        ConfigFormatError: If a field has the wrong type.
        ConfigValidationError: If an invariant is violated (overlapping
            item paths, conflicting sources, non-positive interval).
    """
    version = data.get("version")
    if version is not None:
        version = str(version)

    aliases = _parse_aliases(data.get("alias", {}))
    raw_items = _expect(data.get("item", []), list, "item")
    items = tuple(_parse_item(raw, index) for index, raw in enumerate(raw_items))

    collisions = find_overlapping_paths([item.path_in_repo for item in items])
    if collisions:
        raise DuplicateItemPathError(collisions)
    _check_sources(items, aliases)

    return Config(
        sync=_parse_sync(data),
        aliases=aliases,
        items=items,
        version=version,
    )


def load_config(repo_root: Path) -> Config:
    """Load and validate the config file of a repository.

    Args:
        repo_root: Repository root holding ``.gsb.config.toml``.

    Raises:
        ConfigNotFoundError: If the file does not exist.
        ConfigFormatError: If the file is not valid TOML.
        ConfigValidationError: If the content is invalid.
    """
    config_path = repo_root / CONFIG_FILE_NAME
    if not config_path.is_file():
        raise ConfigNotFoundError(f"Config file '{CONFIG_FILE_NAME}' not found in {repo_root}")

    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigFormatError(f"{config_path}: {e}") from e

    config = parse_config(data)
    logger.debug(f"Loaded {len(config.items)} items from {config_path}")
    return config


def find_repo_root(start: Path | None = None) -> Path:
    """Find the repository root by walking up from a directory.

    Args:
        start: Directory to start from (default: current directory).

    Returns:
        The first directory, from start upwards, containing the config file.

    Raises:
        RepoRootNotFoundError: If no such directory exists.
    """
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        if (directory / CONFIG_FILE_NAME).is_file():
            return directory
    raise RepoRootNotFoundError(
        f"Config file '{CONFIG_FILE_NAME}' not found in {current} or any parent directory"
    )
