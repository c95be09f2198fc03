"""Per-device item resolution.

Turns a configured Item into a ResolvedItem for one device: which local
path to use and whether the device ignores the item in each direction.
Resolution is pure; it reads no files and holds no state besides the alias
table, so it can be repeated freely.
"""

from __future__ import annotations

from pathlib import Path

from gitsyncbackup.core.aliases import AliasTable
from gitsyncbackup.core.config import Item
from gitsyncbackup.core.types import DeviceId
from gitsyncbackup.sync.types import ResolvedItem


def expand_local_path(raw: str) -> Path:
    """Expand a leading ``~`` in a configured local path."""
    return Path(raw).expanduser()


class ItemResolver:
    """Resolve items against the alias table.

    A device of None stands for a machine whose id could not be read: only
    ``default_source`` applies and no ignore entry can match it.
    """

    def __init__(self, aliases: AliasTable | None = None) -> None:
        self._aliases = aliases or AliasTable()

    @property
    def aliases(self) -> AliasTable:
        """Get the alias table used for resolution."""
        return self._aliases

    def local_source(self, item: Item, device: DeviceId | None) -> str | None:
        """Get the configured local path of an item on a device."""
        if device is not None:
            for key, path in item.sources.items():
                if self._aliases.resolve(key) == device:
                    return path
        return item.default_source

    def resolve(self, item: Item, device: DeviceId | None) -> ResolvedItem:
        """Resolve one item for one device.

        Args:
            item: The configured item.
            device: Current device id, or None if unknown.

        Returns:
            The resolved item. ``ignore`` is unioned into both
            ``ignore_collect`` and ``ignore_restore``.
        """
        raw_path = self.local_source(item, device)
        local_path = expand_local_path(raw_path) if raw_path else None

        skip_collect = skip_restore = False
        if device is not None:
            skip_collect = device in self._aliases.resolve_all(item.ignore_collect | item.ignore)
            skip_restore = device in self._aliases.resolve_all(item.ignore_restore | item.ignore)

        return ResolvedItem(
            repo_path=item.path_in_repo,
            local_path=local_path,
            skip_collect=skip_collect,
            skip_restore=skip_restore,
            is_hardlink=item.is_hardlink,
        )
