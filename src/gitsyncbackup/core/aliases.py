"""Device alias table.

Aliases give human-readable names to device ids so the config file can say
``laptop`` instead of a 32-character machine id. Resolution is permissive:
a token that is not a known alias is taken to be a device id already.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from gitsyncbackup.core.types import DeviceId


class AliasTable:
    """Bidirectional alias name <-> device id lookup.

    Alias names are unique (they are mapping keys). Several names may point
    at the same device; ``alias_for`` then returns the first one declared.
    """

    def __init__(self, aliases: Mapping[str, DeviceId] | None = None) -> None:
        self._by_name: dict[str, DeviceId] = dict(aliases or {})
        self._by_id: dict[DeviceId, str] = {}
        for name, device_id in self._by_name.items():
            self._by_id.setdefault(device_id, name)

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __repr__(self) -> str:
        return f"AliasTable({self._by_name!r})"

    def resolve(self, token: str) -> DeviceId:
        """Resolve an alias or device id token to a device id.

        Args:
            token: Alias name or literal device id.

        Returns:
            The aliased device id, or the token unchanged if it is not an alias.
        """
        return self._by_name.get(token, token)

    def resolve_all(self, tokens: Iterable[str]) -> frozenset[DeviceId]:
        """Resolve every token in an ignore list."""
        return frozenset(self.resolve(token) for token in tokens)

    def alias_for(self, device_id: DeviceId) -> str | None:
        """Get the alias of a device id, for display only."""
        return self._by_id.get(device_id)

    def display_name(self, device_id: DeviceId | None) -> str:
        """Get a label for log and commit messages."""
        if device_id is None:
            return "unknown-device"
        return self._by_id.get(device_id, device_id)
