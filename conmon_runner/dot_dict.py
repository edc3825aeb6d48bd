"""
Dictionary-like object with attribute access and dot-path lookup.

Used for runner configuration, so values can be read either way:

    cfg.monitor.path
    cfg.get("handshake.timeout", 60)
"""

from __future__ import annotations

from collections.abc import ItemsView, KeysView, ValuesView
from typing import Any


class DotDict:
    """
    Dictionary-like object with attribute-style access.

    Nested dictionaries (also inside lists) are converted to DotDict.
    """

    # Keys that would shadow methods callers rely on
    _RESERVED_KEYS = frozenset({"set", "clear", "to_dict", "get", "has"})

    def __init__(self, **kwargs: Any) -> None:
        self.set(**kwargs)

    def set(self, **kwargs: Any) -> DotDict:
        """Set several keys at once; returns self for chaining."""
        for key, val in kwargs.items():
            self._set_item(key, val)
        return self

    def _set_item(self, key: Any, val: Any) -> None:
        if not isinstance(key, str):
            key = str(key)

        if key in self._RESERVED_KEYS:
            raise ValueError(
                f"Key '{key}' is reserved and cannot be used (would shadow method)"
            )

        if isinstance(val, dict):
            setattr(self, key, DotDict(**val))
        elif isinstance(val, list):
            setattr(self, key, list(map(self._map_entry, val)))
        else:
            setattr(self, key, val)

    @staticmethod
    def _map_entry(entry: Any) -> Any:
        if isinstance(entry, dict):
            return DotDict(**entry)
        return entry

    def clear(self) -> None:
        for k in list(self.__dict__.keys()):
            delattr(self, k)

    def to_dict(self) -> dict[str, Any]:
        """Recursively convert to plain dicts and lists."""
        result: dict[str, Any] = {}
        for key, val in self.__dict__.items():
            if isinstance(val, DotDict):
                result[key] = val.to_dict()
            elif isinstance(val, list):
                result[key] = [
                    item.to_dict() if isinstance(item, DotDict) else item
                    for item in val
                ]
            else:
                result[key] = val
        return result

    def keys(self) -> KeysView[str]:
        return self.__dict__.keys()

    def values(self) -> ValuesView[Any]:
        return self.__dict__.values()

    def items(self) -> ItemsView[str, Any]:
        return self.__dict__.items()

    def __contains__(self, key: Any) -> bool:
        return key in self.__dict__

    def __getitem__(self, key: str) -> Any:
        """Dictionary-style access; missing keys read as None."""
        return getattr(self, key) if key in self.__dict__ else None

    def __setitem__(self, key: str, val: Any) -> None:
        if key in self.__dict__:
            delattr(self, key)
        self._set_item(key, val)

    def __len__(self) -> int:
        return len(self.__dict__)

    def __str__(self) -> str:
        return str(self.to_dict())

    def has(self, path: str) -> bool:
        """
        Check if a dot-separated path exists.

        Args:
            path: Dot-separated path to check (e.g., "monitor.path")
        """
        return self._lookup(path) is not _MISSING

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get value by dot-separated path.

        Follows dict.get() semantics: returns ``default`` if the path is not
        found.
        """
        value = self._lookup(path)
        return default if value is _MISSING else value

    def _lookup(self, path: str) -> Any:
        components = [item for item in path.split(".") if item]
        if not components:
            return _MISSING

        cur: Any = self
        for item in components:
            if not isinstance(cur, DotDict) or item not in cur.__dict__:
                return _MISSING
            cur = cur.__dict__[item]
        return cur


_MISSING = object()
