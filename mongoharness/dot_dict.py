"""
Dictionary-like object with attribute access and dot-notation paths.

Configuration sections are DotDicts so callers can write either
``cfg.mongo.uri`` or ``cfg.get("mongo.uri")``.
"""

import builtins
from collections.abc import ItemsView, KeysView, ValuesView
from typing import Any


class DotDict:
    """
    Dictionary-like object with attribute-style access and nested structure support.

    Nested dictionaries are converted to DotDict instances on assignment, and
    lists have their dictionary entries converted as well.
    """

    # Keys that would shadow methods and are not allowed.
    _RESERVED_KEYS = frozenset({"set", "clear", "dict", "to_dict", "get", "has"})

    def __init__(self, **kwargs: Any) -> None:
        self.set(**kwargs)

    def set(self, **kwargs: Any) -> "DotDict":
        """
        Set multiple key-value pairs, with automatic nested object creation.

        Returns:
            self: For method chaining
        """
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

    def clear(self) -> None:
        """Clear all attributes from the object."""
        for k in list(self.__dict__.keys()):
            delattr(self, k)

    @staticmethod
    def _map_entry(entry: Any) -> Any:
        if isinstance(entry, dict):
            return DotDict(**entry)
        return entry

    def dict(self) -> dict[str, Any]:
        """
        Convert the object to a dictionary, one level of DotDicts at a time.

        Private attributes (leading underscore) are left out.
        """
        result = {}
        for key, val in self.__dict__.items():
            if key.startswith("_"):
                continue
            result[key] = val.dict() if isinstance(val, DotDict) else val
        return result

    def to_dict(self) -> builtins.dict[str, Any]:
        """Recursively convert DotDict and all nested structures to plain dicts."""
        result: dict[str, Any] = {}
        for key, val in self.__dict__.items():
            if key.startswith("_"):
                continue
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

    def _public(self) -> builtins.dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}

    def keys(self) -> KeysView[str]:
        return self._public().keys()

    def values(self) -> ValuesView[Any]:
        return self._public().values()

    def items(self) -> ItemsView[str, Any]:
        return self._public().items()

    def __contains__(self, key: Any) -> bool:
        return key in self._public()

    def __getitem__(self, key: str) -> Any:
        return getattr(self, key) if key in self.__dict__ else None

    def __setitem__(self, key: str, val: Any) -> None:
        if key in self.__dict__:
            delattr(self, key)
        self._set_item(key, val)

    def __len__(self) -> int:
        return len(self.dict())

    def __str__(self) -> str:
        return str(self.dict())

    def has(self, path: str) -> bool:
        """
        Check if a dot-separated path exists in the object.

        Args:
            path: Dot-separated path to check (e.g., "mongo.uri")

        Returns:
            bool: True if the path exists
        """
        if not path:
            return False

        cur: Any = self.__dict__
        for item in path.split("."):
            if not item:
                continue
            if not isinstance(cur, dict) or item not in cur:
                return False
            cur = cur[item]
            if isinstance(cur, DotDict):
                cur = cur.__dict__
        return True

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get value by dot-separated path.

        Follows dict.get() semantics: returns default if the path is not found.

        Args:
            path: Dot-separated path to get (e.g., "mongo.codes.user_not_found")
            default: Value to return if path not found

        Returns:
            Found value or default
        """
        if not path:
            return default

        cur: Any = self
        for item in (p for p in path.split(".") if p):
            if not isinstance(cur, DotDict) or item not in cur.__dict__:
                return default
            cur = cur.__dict__[item]
        return cur


class DotDictPathNotFoundError(Exception):
    """
    Exception raised when a path is not found in a DotDict.

    Attributes:
        obj: The DotDict instance where the path was not found
        path: The path that was not found
    """

    def __init__(self, obj: DotDict, path: str) -> None:
        super().__init__(f"Path '{path}' not found")
        self.obj = obj
        self.path = path
