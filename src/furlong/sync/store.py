"""Shared record store protocol and an in-memory implementation.

Paths are slash-separated (``rooms/1234/players/p1``). ``update`` takes a
mapping whose keys may themselves be relative slash paths, so one call can
touch several nested locations. Writing ``None`` deletes a location.
"""

import copy
from collections.abc import Callable, Mapping
from typing import Any, Protocol

RecordListener = Callable[[Any], None]
Unsubscribe = Callable[[], None]


class RecordStore(Protocol):
    """Realtime record store used to mirror race state across clients."""

    def read(self, path: str) -> Any: ...

    def update(self, path: str, fields: Mapping[str, Any]) -> None: ...

    def subscribe(self, path: str, callback: RecordListener) -> Unsubscribe: ...

    def on_disconnect(self, path: str, fields: Mapping[str, Any]) -> None: ...


def split_path(path: str) -> list[str]:
    return [part for part in path.strip("/").split("/") if part]


def _is_related(a: list[str], b: list[str]) -> bool:
    """Whether one path is a prefix of the other."""
    n = min(len(a), len(b))
    return a[:n] == b[:n]


class InMemoryRecordStore:
    """Single-process record store for local races and tests."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._root: dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._listeners: list[tuple[list[str], RecordListener]] = []
        self._disconnect_hooks: list[tuple[list[str], dict[str, Any]]] = []

    def read(self, path: str) -> Any:
        """Return a deep copy of the value at ``path`` (None if absent)."""
        node: Any = self._root
        for part in split_path(path):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return copy.deepcopy(node)

    def set(self, path: str, value: Any) -> None:
        """Replace the whole value at ``path``."""
        self._write(split_path(path), copy.deepcopy(value))
        self._notify(split_path(path))

    def update(self, path: str, fields: Mapping[str, Any]) -> None:
        """Write each field (relative path) beneath ``path`` in one change."""
        base = split_path(path)
        for key, value in fields.items():
            self._write(base + split_path(key), copy.deepcopy(value))
        self._notify(base)

    def subscribe(self, path: str, callback: RecordListener) -> Unsubscribe:
        """Push the full record at ``path`` now and after every related change."""
        entry = (split_path(path), callback)
        self._listeners.append(entry)
        callback(self.read(path))

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unsubscribe

    def on_disconnect(self, path: str, fields: Mapping[str, Any]) -> None:
        """Register fields to write at ``path`` when its owner drops."""
        self._disconnect_hooks.append((split_path(path), dict(fields)))

    def drop(self, path: str = "") -> int:
        """Simulate a connection drop for every hook at or beneath ``path``.

        Returns:
            Number of hooks applied
        """
        prefix = split_path(path)
        fired = [(p, f) for p, f in self._disconnect_hooks if p[: len(prefix)] == prefix]
        self._disconnect_hooks = [(p, f) for p, f in self._disconnect_hooks if (p, f) not in fired]
        for hook_path, fields in fired:
            self.update("/".join(hook_path), fields)
        return len(fired)

    def _write(self, parts: list[str], value: Any) -> None:
        if not parts:
            self._root = value if isinstance(value, dict) else {}
            return
        node = self._root
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                if value is None:
                    return
                child = node[part] = {}
            node = child
        if value is None:
            node.pop(parts[-1], None)
        else:
            node[parts[-1]] = value

    def _notify(self, changed: list[str]) -> None:
        for path, callback in list(self._listeners):
            if _is_related(path, changed):
                callback(self.read("/".join(path)))
