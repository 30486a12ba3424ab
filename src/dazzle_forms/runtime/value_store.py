"""
In-memory field value store.

Holds the current value of every registered field and notifies
subscribers after each change batch. Subscriptions are scoped resources:
use them as context managers or call ``close()`` on teardown.

Listener signature::

    def on_change(changed: frozenset[str], values: dict[str, Any]) -> None: ...
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

logger = logging.getLogger(__name__)

ChangeListener = Callable[[frozenset[str], dict[str, Any]], None]

_MISSING = object()


class Subscription:
    """Handle for a store subscription; releases the listener on close."""

    def __init__(self, store: FieldValueStore, listener: ChangeListener):
        self._store = store
        self._listener = listener
        self.closed = False

    def close(self) -> None:
        if not self.closed:
            self._store._unsubscribe(self._listener)
            self.closed = True

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class FieldValueStore:
    """Controlled container for form field values."""

    def __init__(self, initial: Mapping[str, Any] | None = None):
        self._values: dict[str, Any] = dict(initial or {})
        self._listeners: list[ChangeListener] = []
        self._batch_depth = 0
        self._pending: set[str] = set()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """Copy of the current values."""
        return dict(self._values)

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def __contains__(self, name: object) -> bool:
        return name in self._values

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def set_value(self, name: str, value: Any) -> None:
        """Set one field value and notify subscribers."""
        self.set_values({name: value})

    def set_values(self, values: Mapping[str, Any]) -> None:
        """Set several values as a single change batch."""
        changed = {name for name, value in values.items() if self._differs(name, value)}
        self._values.update(values)
        self._record(changed)

    def clear(self, names: Iterable[str], *, notify: bool = True) -> set[str]:
        """
        Remove field entries (unregister), not just blank them.

        Args:
            names: Field names to remove
            notify: Publish the removal to subscribers

        Returns:
            Names that were actually present
        """
        removed = {name for name in names if name in self._values}
        for name in removed:
            del self._values[name]
        if removed:
            logger.debug("Cleared values for %s", sorted(removed))
        if notify:
            self._record(removed)
        return removed

    def publish(self, names: Iterable[str]) -> None:
        """Notify subscribers of entries already changed by a silent ``clear``."""
        self._record(set(names))

    @contextmanager
    def batch(self) -> Iterator[FieldValueStore]:
        """Group writes so subscribers see one notification for all of them."""
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._pending:
                changed = frozenset(self._pending)
                self._pending.clear()
                self._notify(changed)

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def subscribe(self, listener: ChangeListener) -> Subscription:
        self._listeners.append(listener)
        return Subscription(self, listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _unsubscribe(self, listener: ChangeListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _differs(self, name: str, value: Any) -> bool:
        current = self._values.get(name, _MISSING)
        if current is _MISSING or type(current) is not type(value):
            return True
        return bool(current != value)

    def _record(self, changed: set[str]) -> None:
        if not changed:
            return
        if self._batch_depth:
            self._pending |= changed
            return
        self._notify(frozenset(changed))

    def _notify(self, changed: frozenset[str]) -> None:
        for listener in list(self._listeners):
            listener(changed, self.snapshot())
