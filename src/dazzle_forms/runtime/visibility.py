"""
Reactive visibility tracking for conditional fields.

Subscribes to a FieldValueStore and keeps ``visibility: name -> bool``
current. Fields without a ``conditional`` block are always visible.

Each change batch is handled as one atomic cycle:

1. Re-evaluate the conditional fields that watch a changed field
2. Clear the values of fields that just became hidden
3. Repeat while clearing changed a watched field (hidden-field cascades)
4. Tell store subscribers which values were cleared, in one notification
5. Publish the new map to listeners, only if any entry changed

Neither store subscribers nor visibility listeners observe a partially
updated cycle.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from types import MappingProxyType
from typing import Any

from dazzle_forms.runtime.condition_evaluator import evaluate_condition
from dazzle_forms.runtime.value_store import FieldValueStore, Subscription
from dazzle_forms.specs.schema import FieldSpec, FormSchemaSpec

logger = logging.getLogger(__name__)

VisibilityListener = Callable[[dict[str, bool]], None]


class VisibilityTracker:
    """Maintains the visibility map for one schema bound to one store."""

    def __init__(self, schema: FormSchemaSpec | Iterable[FieldSpec], store: FieldValueStore):
        fields = schema.all_fields() if isinstance(schema, FormSchemaSpec) else list(schema)
        self._store = store
        self._conditional: dict[str, FieldSpec] = {}
        self._visibility: dict[str, bool] = {}
        for field in fields:
            self._visibility[field.name] = True
            if field.conditional is not None:
                self._conditional[field.name] = field
            else:
                self._conditional.pop(field.name, None)

        # Reverse index: controlling field -> conditional fields that read it
        self._watchers: dict[str, set[str]] = {}
        for name, field in self._conditional.items():
            for watched in field.conditional.referenced_fields() if field.conditional else ():
                self._watchers.setdefault(watched, set()).add(name)

        self._listeners: list[VisibilityListener] = []
        self._subscription: Subscription | None = None
        self._announcing = False

        self._recompute(set(self._conditional), initial=True)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> VisibilityTracker:
        """Subscribe to the store. Idempotent."""
        if self._subscription is None:
            self._subscription = self._store.subscribe(self._on_values_changed)
        return self

    def close(self) -> None:
        """Release the store subscription."""
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    def __enter__(self) -> VisibilityTracker:
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def is_active(self) -> bool:
        return self._subscription is not None

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def visibility(self) -> MappingProxyType[str, bool]:
        """Read-only view of the current visibility map."""
        return MappingProxyType(self._visibility)

    def is_visible(self, name: str) -> bool:
        return self._visibility.get(name, True)

    @property
    def hidden_fields(self) -> list[str]:
        return [name for name, visible in self._visibility.items() if not visible]

    @property
    def watched_fields(self) -> set[str]:
        """Fields whose changes can affect visibility."""
        return set(self._watchers)

    def add_listener(self, listener: VisibilityListener) -> Callable[[], None]:
        """Register a listener for published visibility changes.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # -------------------------------------------------------------------------
    # Reaction
    # -------------------------------------------------------------------------

    def _on_values_changed(self, changed: frozenset[str], values: dict[str, Any]) -> None:
        if self._announcing:
            return
        affected = self._affected_by(changed)
        if affected:
            self._recompute(affected)

    def _affected_by(self, changed: Iterable[str]) -> set[str]:
        affected: set[str] = set()
        for name in changed:
            affected |= self._watchers.get(name, set())
        return affected

    def _recompute(self, affected: set[str], initial: bool = False) -> None:
        next_map = dict(self._visibility)
        values = self._store.snapshot()
        pending = set(affected)
        cleared: set[str] = set()

        # Cascades settle within one pass per conditional field
        for _ in range(len(self._conditional) + 1):
            if not pending:
                break
            for name in pending:
                next_map[name] = evaluate_condition(self._conditional[name].conditional, values)

            pending = set()
            # Clear every hidden field still holding a value, not only the
            # ones that flipped, so initial data for hidden fields is dropped
            to_clear = [n for n, visible in next_map.items() if not visible and n in values]
            if to_clear:
                removed = self._store.clear(to_clear, notify=False)
                for name in removed:
                    values.pop(name, None)
                cleared |= removed
                pending = self._affected_by(removed)

        changed = next_map != self._visibility
        previous = self._visibility
        self._visibility = next_map

        # Removals reach store subscribers only once the cycle has settled
        if cleared:
            self._announcing = True
            try:
                self._store.publish(cleared)
            finally:
                self._announcing = False

        if not changed or initial:
            return

        flipped = sorted(n for n in next_map if next_map[n] != previous[n])
        logger.debug("Visibility changed for %s", flipped)

        snapshot = dict(next_map)
        for listener in list(self._listeners):
            listener(snapshot)
