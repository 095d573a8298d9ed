# sync_manager/services/selection.py
"""
Sélection multiple d'un tableau.

L'état est explicite: ``selected_ids`` + ``last_known_view`` (ids visibles).
La sélection survit aux changements de filtre; seul ``toggle_all`` dépend de
la vue, et dans ce cas les lignes hors vue sont désélectionnées.
"""

import logging
from dataclasses import dataclass
from typing import Callable, FrozenSet, Hashable, Iterable, List, Tuple

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectionChange:
    selected_ids: FrozenSet[Hashable]
    all_selected: bool

    @property
    def count(self) -> int:
        return len(self.selected_ids)


SelectionListener = Callable[[SelectionChange], None]


class SelectionTracker:
    def __init__(self) -> None:
        self._selected: set = set()
        self._view: Tuple[Hashable, ...] = ()
        self._all_selected = False
        self._listeners: List[SelectionListener] = []

    # ---------------------------------------------------------
    #  Lecture
    # ---------------------------------------------------------

    @property
    def selected_ids(self) -> FrozenSet[Hashable]:
        return frozenset(self._selected)

    @property
    def last_known_view(self) -> Tuple[Hashable, ...]:
        return self._view

    @property
    def all_selected(self) -> bool:
        return self._all_selected

    def is_selected(self, record_id: Hashable) -> bool:
        return record_id in self._selected

    def __len__(self) -> int:
        return len(self._selected)

    def subscribe(self, listener: SelectionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---------------------------------------------------------
    #  Mutations
    # ---------------------------------------------------------

    def toggle(self, record_id: Hashable) -> bool:
        """Inverse un id, visible ou non. Retourne le nouvel état."""
        if record_id in self._selected:
            self._selected.discard(record_id)
        else:
            self._selected.add(record_id)
        self._changed()
        return record_id in self._selected

    def toggle_all(self) -> None:
        if self._all_selected:
            self._selected = set()
        else:
            self._selected = set(self._view)
        self._changed()

    def select(self, ids: Iterable[Hashable]) -> None:
        self._selected = set(ids)
        self._changed()

    def clear(self) -> None:
        self._selected = set()
        self._changed()

    def prune(self, existing_ids: Iterable[Hashable]) -> None:
        """Retire les ids qui n'existent plus du tout dans les enregistrements."""
        existing = set(existing_ids)
        stale = self._selected - existing
        if stale:
            self._selected -= stale
            self._changed()

    def update_view(self, view_ids: Iterable[Hashable]) -> None:
        """Nouvelle vue: recalcule ``all_selected``; notifie seulement s'il change."""
        self._view = tuple(view_ids)
        if self._recompute():
            self._notify()

    # ---------------------------------------------------------
    #  Interne
    # ---------------------------------------------------------

    def _recompute(self) -> bool:
        previous = self._all_selected
        self._all_selected = bool(self._view) and all(i in self._selected for i in self._view)
        return previous != self._all_selected

    def _changed(self) -> None:
        self._recompute()
        self._notify()

    def _notify(self) -> None:
        change = SelectionChange(frozenset(self._selected), self._all_selected)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                log.exception("[SELECTION] Abonné en échec")
