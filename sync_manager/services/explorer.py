# sync_manager/services/explorer.py
"""
Filtre / tri génériques pour les tableaux du tableau de bord.

Le catalogue produits et le journal de synchro sont deux instances du même
moteur: ``compute_view`` est une fonction pure, ``TableExplorer`` garde l'état
d'une vue (enregistrements, filtre, tri, sélection).
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    Hashable,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
    Union,
)

from sync_manager.services.selection import SelectionTracker

T = TypeVar("T")

# valeurs "tout" envoyées par les listes déroulantes
ALL_VALUES = {"all", "all-platforms", "all-statuses", "all-categories"}

ASC = "asc"
DESC = "desc"


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def field_value(record: Any, name: str) -> Any:
    """Valeur d'un champ (attribut ou clé); champ inconnu -> None."""
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _as_datetime(value: Union[date, datetime], end_of_day: bool = False) -> datetime:
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.combine(value, time.max if end_of_day else time.min)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# ---------------------------------------------------------
#  Prédicats
# ---------------------------------------------------------

class Predicate:
    @property
    def active(self) -> bool:
        return True

    def matches(self, record: Any, name: str) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class Search(Predicate):
    """Sous-chaîne insensible à la casse sur un ou plusieurs champs texte."""
    text: str = ""
    fields: Tuple[str, ...] = ()

    @property
    def active(self) -> bool:
        return bool(self.text)

    def matches(self, record: Any, name: str) -> bool:
        needle = self.text.lower()
        for f in self.fields or (name,):
            value = field_value(record, f)
            if value is not None and needle in str(_plain(value)).lower():
                return True
        return False


@dataclass(frozen=True)
class Equals(Predicate):
    value: Any = None

    @property
    def active(self) -> bool:
        v = _plain(self.value)
        return v is not None and v not in ALL_VALUES

    def matches(self, record: Any, name: str) -> bool:
        return _plain(field_value(record, name)) == _plain(self.value)


@dataclass(frozen=True)
class Includes(Predicate):
    """Appartenance à un champ collection (ex: plateformes d'un produit)."""
    value: Any = None

    @property
    def active(self) -> bool:
        v = _plain(self.value)
        return v is not None and v not in ALL_VALUES

    def matches(self, record: Any, name: str) -> bool:
        values = field_value(record, name) or ()
        return _plain(self.value) in {_plain(v) for v in values}


@dataclass(frozen=True)
class DateRange(Predicate):
    """Intervalle inclusif; une date seule couvre toute la journée."""
    start: Optional[Union[date, datetime]] = None
    end: Optional[Union[date, datetime]] = None

    @property
    def active(self) -> bool:
        return self.start is not None or self.end is not None

    def matches(self, record: Any, name: str) -> bool:
        value = field_value(record, name)
        if value is None:
            return False
        value = _as_datetime(value)
        if self.start is not None and value < _as_datetime(self.start):
            return False
        if self.end is not None and value > _as_datetime(self.end, end_of_day=True):
            return False
        return True


FilterSpec = Dict[str, Predicate]


def matches_filter(record: Any, filter_spec: Optional[FilterSpec]) -> bool:
    return all(
        predicate.matches(record, name)
        for name, predicate in (filter_spec or {}).items()
        if predicate.active
    )


# ---------------------------------------------------------
#  Tri
# ---------------------------------------------------------

@dataclass(frozen=True)
class SortSpec:
    field: str
    direction: str = ASC

    def __post_init__(self) -> None:
        if self.direction not in (ASC, DESC):
            raise ValueError(f"direction must be '{ASC}' or '{DESC}'")

    @property
    def descending(self) -> bool:
        return self.direction == DESC

    def toggled(self, field_name: str) -> "SortSpec":
        """Même champ -> inverse le sens; nouveau champ -> ascendant."""
        if field_name == self.field:
            return SortSpec(self.field, ASC if self.descending else DESC)
        return SortSpec(field_name, ASC)


def sort_key(record: Any, name: str) -> Tuple[int, Any]:
    value = _plain(field_value(record, name))
    # collection -> cardinalité (plateformes)
    if isinstance(value, (list, tuple, set, frozenset)):
        return (1, len(value))
    # valeur absente -> la plus ancienne possible
    if value is None:
        return (0, 0)
    if isinstance(value, datetime) and value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (1, value)


def compute_view(
    records: Iterable[T],
    filter_spec: Optional[FilterSpec] = None,
    sort_spec: Optional[SortSpec] = None,
) -> List[T]:
    """Filtre (ET logique) puis tri stable. Ne modifie jamais ``records``."""
    view = [r for r in records if matches_filter(r, filter_spec)]
    if sort_spec is not None:
        # sorted(reverse=True) reste stable: les égalités gardent l'ordre d'entrée
        view = sorted(view, key=lambda r: sort_key(r, sort_spec.field), reverse=sort_spec.descending)
    return view


# ---------------------------------------------------------
#  Etat d'une vue
# ---------------------------------------------------------

def _default_id(record: Any) -> Hashable:
    return field_value(record, "id")


@dataclass
class TableExplorer(Generic[T]):
    """Vue filtrée/triée + sélection d'un tableau."""

    records: List[T] = field(default_factory=list)
    filter_spec: FilterSpec = field(default_factory=dict)
    sort_spec: Optional[SortSpec] = None
    id_of: Callable[[T], Hashable] = _default_id
    selection: SelectionTracker = field(default_factory=SelectionTracker)

    def __post_init__(self) -> None:
        self.records = list(self.records)
        self._view: List[T] = []
        self._refresh()

    @property
    def view(self) -> List[T]:
        return list(self._view)

    def view_ids(self) -> List[Hashable]:
        return [self.id_of(r) for r in self._view]

    def _refresh(self) -> None:
        self._view = compute_view(self.records, self.filter_spec, self.sort_spec)
        self.selection.update_view(self.view_ids())

    def set_records(self, records: Sequence[T]) -> None:
        """Remplace les enregistrements; les ids disparus sont retirés de la sélection."""
        self.records = list(records)
        self.selection.prune({self.id_of(r) for r in self.records})
        self._refresh()

    def remove_records(self, ids: Iterable[Hashable]) -> None:
        gone = set(ids)
        self.set_records([r for r in self.records if self.id_of(r) not in gone])

    def set_filter(self, filter_spec: FilterSpec) -> None:
        self.filter_spec = dict(filter_spec)
        self._refresh()

    def update_filter(self, **predicates: Predicate) -> None:
        self.set_filter({**self.filter_spec, **predicates})

    def clear_filters(self) -> None:
        self.set_filter({})

    def set_sort(self, sort_spec: Optional[SortSpec]) -> None:
        self.sort_spec = sort_spec
        self._refresh()

    def sort_by(self, field_name: str) -> SortSpec:
        if self.sort_spec is None:
            spec = SortSpec(field_name, ASC)
        else:
            spec = self.sort_spec.toggled(field_name)
        self.set_sort(spec)
        return spec

    def facet_values(self, name: str) -> List[Any]:
        """Valeurs distinctes d'un champ, dans l'ordre d'apparition."""
        seen: Dict[Any, None] = {}
        for r in self.records:
            value = _plain(field_value(r, name))
            if value is not None:
                seen.setdefault(value, None)
        return list(seen)

    def toggle(self, record_id: Hashable) -> bool:
        """Inverse la sélection d'un enregistrement; id inconnu -> sans effet."""
        if record_id not in {self.id_of(r) for r in self.records}:
            return self.selection.is_selected(record_id)
        return self.selection.toggle(record_id)

    def selected_records(self) -> List[T]:
        selected = self.selection.selected_ids
        return [r for r in self.records if self.id_of(r) in selected]
