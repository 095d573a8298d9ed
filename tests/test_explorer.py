"""Tests for the filter/sort engine and table explorer."""

from datetime import date, datetime, timedelta, timezone

import pytest

from sync_manager.models.product import ProductRead, ProductSyncStatus
from sync_manager.models.sync import LogStatus, PlatformId
from sync_manager.services.explorer import (
    ASC,
    DESC,
    DateRange,
    Equals,
    Includes,
    Search,
    SortSpec,
    TableExplorer,
    compute_view,
    sort_key,
)
from tests.conftest import T0, make_entry

LOJA = PlatformId.LOJA_INTEGRADA
WOO = PlatformId.WOOCOMMERCE


def product(pid, sku, name, category="Hair", inventory=0, price=10.0, status="synced", platforms=(), last=None):
    return ProductRead(
        id=pid,
        sku=sku,
        name=name,
        category=category,
        inventory=inventory,
        price=price,
        sync_status=status,
        platforms=list(platforms),
        last_synced_at=last,
    )


@pytest.fixture
def catalog():
    return [
        product(1, "TAPE-18", "Tape Extension", category="Tape", inventory=5, price=120.0, platforms=[LOJA, WOO]),
        product(2, "GEN-20", "Genius Weft", category="Weft", inventory=0, price=250.0, status="error", platforms=[WOO]),
        product(3, "HALO-16", "Halo Classic", category="Halo", inventory=12, price=90.0, status="pending"),
        product(4, "TAPE-20", "Tape Long", category="Tape", inventory=5, price=130.0, platforms=[LOJA],
                last=T0),
    ]


class TestFiltering:
    def test_status_filter_with_timestamp_desc_scenario(self) -> None:
        t1, t2, t3 = T0, T0 + timedelta(minutes=1), T0 + timedelta(minutes=2)
        logs = [
            make_entry(LogStatus.SUCCESS, timestamp=t1),
            make_entry(LogStatus.ERROR, timestamp=t2),
            make_entry(LogStatus.ERROR, timestamp=t3),
        ]
        view = compute_view(logs, {"status": Equals("error")}, SortSpec("timestamp", DESC))
        assert [e.timestamp for e in view] == [t3, t2]
        assert all(e.status is LogStatus.ERROR for e in view)

    def test_search_is_case_insensitive_substring(self, catalog) -> None:
        view = compute_view(catalog, {"sku": Search("tape", fields=("sku", "name"))})
        assert [p.id for p in view] == [1, 4]

        view = compute_view(catalog, {"sku": Search("WEFT", fields=("sku", "name"))})
        assert [p.id for p in view] == [2]

    def test_filters_are_conjunctive(self, catalog) -> None:
        spec = {
            "category": Equals("Tape"),
            "platforms": Includes(WOO),
        }
        assert [p.id for p in compute_view(catalog, spec)] == [1]

    def test_all_values_are_inactive(self, catalog) -> None:
        spec = {
            "sku": Search(""),
            "category": Equals("all-categories"),
            "sync_status": Equals("all-statuses"),
            "platforms": Includes("all-platforms"),
            "last_synced_at": DateRange(),
        }
        assert compute_view(catalog, spec) == catalog

    def test_enum_filter_accepts_raw_value(self, catalog) -> None:
        view = compute_view(catalog, {"sync_status": Equals("pending")})
        assert [p.id for p in view] == [3]
        view = compute_view(catalog, {"sync_status": Equals(ProductSyncStatus.ERROR)})
        assert [p.id for p in view] == [2]

    def test_date_range_is_inclusive(self) -> None:
        day = datetime(2024, 7, 15, tzinfo=timezone.utc)
        logs = [
            make_entry(timestamp=day - timedelta(seconds=1)),
            make_entry(timestamp=day),
            make_entry(timestamp=day + timedelta(hours=23, minutes=59)),
            make_entry(timestamp=day + timedelta(days=1)),
        ]
        view = compute_view(logs, {"timestamp": DateRange(date(2024, 7, 15), date(2024, 7, 15))})
        assert view == logs[1:3]

    def test_date_range_excludes_missing_values(self, catalog) -> None:
        view = compute_view(catalog, {"last_synced_at": DateRange(start=T0 - timedelta(days=1))})
        assert [p.id for p in view] == [4]

    def test_no_match_and_empty_input(self, catalog) -> None:
        assert compute_view(catalog, {"category": Equals("Nope")}) == []
        assert compute_view([], {"category": Equals("Tape")}, SortSpec("name")) == []

    def test_unknown_field_is_treated_as_missing(self, catalog) -> None:
        assert compute_view(catalog, {"colour": Equals("red")}) == []
        assert compute_view(catalog, None, SortSpec("colour")) == catalog

    def test_filtering_is_idempotent(self, catalog) -> None:
        spec = {"category": Equals("Tape")}
        sort = SortSpec("price", DESC)
        once = compute_view(catalog, spec, sort)
        assert compute_view(once, spec, sort) == once

    def test_input_is_not_mutated(self, catalog) -> None:
        before = list(catalog)
        compute_view(catalog, {"category": Equals("Tape")}, SortSpec("price", DESC))
        assert catalog == before

    def test_works_on_plain_dicts(self) -> None:
        rows = [{"id": 1, "name": "b"}, {"id": 2, "name": "a"}]
        assert [r["id"] for r in compute_view(rows, None, SortSpec("name"))] == [2, 1]


class TestSorting:
    def test_sort_is_stable_both_directions(self, catalog) -> None:
        # 1 and 4 share inventory=5
        asc = compute_view(catalog, None, SortSpec("inventory", ASC))
        assert [p.id for p in asc] == [2, 1, 4, 3]
        desc = compute_view(catalog, None, SortSpec("inventory", DESC))
        assert [p.id for p in desc] == [3, 1, 4, 2]

    def test_even_number_of_toggles_keeps_tie_order(self, catalog) -> None:
        spec = SortSpec("inventory")
        for _ in range(4):
            spec = spec.toggled("inventory")
        assert spec == SortSpec("inventory", ASC)
        assert [p.id for p in compute_view(catalog, None, spec)] == [2, 1, 4, 3]

    def test_collection_sorts_by_cardinality(self, catalog) -> None:
        view = compute_view(catalog, None, SortSpec("platforms"))
        assert [len(p.platforms) for p in view] == [0, 1, 1, 2]
        # ties (2 and 4 have one platform) keep input order
        assert [p.id for p in view] == [3, 2, 4, 1]

    def test_missing_timestamp_sorts_earliest(self, catalog) -> None:
        view = compute_view(catalog, None, SortSpec("last_synced_at", DESC))
        assert view[0].id == 4
        view = compute_view(catalog, None, SortSpec("last_synced_at", ASC))
        assert view[-1].id == 4
        assert [p.id for p in view[:3]] == [1, 2, 3]

    def test_toggle_rule(self) -> None:
        spec = SortSpec("name")
        spec = spec.toggled("name")
        assert spec == SortSpec("name", DESC)
        spec = spec.toggled("price")
        assert spec == SortSpec("price", ASC)

    def test_invalid_direction(self) -> None:
        with pytest.raises(ValueError):
            SortSpec("name", "up")

    def test_sort_key_enum_uses_value(self, catalog) -> None:
        assert sort_key(catalog[1], "sync_status") == (1, "error")


class TestTableExplorer:
    def test_view_follows_filter_and_sort(self, catalog) -> None:
        explorer = TableExplorer(catalog, sort_spec=SortSpec("name"))
        assert [p.name for p in explorer.view] == ["Genius Weft", "Halo Classic", "Tape Extension", "Tape Long"]

        explorer.update_filter(category=Equals("Tape"))
        assert [p.id for p in explorer.view] == [1, 4]

        assert explorer.sort_by("name") == SortSpec("name", DESC)
        assert [p.id for p in explorer.view] == [4, 1]

        assert explorer.sort_by("price") == SortSpec("price", ASC)
        explorer.clear_filters()
        assert [p.id for p in explorer.view] == [3, 1, 4, 2]

    def test_first_sort_is_ascending(self, catalog) -> None:
        explorer = TableExplorer(catalog)
        assert explorer.sort_by("sku") == SortSpec("sku", ASC)

    def test_selection_survives_filtering(self, catalog) -> None:
        explorer = TableExplorer(catalog)
        explorer.selection.toggle(2)
        explorer.update_filter(category=Equals("Tape"))
        assert explorer.selection.selected_ids == {2}
        assert [p.id for p in explorer.selected_records()] == [2]

    def test_removed_records_are_pruned_from_selection(self, catalog) -> None:
        explorer = TableExplorer(catalog)
        explorer.selection.toggle(1)
        explorer.selection.toggle(2)
        explorer.remove_records([2])
        assert explorer.selection.selected_ids == {1}
        assert [p.id for p in explorer.records] == [1, 3, 4]

    def test_narrowing_filter_makes_all_selected(self, catalog) -> None:
        explorer = TableExplorer(catalog)
        explorer.selection.toggle(1)
        explorer.selection.toggle(4)
        assert explorer.selection.all_selected is False

        explorer.update_filter(category=Equals("Tape"))
        assert explorer.selection.all_selected is True

    def test_facet_values(self, catalog) -> None:
        explorer = TableExplorer(catalog)
        assert explorer.facet_values("category") == ["Tape", "Weft", "Halo"]

    def test_toggle_ignores_unknown_ids(self, catalog) -> None:
        explorer = TableExplorer(catalog)
        changes = []
        explorer.selection.subscribe(changes.append)

        assert explorer.toggle(42) is False
        assert explorer.selection.selected_ids == frozenset()
        assert changes == []

        assert explorer.toggle(3) is True
        assert explorer.toggle(3) is False
        assert len(changes) == 2

    def test_toggle_works_on_plain_dicts(self) -> None:
        explorer = TableExplorer([{"id": 1}, {"id": 2}])
        explorer.toggle(42)
        explorer.toggle(2)
        assert explorer.selection.selected_ids == {2}
