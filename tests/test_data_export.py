"""Tests for balance/services/data_export.py

Export writes the full snapshot; import validates everything first and
rejects malformed input without touching existing state.
"""

import csv
import json

import pytest

from balance.models import Rating
from balance.services import DataService
from balance.services.data_export import export_logs_to_csv, export_snapshot, export_to_json, import_snapshot


@pytest.fixture
def populated(store, generator, lifecycle, clock):
    """Store with today's plan and one completed task."""
    plan = generator.generate(clock.today())
    lifecycle.complete(clock.today(), plan.items[0].id, "win", 45)
    return store


# ─────────────────────────────────────────────────────────────────────────────
# Export
# ─────────────────────────────────────────────────────────────────────────────


class TestExport:
    """Tests for snapshot export."""

    def test_export_contains_every_collection(self, populated):
        data = json.loads(export_snapshot(populated))

        assert set(data) == {"version", "pillars", "categories", "subcategories", "dayPlans", "logs", "settings"}
        assert list(data["dayPlans"]) == ["2024-01-10"]
        assert data["logs"][0]["rating"] == "win"
        assert data["settings"]["specialRollOver"] is True

    def test_export_then_import_into_fresh_store(self, populated, clock):
        fresh = DataService(clock=clock)

        assert import_snapshot(fresh, export_snapshot(populated)) is True

        assert fresh.to_snapshot() == populated.to_snapshot()

    def test_export_to_json_file(self, populated, tmp_path):
        path = export_to_json(populated, tmp_path / "exports")

        assert path.exists()
        assert json.loads(path.read_text(encoding="utf-8"))["logs"]

    def test_export_logs_to_csv(self, populated, tmp_path):
        path = export_logs_to_csv(populated, tmp_path / "logs.csv")

        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 1
        assert rows[0]["rating"] == "win"
        assert rows[0]["minutes"] == "45"

    def test_empty_log_is_not_exported(self, store, tmp_path):
        assert export_logs_to_csv(store, tmp_path / "logs.csv") is None


# ─────────────────────────────────────────────────────────────────────────────
# Import
# ─────────────────────────────────────────────────────────────────────────────


class TestImport:
    """Tests for snapshot import."""

    @pytest.mark.parametrize("payload", [
        "{not json",
        "[1, 2, 3]",
        "{}",
        json.dumps({"pillars": [{"id": "p1"}]}),
        json.dumps({"categories": [{"id": "c1", "pillarId": "p1", "name": "Review", "recurrence": "weekly"}]}),
        json.dumps({"logs": [{"id": "l1", "date": "2024-01-10", "pillarId": "p", "categoryId": "c",
                              "rating": "great", "timestamp": 1}]}),
        json.dumps({"dayPlans": {"2024-01-10": {"date": "2024-01-11", "items": []}}}),
        json.dumps({"dayPlans": {"2024-01-10": {"date": "2024-01-10", "items": [
            {"id": "i1", "date": "2024-01-10", "pillarId": "p", "categoryId": "c", "title": "T", "start": "7am"}
        ]}}}),
    ])
    def test_malformed_import_leaves_state_unchanged(self, populated, storage, payload):
        before = populated.to_snapshot()
        saves = storage.save_count

        assert import_snapshot(populated, payload) is False

        assert populated.to_snapshot() == before
        assert storage.save_count == saves

    def test_partial_import_replaces_only_present_sections(self, populated):
        pillars_before = populated.to_snapshot()["pillars"]
        payload = {"settings": {"userName": "Grace", "chartType": "bar"}}

        assert import_snapshot(populated, json.dumps(payload)) is True

        assert populated.settings.user_name == "Grace"
        assert populated.to_snapshot()["pillars"] == pillars_before
        assert len(populated.logs) == 1

    def test_collections_are_replaced_wholesale(self, populated):
        payload = {"pillars": [{"id": "mind", "name": "Mind", "color": "#123456", "order": 0}]}

        assert import_snapshot(populated, json.dumps(payload)) is True

        assert [p.id for p in populated.pillars] == ["mind"]

    def test_legacy_numeric_ratings_are_mapped(self, store):
        payload = {"logs": [
            {"id": f"l{value}", "date": "2024-01-10", "pillarId": "health", "categoryId": "exercise",
             "rating": value, "minutes": 10, "timestamp": value}
            for value in (5, 4, 2, 0)
        ]}

        assert import_snapshot(store, json.dumps(payload)) is True

        assert [entry.rating for entry in store.logs] == [Rating.WIN, Rating.GOOD, Rating.BAD, Rating.SKIP]

    def test_import_advances_timestamp_counter(self, store):
        payload = {"logs": [{"id": "l1", "date": "2024-01-10", "pillarId": "health", "categoryId": "exercise",
                             "rating": "win", "minutes": 10, "timestamp": 9_999_999_999_999}]}

        import_snapshot(store, json.dumps(payload))

        assert store.next_timestamp() == 10_000_000_000_000

    def test_successful_import_is_saved(self, store, storage):
        payload = {"settings": {"userName": "Grace"}}

        import_snapshot(store, json.dumps(payload))

        assert storage.load()["settings"]["userName"] == "Grace"
