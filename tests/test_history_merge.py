import json

import pytest

from scouting.history.merge import append_snapshot
from scouting.history.store import HistoryStore
from scouting.models.history import HistoryPoint, Snapshot
from scouting.storage.json_store import ContentError
from tests.conftest import load, write

WED = "2025-10-01"
THU = "2025-10-02"
FULL = Snapshot(rating=86.07, state_rank=3, national_rank=45)


def point(date, rating=None, state=None, national=None) -> HistoryPoint:
    return HistoryPoint(date=date, rating=rating, state_rank=state, national_rank=national)


def as_json(series):
    return [p.to_json() for p in series]


class TestAppendSnapshot:
    def test_first_entry(self):
        series, changed = append_snapshot([], FULL, WED, gated_day=True)
        assert changed
        assert as_json(series) == [
            {"date": WED, "rating": 86.07, "stateRank": 3, "nationalRank": 45}
        ]

    def test_rerun_same_day_is_a_no_op(self):
        series, _ = append_snapshot([], FULL, WED, gated_day=True)
        again, changed = append_snapshot(series, FULL, WED, gated_day=True)
        assert not changed
        assert again == series

    def test_unchanged_values_on_other_days_are_not_written(self):
        series = [point("2025-09-24", 86.07, 3, 45)]
        updated, changed = append_snapshot(series, FULL, THU, gated_day=False)
        assert not changed
        assert as_json(updated) == as_json(series)

    def test_moved_value_on_other_day_writes_partial_point(self):
        series = [point("2025-09-24", 86.07, 3, 45)]
        updated, changed = append_snapshot(
            series, Snapshot(rating=86.5), THU, gated_day=False
        )
        assert changed
        assert as_json(updated)[-1] == {"date": THU, "rating": 86.5}

    def test_same_day_point_is_merged_and_replaced(self):
        series = [point("2025-09-24", 86.07, 3, 45), point(THU, rating=86.5)]
        updated, changed = append_snapshot(
            series, Snapshot(state_rank=2), THU, gated_day=False
        )
        assert changed
        assert len(updated) == 2
        assert as_json(updated)[-1] == {"date": THU, "rating": 86.5, "stateRank": 2}

    def test_gated_day_carries_missing_values_forward(self):
        series = [point("2025-09-24", 85.0, 4, 50)]
        updated, changed = append_snapshot(
            series, Snapshot(rating=86.07), WED, gated_day=True
        )
        assert changed
        assert as_json(updated)[-1] == {
            "date": WED,
            "rating": 86.07,
            "stateRank": 4,
            "nationalRank": 50,
        }

    def test_gated_day_overwrites_earlier_same_day_point(self):
        series = [point(WED, rating=80.0)]
        updated, changed = append_snapshot(series, FULL, WED, gated_day=True)
        assert changed
        assert as_json(updated) == [
            {"date": WED, "rating": 86.07, "stateRank": 3, "nationalRank": 45}
        ]

    def test_points_stay_in_date_order(self):
        series = [point("2025-09-24", 85.0), point("2025-10-08", 87.0)]
        updated, _ = append_snapshot(series, Snapshot(rating=86.0), WED, gated_day=False)
        assert [p.date for p in updated] == ["2025-09-24", WED, "2025-10-08"]

    def test_empty_snapshot_writes_nothing(self):
        updated, changed = append_snapshot([], Snapshot(), WED, gated_day=True)
        assert not changed
        assert updated == []


class TestHistoryStore:
    def test_record_writes_file(self, tmp_path):
        store = HistoryStore(tmp_path / "history")
        assert store.record("rockets", FULL, WED, gated_day=True)
        assert load(tmp_path / "history" / "rockets.json") == [
            {"date": WED, "rating": 86.07, "stateRank": 3, "nationalRank": 45}
        ]

    def test_rerun_leaves_file_byte_identical(self, tmp_path):
        store = HistoryStore(tmp_path)
        store.record("rockets", FULL, WED, gated_day=True)
        before = (tmp_path / "rockets.json").read_bytes()
        assert not store.record("rockets", FULL, WED, gated_day=True)
        assert not store.record("rockets", FULL, THU, gated_day=False)
        assert (tmp_path / "rockets.json").read_bytes() == before

    def test_load_sorts_by_date(self, tmp_path):
        write(
            tmp_path / "rockets.json",
            [{"date": "2025-10-08", "rating": 87}, {"date": "2025-09-24", "rating": 85}],
        )
        assert [p.date for p in HistoryStore(tmp_path).load("rockets")] == [
            "2025-09-24",
            "2025-10-08",
        ]

    def test_dry_run_reports_without_writing(self, tmp_path):
        store = HistoryStore(tmp_path, dry_run=True)
        assert store.record("rockets", FULL, WED, gated_day=True)
        assert not (tmp_path / "rockets.json").exists()

    def test_invalid_history_file(self, tmp_path):
        (tmp_path / "rockets.json").write_text(json.dumps({"date": WED}))
        with pytest.raises(ContentError):
            HistoryStore(tmp_path).load("rockets")

    def test_rank_snapshot(self, tmp_path):
        store = HistoryStore(tmp_path / "history", tmp_path / "snapshot")
        assert store.write_rank_snapshot("rockets", FULL)
        assert load(tmp_path / "snapshot" / "rockets.json") == {
            "stateRank": 3,
            "nationalRank": 45,
        }
        assert not store.write_rank_snapshot("rockets", FULL)
        assert not store.write_rank_snapshot("blues", Snapshot(rating=80.0))
