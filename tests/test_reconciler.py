"""Tests for PriceReconciler against the in-memory store."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from conftest import MemoryPriceStore, make_record
from spottisahko.exceptions import StorageError
from spottisahko.reconciler import MAX_REPORTED_ERRORS, PriceReconciler, ReconcileSummary

DAY = datetime(2024, 1, 15, tzinfo=timezone.utc)


class TestReconcile:
    """Test upsert semantics and summaries."""

    def test_writes_new_records(self, store):
        now = DAY + timedelta(days=2)
        summary = PriceReconciler(store).reconcile([make_record(h) for h in range(24)], now=now)

        assert summary.updated_count == 24
        assert summary.error_count == 0
        assert len(store.records) == 24

    def test_reconciling_twice_is_idempotent(self, store):
        now = DAY + timedelta(hours=12)
        records = [make_record(h, forecast=h > 12) for h in range(24)]
        reconciler = PriceReconciler(store)

        reconciler.reconcile(records, now=now)
        after_first = dict(store.records)
        reconciler.reconcile(records, now=now)

        assert store.records == after_first

    def test_past_forecast_records_are_settled_before_writing(self, store):
        now = DAY + timedelta(hours=5)
        PriceReconciler(store).reconcile([make_record(3, forecast=True)], now=now)

        assert store.records[make_record(3).key].forecast is False

    def test_later_run_settles_forecast(self, store):
        """Test overlapping fetches: the later run wins and ends settled."""
        reconciler = PriceReconciler(store)
        before = DAY - timedelta(hours=6)
        reconciler.reconcile([make_record(h, forecast=True) for h in range(24)], now=before)
        assert all(r.forecast for r in store.records.values())

        after = DAY + timedelta(days=1)
        reconciler.reconcile([make_record(h, forecast=False) for h in range(24)], now=after)
        assert not any(r.forecast for r in store.records.values())

    def test_late_forecast_never_reverts_settled_record(self, store):
        reconciler = PriceReconciler(store)
        now = DAY + timedelta(days=1)
        reconciler.reconcile([make_record(1, forecast=False)], now=now)

        # A stale fetch claiming forecast=true, reconciled with an earlier clock
        reconciler.reconcile([make_record(1, forecast=True)], now=DAY - timedelta(days=1))

        assert store.records[make_record(1).key].forecast is False

    def test_sweep_never_sets_forecast_true(self, store):
        reconciler = PriceReconciler(store)
        now = DAY + timedelta(hours=10)
        reconciler.reconcile([make_record(h, forecast=h > 10) for h in range(24)], now=now)
        settled = {k for k, r in store.records.items() if not r.forecast}

        for hours in (-48, 0, 5, 30):
            store.sweep_forecast_flags(now + timedelta(hours=hours))
            still_settled = {k for k, r in store.records.items() if not r.forecast}
            assert settled <= still_settled
            settled = still_settled

    def test_sweep_runs_after_batch(self, store):
        now = DAY + timedelta(hours=6)
        store.records[make_record(2).key] = make_record(2, forecast=True)

        summary = PriceReconciler(store).reconcile([], now=now)

        assert store.sweep_calls == 1
        assert summary.swept_count == 1
        assert store.records[make_record(2).key].forecast is False

    def test_single_failure_does_not_abort_batch(self):
        records = [make_record(h) for h in range(24)]
        store = MemoryPriceStore(fail_on=[records[9].timestamp])

        summary = PriceReconciler(store).reconcile(records, now=DAY + timedelta(days=1))

        assert summary.updated_count == 23
        assert summary.error_count == 1
        assert summary.errors == [f"{records[9].timestamp.isoformat()}: connection reset by peer"]
        assert len(store.records) == 23

    def test_duplicates_are_not_errors(self):
        store = MemoryPriceStore(insert_only=True)
        records = [make_record(h) for h in range(3)]
        reconciler = PriceReconciler(store)

        reconciler.reconcile(records, now=DAY + timedelta(days=1))
        summary = reconciler.reconcile(records, now=DAY + timedelta(days=1))

        assert summary.duplicate_count == 3
        assert summary.updated_count == 0
        assert summary.error_count == 0
        assert summary.errors == []

    def test_error_messages_are_bounded(self):
        records = [make_record(h) for h in range(24)]
        store = MemoryPriceStore(fail_on=[r.timestamp for r in records])

        summary = PriceReconciler(store).reconcile(records, now=DAY + timedelta(days=1))

        assert summary.error_count == 24
        assert len(summary.errors) == MAX_REPORTED_ERRORS

    def test_sweep_failure_is_reported(self):
        store = MagicMock()
        store.upsert.return_value = None
        store.sweep_forecast_flags.side_effect = StorageError("statement timeout")

        summary = PriceReconciler(store).reconcile([make_record(0)], now=DAY)

        assert summary.updated_count == 1
        assert summary.error_count == 1
        assert "forecast sweep failed: statement timeout" in summary.errors[0]


class TestReconcileSummary:

    def test_merge_keeps_bound(self):
        first = ReconcileSummary(updated_count=2)
        for i in range(8):
            first.add_error(f"a{i}")
        second = ReconcileSummary(updated_count=3, duplicate_count=1, swept_count=4)
        for i in range(5):
            second.add_error(f"b{i}")

        first.merge(second)

        assert first.updated_count == 5
        assert first.duplicate_count == 1
        assert first.swept_count == 4
        assert first.error_count == 13
        assert first.errors[-2:] == ["b0", "b1"]
        assert len(first.errors) == MAX_REPORTED_ERRORS

    def test_to_dict(self):
        summary = ReconcileSummary(updated_count=23)
        summary.add_error("2024-01-15T09:00:00+00:00: boom")

        assert summary.to_dict() == {
            "updated_count": 23,
            "duplicate_count": 0,
            "error_count": 1,
            "swept_count": 0,
            "errors": ["2024-01-15T09:00:00+00:00: boom"],
        }
        assert summary.success is False
