"""Tests for the append-only in-memory ledger store."""

import threading
from datetime import UTC, datetime, timedelta

import pytest

from stock_kernel.domain.movement import MovementFilter, MovementRecord, MovementType
from stock_kernel.domain.movement_factory import create_stock_in, create_stock_out
from stock_kernel.exceptions import MovementAlreadyAppendedError, MovementValidationError
from stock_kernel.services.ledger_store import InMemoryLedgerStore

T = datetime(2024, 5, 1, 10, 0, tzinfo=UTC)


def _receipt(quantity=10, company_id=1, site_id=1, book_id=7, days=0):
    return create_stock_in(
        company_id, site_id, book_id, quantity, "2.50", timestamp=T + timedelta(days=days),
    )


class TestAppend:

    def setup_method(self):
        self.store = InMemoryLedgerStore()

    def test_ids_assigned_sequentially(self):
        assert self.store.append(_receipt()) == 1
        assert self.store.append(_receipt()) == 2
        assert [r.id for r in self.store.query(1)] == [1, 2]

    def test_stored_copy_carries_id_original_untouched(self):
        record = _receipt()
        self.store.append(record)
        stored = self.store.query(1)[0]
        assert stored.id == 1
        assert record.id is None
        assert stored.quantity == record.quantity

    def test_invalid_record_rejected(self):
        bad = MovementRecord(
            company_id=1, site_id=1, book_id=7,
            movement_type=MovementType.STOCK_IN, quantity=0, timestamp=T,
        )
        with pytest.raises(MovementValidationError):
            self.store.append(bad)
        assert len(self.store) == 0

    def test_reappend_rejected(self, captured_logs):
        self.store.append(_receipt())
        stored = self.store.query(1)[0]
        with pytest.raises(MovementAlreadyAppendedError) as exc_info:
            self.store.append(stored)
        assert exc_info.value.movement_id == 1
        assert len(self.store) == 1
        assert any(r["message"] == "movement_already_appended" for r in captured_logs())

    def test_append_many_stops_at_first_rejection(self):
        bad = MovementRecord(
            company_id=1, site_id=1, book_id=7,
            movement_type=MovementType.STOCK_OUT, quantity=-1, timestamp=T,
        )
        with pytest.raises(MovementValidationError):
            self.store.append_many([_receipt(), bad, _receipt()])
        assert len(self.store) == 1

    def test_logs_append(self, captured_logs):
        self.store.append(_receipt(quantity=3))
        entry = next(r for r in captured_logs() if r["message"] == "movement_appended")
        assert entry["movement_id"] == 1
        assert entry["movement_type"] == "stock_in"
        assert entry["quantity"] == 3

    def test_concurrent_appends_get_unique_gap_free_ids(self):
        ids: list[int] = []
        lock = threading.Lock()

        def worker():
            for _ in range(50):
                movement_id = self.store.append(_receipt())
                with lock:
                    ids.append(movement_id)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(ids) == list(range(1, 201))
        assert [r.id for r in self.store.query(1)] == list(range(1, 201))


class TestQuery:

    def setup_method(self):
        self.store = InMemoryLedgerStore()
        self.store.append(_receipt(site_id=1, book_id=7, days=0))
        self.store.append(_receipt(site_id=2, book_id=7, days=1))
        self.store.append(_receipt(site_id=1, book_id=8, days=2))
        self.store.append(_receipt(company_id=2, days=3))
        self.store.append(create_stock_out(1, 1, 7, 4, timestamp=T + timedelta(days=4)))

    def test_scoped_to_company(self):
        assert len(self.store.query(1)) == 4
        assert len(self.store.query(2)) == 1
        assert self.store.query(3) == ()

    def test_site_and_book_filters(self):
        records = self.store.query(1, MovementFilter(site_id=1, book_id=7))
        assert [r.id for r in records] == [1, 5]

    def test_date_filter(self):
        records = self.store.query(
            1, MovementFilter(start=T + timedelta(days=1), end=T + timedelta(days=2)),
        )
        assert [r.id for r in records] == [2, 3]

    def test_result_is_reiterable(self):
        records = self.store.query(1)
        assert list(records) == list(records)
