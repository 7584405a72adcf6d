"""
Tests for the in-memory storage backend and transaction support
"""

import pytest
from datetime import datetime, timezone

from crediflow.storage import InMemoryStorage, StorageInterface


test_data = {
    "id": "loan_001",
    "client_id": "1",
    "status": "active",
    "total_payable": "1101.62",
    "created_at": datetime.now(timezone.utc).isoformat(),
}


class TestInMemoryStorage:
    """Test basic storage operations"""

    def setup_method(self):
        self.storage = InMemoryStorage()

    def test_is_storage_interface(self):
        assert isinstance(self.storage, StorageInterface)

    def test_save_and_load(self):
        """Test records round-trip through storage"""
        self.storage.save("loans", "loan_001", test_data)

        assert self.storage.load("loans", "loan_001") == test_data
        assert self.storage.load("loans", "missing") is None
        assert self.storage.exists("loans", "loan_001")
        assert not self.storage.exists("loans", "missing")

    def test_returned_records_are_copies(self):
        """Test callers cannot mutate stored state through references"""
        record = dict(test_data)
        self.storage.save("loans", "loan_001", record)
        record["status"] = "completed"

        loaded = self.storage.load("loans", "loan_001")
        loaded["status"] = "defaulted"

        assert self.storage.load("loans", "loan_001")["status"] == "active"

    def test_find_and_count(self):
        """Test filtering by field values"""
        self.storage.save("loans", "a", {"id": "a", "client_id": "1", "status": "active"})
        self.storage.save("loans", "b", {"id": "b", "client_id": "2", "status": "active"})
        self.storage.save("loans", "c", {"id": "c", "client_id": "1", "status": "completed"})

        assert [r["id"] for r in self.storage.find("loans", {"client_id": "1"})] == ["a", "c"]
        assert [r["id"] for r in self.storage.find("loans", {"client_id": "1", "status": "active"})] == ["a"]
        assert len(self.storage.find("loans", {})) == 3
        assert self.storage.count("loans") == 3

    def test_load_all_preserves_insertion_order(self):
        for record_id in ("x", "y", "z"):
            self.storage.save("clients", record_id, {"id": record_id})
        assert [r["id"] for r in self.storage.load_all("clients")] == ["x", "y", "z"]

    def test_clear_table(self):
        self.storage.save("clients", "x", {"id": "x"})
        self.storage.clear_table("clients")
        assert self.storage.count("clients") == 0
        assert self.storage.load_all("clients") == []


class TestTransactions:
    """Test atomic blocks"""

    def setup_method(self):
        self.storage = InMemoryStorage()

    def test_atomic_commit(self):
        """Test changes inside a successful block are kept"""
        with self.storage.atomic():
            self.storage.save("loans", "a", {"id": "a"})
            self.storage.save("loans", "b", {"id": "b"})

        assert self.storage.count("loans") == 2

    def test_atomic_rollback(self):
        """Test a failing block leaves storage as it was"""
        self.storage.save("loans", "a", {"id": "a", "status": "active"})

        with pytest.raises(RuntimeError):
            with self.storage.atomic():
                self.storage.save("loans", "a", {"id": "a", "status": "completed"})
                self.storage.save("loans", "b", {"id": "b"})
                raise RuntimeError("boom")

        assert self.storage.load("loans", "a")["status"] == "active"
        assert not self.storage.exists("loans", "b")

    def test_rollback_only_restores_written_tables(self):
        """Test a block copies just the tables it writes to"""
        self.storage.save("loans", "a", {"id": "a", "status": "active"})
        self.storage.save("audit_events", "e1", {"id": "e1"})

        with pytest.raises(RuntimeError):
            with self.storage.atomic():
                self.storage.save("loans", "a", {"id": "a", "status": "defaulted"})
                self.storage.save("clients", "c1", {"id": "c1"})
                assert set(self.storage._snapshot) == {"loans", "clients"}
                raise RuntimeError("boom")

        assert self.storage.load("loans", "a")["status"] == "active"
        assert not self.storage.exists("clients", "c1")
        assert self.storage.load("audit_events", "e1") == {"id": "e1"}
        assert self.storage._snapshot is None

    def test_rollback_restores_cleared_table(self):
        """Test clearing a table inside a failing block is undone"""
        self.storage.save("loans", "a", {"id": "a"})

        with pytest.raises(RuntimeError):
            with self.storage.atomic():
                self.storage.clear_table("loans")
                raise RuntimeError("boom")

        assert self.storage.count("loans") == 1

    def test_storage_usable_after_rollback(self):
        """Test the lock is released after a rollback"""
        with pytest.raises(ValueError):
            with self.storage.atomic():
                raise ValueError("fail")

        with self.storage.atomic():
            self.storage.save("loans", "a", {"id": "a"})
        assert self.storage.exists("loans", "a")
