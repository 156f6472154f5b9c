"""Tests for the LedgerStore state machine."""

import pytest
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from src.ledger import LedgerChangeKind, LedgerStore, TransactionNotFoundError
from src.models.transaction import InvalidAmountError, LedgerError, TransactionType
from src.persistence import CURRENT_SCHEMA_VERSION, LedgerPersistence
from src.services.storage import InMemoryKeyValueStorage, StorageError


INCOME = TransactionType.INCOME
EXPENSE = TransactionType.EXPENSE
PENDING = TransactionType.PENDING


class FailingStorage(InMemoryKeyValueStorage):
    """Storage whose writes always fail."""

    def set(self, key, value):
        raise StorageError("disk full")


class TestBalance:
    """Tests for balance maintenance."""

    def test_salary_lunch_invoice_scenario(self, ledger):
        """Test the reference scenario: 100 income, 30 expense, 1000 pending."""
        ledger.add(None, INCOME, "Salary", "100")
        ledger.add(None, EXPENSE, "Lunch", "30")
        assert ledger.balance == Decimal("70.00")

        ledger.add(None, PENDING, "Invoice", "1000")
        assert ledger.balance == Decimal("70.00")

    def test_balance_matches_signed_sum_after_every_add(self, ledger):
        """Test that the balance is the signed sum after each call."""
        entries = [
            (INCOME, "10.10"), (EXPENSE, "3.05"), (PENDING, "99"),
            (EXPENSE, "0.05"), (INCOME, "2500"), (EXPENSE, "1999.99"),
        ]
        expected = Decimal("0")
        for tx_type, amount in entries:
            ledger.add(None, tx_type, "", amount)
            expected += Decimal(amount) * tx_type.sign
            assert ledger.balance == expected

    def test_decimal_amounts_do_not_drift(self, ledger):
        """Test that repeated small amounts sum exactly."""
        for _ in range(10):
            ledger.add(None, INCOME, "dime", "0.1")
        assert ledger.balance == Decimal("1.0")

    def test_recompute_is_idempotent(self, ledger):
        """Test calling recompute twice in a row."""
        ledger.add(None, INCOME, "Salary", "100")
        ledger.add(None, EXPENSE, "Rent", "60")
        first = ledger.recompute_balance()
        second = ledger.recompute_balance()
        assert first == second == Decimal("40")

    def test_remove_restores_previous_balance(self, ledger):
        """Test that removing a transaction is like never adding it."""
        ledger.add(None, INCOME, "Salary", "100")
        before = ledger.balance
        tx = ledger.add(None, EXPENSE, "Lunch", "30")

        ledger.remove(tx.id)
        assert ledger.recompute_balance() == before

    def test_empty_ledger_balance(self, ledger):
        """Test a freshly loaded empty ledger."""
        assert ledger.transactions == []
        assert ledger.balance == Decimal("0.00")


class TestAdd:
    """Tests for adding transactions."""

    def test_add_prepends(self, ledger):
        """Test newest-first ordering."""
        first = ledger.add(None, INCOME, "first", "1")
        second = ledger.add(None, INCOME, "second", "2")
        assert [t.id for t in ledger.transactions] == [second.id, first.id]

    def test_add_returns_transaction(self, ledger):
        """Test the returned transaction carries the input."""
        when = datetime(2024, 12, 1, 9, 30)
        tx = ledger.add(when, EXPENSE, "Groceries", " 45.20 ")
        assert tx.date == when
        assert tx.type == EXPENSE
        assert tx.description == "Groceries"
        assert tx.amount == Decimal("45.20")

    def test_add_defaults_date_to_now(self, ledger):
        """Test that a missing date means creation time."""
        before = datetime.now()
        tx = ledger.add(None, INCOME, "", "1")
        assert before <= tx.date <= datetime.now()

    def test_add_invalid_amount_changes_nothing(self, ledger, storage):
        """Test that 'abc' leaves transactions and balance unchanged."""
        ledger.add(None, INCOME, "Salary", "100")
        stored_before = storage.get("transactions")

        with pytest.raises(InvalidAmountError):
            ledger.add(None, EXPENSE, "Lunch", "abc")

        assert len(ledger) == 1
        assert ledger.balance == Decimal("100")
        assert storage.get("transactions") == stored_before

    def test_add_invalid_amount_is_audited(self, ledger, audit_logger):
        """Test that rejected input is logged."""
        with pytest.raises(InvalidAmountError):
            ledger.add(None, EXPENSE, "Lunch", "abc")
        assert "invalid_amount_rejected" in audit_logger.event_types

    def test_add_saves(self, ledger, storage):
        """Test that every add rewrites the slot."""
        tx = ledger.add(None, INCOME, "Salary", "100")
        document = storage.get("transactions")
        assert document["schema_version"] == CURRENT_SCHEMA_VERSION
        assert [r["id"] for r in document["transactions"]] == [str(tx.id)]

    def test_add_accepts_type_string(self, ledger):
        """Test that the wire value of a type is accepted."""
        tx = ledger.add(None, "Expense", "Bus", "2.50")
        assert tx.type == EXPENSE


class TestUpdate:
    """Tests for editing transactions."""

    def test_update_preserves_id_and_position(self, ledger):
        """Test that an edit keeps identity and list position."""
        older = ledger.add(None, INCOME, "Salary", "100")
        newer = ledger.add(None, EXPENSE, "Lunch", "30")

        edited = ledger.update(older.id, None, INCOME, "Salary (net)", "90")

        assert edited.id == older.id
        assert [t.id for t in ledger.transactions] == [newer.id, older.id]
        assert ledger.get(older.id).description == "Salary (net)"

    def test_update_recomputes_balance(self, ledger):
        """Test that changing type and amount is reflected in the balance."""
        tx = ledger.add(None, INCOME, "Salary", "100")
        ledger.add(None, EXPENSE, "Lunch", "30")

        ledger.update(tx.id, None, PENDING, "Salary", "100")
        assert ledger.balance == Decimal("-30")

    def test_update_keeps_date_when_none(self, ledger):
        """Test that a missing date keeps the original one."""
        when = datetime(2024, 1, 15, 12, 0)
        tx = ledger.add(when, INCOME, "Salary", "100")
        edited = ledger.update(tx.id, None, INCOME, "Salary", "110")
        assert edited.date == when

    def test_update_accepts_string_id(self, ledger):
        """Test that ids can be passed in their string form."""
        tx = ledger.add(None, INCOME, "Salary", "100")
        edited = ledger.update(str(tx.id).upper(), None, INCOME, "Salary", "120")
        assert edited.id == tx.id
        assert ledger.balance == Decimal("120")

    def test_update_unknown_id(self, ledger, audit_logger):
        """Test NotFound on update leaves the ledger unchanged."""
        ledger.add(None, INCOME, "Salary", "100")
        with pytest.raises(TransactionNotFoundError):
            ledger.update(uuid4(), None, EXPENSE, "x", "5")
        assert ledger.balance == Decimal("100")
        assert "transaction_not_found" in audit_logger.event_types

    def test_update_invalid_amount_checked_first(self, ledger):
        """Test that amount validation happens before the id lookup."""
        with pytest.raises(InvalidAmountError):
            ledger.update(uuid4(), None, EXPENSE, "x", "abc")

    def test_update_invalid_amount_changes_nothing(self, ledger):
        """Test that a bad amount leaves the original transaction intact."""
        tx = ledger.add(None, INCOME, "Salary", "100")
        with pytest.raises(InvalidAmountError):
            ledger.update(tx.id, None, INCOME, "Salary", "ten")
        assert ledger.get(tx.id) == tx
        assert ledger.balance == Decimal("100")


class TestRemove:
    """Tests for deleting transactions."""

    def test_remove_returns_transaction(self, ledger):
        """Test remove returns what it removed."""
        tx = ledger.add(None, INCOME, "Salary", "100")
        removed = ledger.remove(tx.id)
        assert removed == tx
        assert len(ledger) == 0
        assert ledger.balance == Decimal("0")

    def test_remove_unknown_id(self, ledger):
        """Test NotFound on remove."""
        ledger.add(None, INCOME, "Salary", "100")
        with pytest.raises(TransactionNotFoundError):
            ledger.remove(uuid4())
        assert len(ledger) == 1

    def test_remove_malformed_id(self, ledger):
        """Test that a malformed id string is simply not found."""
        with pytest.raises(TransactionNotFoundError):
            ledger.remove("not-a-uuid")

    def test_removed_id_is_gone_from_storage(self, ledger, storage):
        """Test that the save after remove drops the record."""
        keep = ledger.add(None, INCOME, "keep", "1")
        drop = ledger.add(None, INCOME, "drop", "2")
        ledger.remove(drop.id)
        ids = [r["id"] for r in storage.get("transactions")["transactions"]]
        assert ids == [str(keep.id)]


class TestPagination:
    """Tests for the visible window cursor."""

    def _fill(self, ledger, count):
        for i in range(count):
            ledger.add(None, INCOME, f"tx {i}", "1")

    def test_default_window(self, ledger):
        """Test the default cursor value."""
        assert ledger.visible_count == 15

    def test_expand_past_length(self, ledger):
        """Test cursor 15 on 12 transactions, expanded by 10."""
        self._fill(ledger, 12)
        assert len(ledger.visible_transactions) == 12
        assert ledger.has_more is False

        ledger.expand_visible(by=10)
        assert ledger.visible_count == 25
        assert len(ledger.visible_transactions) == 12

    def test_expand_reveals_more(self, ledger):
        """Test that expanding shows older transactions."""
        self._fill(ledger, 30)
        assert len(ledger.visible_transactions) == 15
        assert ledger.has_more is True

        ledger.expand_visible()
        assert len(ledger.visible_transactions) == 25

        ledger.expand_visible()
        assert len(ledger.visible_transactions) == 30
        assert ledger.has_more is False

    def test_visible_window_is_newest_first(self, ledger):
        """Test that the window holds the most recent transactions."""
        self._fill(ledger, 20)
        assert ledger.visible_transactions[0].description == "tx 19"
        assert ledger.visible_transactions[-1].description == "tx 5"

    def test_expand_rejects_non_positive(self, ledger):
        """Test that the window can only grow."""
        with pytest.raises(ValueError):
            ledger.expand_visible(by=0)

    def test_custom_window_settings(self, persistence):
        """Test configurable window size and increment."""
        store = LedgerStore(persistence, initial_visible_count=5, visible_increment=3)
        store.load()
        assert store.expand_visible() == 8

    def test_invalid_window_settings(self):
        """Test that a zero window is refused."""
        with pytest.raises(ValueError):
            LedgerStore(initial_visible_count=0)


class TestSubscriptions:
    """Tests for change notifications."""

    def test_listener_receives_changes(self, ledger):
        """Test that add/update/remove notify with the new balance."""
        changes = []
        ledger.subscribe(changes.append)

        tx = ledger.add(None, INCOME, "Salary", "100")
        ledger.update(tx.id, None, INCOME, "Salary", "80")
        ledger.remove(tx.id)

        assert [c.kind for c in changes] == [
            LedgerChangeKind.ADDED,
            LedgerChangeKind.UPDATED,
            LedgerChangeKind.REMOVED,
        ]
        assert [c.balance for c in changes] == [
            Decimal("100"), Decimal("80"), Decimal("0"),
        ]
        assert changes[0].transaction.id == tx.id

    def test_rejected_input_does_not_notify(self, ledger):
        """Test that failed operations are silent."""
        changes = []
        ledger.subscribe(changes.append)
        with pytest.raises(InvalidAmountError):
            ledger.add(None, INCOME, "x", "abc")
        assert changes == []

    def test_unsubscribe(self, ledger):
        """Test that an unsubscribed listener is not called."""
        changes = []
        unsubscribe = ledger.subscribe(changes.append)
        unsubscribe()
        ledger.add(None, INCOME, "Salary", "100")
        assert changes == []

    def test_failing_listener_does_not_stop_others(self, ledger):
        """Test that one broken listener cannot block the rest."""
        def broken(change):
            raise RuntimeError("boom")

        changes = []
        ledger.subscribe(broken)
        ledger.subscribe(changes.append)

        tx = ledger.add(None, INCOME, "Salary", "100")

        assert [c.transaction.id for c in changes] == [tx.id]
        assert ledger.balance == Decimal("100")

    def test_failing_listener_keeps_storage_error(self, audit_logger):
        """Test that a save failure still reaches the caller."""
        store = LedgerStore(LedgerPersistence(FailingStorage()), audit_logger=audit_logger)
        store.load()

        def broken(change):
            raise RuntimeError("boom")

        store.subscribe(broken)
        with pytest.raises(StorageError, match="disk full"):
            store.add(None, INCOME, "Salary", "100")

    def test_load_notifies(self, persistence):
        """Test that the startup load is reported."""
        store = LedgerStore(persistence)
        changes = []
        store.subscribe(changes.append)
        store.load()
        assert changes[0].kind == LedgerChangeKind.LOADED
        assert store.last_updated is not None


class TestPersistenceIntegration:
    """Tests for the ledger together with persistence."""

    def test_reload_reproduces_ledger(self, ledger, storage):
        """Test that a second process sees the same ledger."""
        ledger.add(datetime(2024, 1, 1), INCOME, "Salary", "100")
        ledger.add(datetime(2024, 1, 2), EXPENSE, "Lunch", "30")
        ledger.add(datetime(2024, 1, 3), PENDING, "Invoice", "1000")

        reopened = LedgerStore(LedgerPersistence(storage))
        reopened.load()

        assert [t.model_dump() for t in reopened.transactions] == [
            t.model_dump() for t in ledger.transactions
        ]
        assert reopened.balance == Decimal("70")

    def test_load_from_empty_slot(self, storage):
        """Test first run against empty storage."""
        store = LedgerStore(LedgerPersistence(storage))
        result = store.load()
        assert result.corrupted is False
        assert store.transactions == []
        assert store.balance == Decimal("0.00")

    def test_corrupt_storage_starts_empty(self, storage):
        """Test that corruption is downgraded to an empty ledger."""
        storage.set("transactions", [{"type": "Bogus"}])
        store = LedgerStore(LedgerPersistence(storage))

        result = store.load()

        assert result.corrupted is True
        assert store.transactions == []
        assert store.balance == Decimal("0")

    def test_save_failure_keeps_mutation(self, audit_logger):
        """Test that a failed save propagates but the change stands."""
        store = LedgerStore(
            LedgerPersistence(FailingStorage()),
            audit_logger=audit_logger,
        )
        store.load()
        changes = []
        store.subscribe(changes.append)

        with pytest.raises(StorageError):
            store.add(None, INCOME, "Salary", "100")

        assert store.balance == Decimal("100")
        assert len(changes) == 1
        assert "save_failed" in audit_logger.event_types

    def test_store_without_persistence(self):
        """Test that an in-memory-only store works and cannot load."""
        store = LedgerStore()
        store.add(None, INCOME, "Salary", "100")
        assert store.balance == Decimal("100")
        with pytest.raises(LedgerError):
            store.load()
