"""Tests for the record store and audit storage backends."""

import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from finai.models import (
    AuditEventBuilder,
    Budget,
    Goal,
    Transaction,
    TransactionType,
)
from finai.services.storage import (
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsRecordStore,
    InMemoryAuditStorage,
    InMemoryRecordStore,
    NotFoundError,
    demo_records,
)
from finai.services.storage.google_sheets import (
    BUDGET_COLUMNS,
    GOAL_COLUMNS,
    TRANSACTION_COLUMNS,
    AUDIT_COLUMNS,
)


def expense(amount="10", category="Lazer"):
    return Transaction(
        date=datetime(2024, 3, 2, 12),
        type=TransactionType.EXPENSE,
        amount=Decimal(amount),
        category=category,
        description="Cinema",
    )


class TestInMemoryRecordStore:
    """Tests for the in-memory record store lifecycle."""

    @pytest.mark.asyncio
    async def test_use_before_init_fails(self):
        with pytest.raises(NotFoundError):
            await InMemoryRecordStore().list_transactions()

    @pytest.mark.asyncio
    async def test_init_seeds_demo_data(self):
        store = InMemoryRecordStore(seed_demo_data=True)
        await store.init()

        assert len(await store.list_transactions()) == 6
        assert len(await store.list_budgets()) == 3
        assert len(await store.list_goals()) == 2

    @pytest.mark.asyncio
    async def test_reset_empties_and_never_reseeds(self):
        """Test that reset leaves empty collections, not uninitialized ones."""
        store = InMemoryRecordStore(seed_demo_data=True)
        await store.init()

        await store.reset()
        await store.init()

        assert await store.list_transactions() == []
        assert await store.list_budgets() == []
        assert await store.list_goals() == []

    @pytest.mark.asyncio
    async def test_init_keeps_existing_data(self, store):
        await store.add_transaction(expense())
        await store.init()
        assert len(await store.list_transactions()) == 1

    @pytest.mark.asyncio
    async def test_duplicate_add_rejected(self, store):
        record = expense()
        await store.add_transaction(record)
        with pytest.raises(DuplicateError):
            await store.add_transaction(record)

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            await store.update_budget(Budget(category="Lazer", limit=Decimal("1")))

    @pytest.mark.asyncio
    async def test_last_write_wins(self, store):
        goal = Goal(name="Viagem", target_amount=Decimal("5000"))
        await store.add_goal(goal)
        await store.update_goal(goal.model_copy(update={"current_amount": Decimal("10")}))
        await store.update_goal(goal.model_copy(update={"current_amount": Decimal("20")}))

        assert (await store.list_goals())[0].current_amount == Decimal("20")

    @pytest.mark.asyncio
    async def test_listed_records_are_copies(self, store):
        await store.add_transaction(expense())
        listed = await store.list_transactions()
        listed.clear()
        assert len(await store.list_transactions()) == 1

    @pytest.mark.asyncio
    async def test_delete(self, store):
        record = expense()
        await store.add_transaction(record)
        assert await store.delete_transaction(record.id) is True
        assert await store.delete_transaction(record.id) is False

    def test_demo_records_are_current_month(self):
        today = datetime(2024, 7, 20)
        transactions, budgets, goals = demo_records(today)
        assert all(t.date.month == 7 and t.date.year == 2024 for t in transactions)
        assert {b.category for b in budgets} == {"Alimentação", "Transporte", "Lazer"}


class TestInMemoryAuditStorage:

    @pytest.mark.asyncio
    async def test_events_by_correlation_id(self):
        storage = InMemoryAuditStorage()
        correlation_id = uuid4()
        await storage.append_event(AuditEventBuilder.message_received("m1", "chat", correlation_id))
        await storage.append_event(AuditEventBuilder.store_reset())

        found = await storage.get_events_by_correlation_id(correlation_id)
        assert [e.entity_id for e in found] == ["m1"]
        assert len(await storage.get_recent_events(limit=1)) == 1


# =============================================================================
# GOOGLE SHEETS (fake worksheets, no network)
# =============================================================================

class FakeWorksheet:
    """The subset of gspread.Worksheet the store uses."""

    def __init__(self, columns):
        self.rows = [list(columns)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append([str(cell) for cell in row])

    def update(self, values, range_name, value_input_option=None):
        index = int(range_name[1:]) - 1
        self.rows[index] = [str(cell) for cell in values[0]]

    def delete_rows(self, index):
        del self.rows[index - 1]

    def clear(self):
        self.rows = []


class FakeSheetsClient:

    def __init__(self):
        self.transactions = FakeWorksheet(TRANSACTION_COLUMNS)
        self.budgets = FakeWorksheet(BUDGET_COLUMNS)
        self.goals = FakeWorksheet(GOAL_COLUMNS)
        self.audit = FakeWorksheet(AUDIT_COLUMNS)

    def get_transactions_sheet(self):
        return self.transactions

    def get_budgets_sheet(self):
        return self.budgets

    def get_goals_sheet(self):
        return self.goals

    def get_audit_sheet(self):
        return self.audit


@pytest.fixture
def sheets_client():
    return FakeSheetsClient()


@pytest.fixture
def sheets_store(sheets_client):
    return GoogleSheetsRecordStore(client=sheets_client)


class TestGoogleSheetsRecordStore:
    """Tests for row mapping and collection semantics on Sheets."""

    @pytest.mark.asyncio
    async def test_transaction_round_trip(self, sheets_store):
        record = expense("37.50")
        record = record.model_copy(update={"merchant": "Cinemark"})

        await sheets_store.add_transaction(record)
        loaded = await sheets_store.list_transactions()

        assert loaded == [record]

    @pytest.mark.asyncio
    async def test_update_and_delete(self, sheets_store, sheets_client):
        budget = Budget(category="Lazer", limit=Decimal("300"))
        await sheets_store.add_budget(budget)

        await sheets_store.update_budget(budget.model_copy(update={"limit": Decimal("350")}))
        assert (await sheets_store.list_budgets())[0].limit == Decimal("350")

        assert await sheets_store.delete_budget(budget.id) is True
        assert sheets_client.budgets.rows == [BUDGET_COLUMNS]

    @pytest.mark.asyncio
    async def test_duplicate_rejected_without_retry(self, sheets_store, sheets_client):
        record = expense()
        await sheets_store.add_transaction(record)

        with pytest.raises(DuplicateError):
            await sheets_store.add_transaction(record)
        assert len(sheets_client.transactions.rows) == 2

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, sheets_store):
        with pytest.raises(NotFoundError):
            await sheets_store.update_goal(Goal(name="X", target_amount=Decimal("1")))

    @pytest.mark.asyncio
    async def test_goal_deadline_round_trip(self, sheets_store):
        goal = Goal(name="Viagem", target_amount=Decimal("5000"),
                    current_amount=Decimal("1500"), deadline=date(2025, 12, 1))
        await sheets_store.add_goal(goal)
        assert await sheets_store.list_goals() == [goal]

    @pytest.mark.asyncio
    async def test_reset_keeps_headers(self, sheets_store, sheets_client):
        await sheets_store.add_transaction(expense())
        await sheets_store.add_budget(Budget(category="Lazer", limit=Decimal("300")))

        await sheets_store.reset()

        assert sheets_client.transactions.rows == [TRANSACTION_COLUMNS]
        assert sheets_client.budgets.rows == [BUDGET_COLUMNS]
        assert await sheets_store.list_transactions() == []

    @pytest.mark.asyncio
    async def test_malformed_rows_are_skipped(self, sheets_store, sheets_client):
        sheets_client.transactions.rows.append(["bad-id", "not-a-date", "EXPENSE", "x", "", "", "", ""])
        await sheets_store.add_transaction(expense())

        assert len(await sheets_store.list_transactions()) == 1


class TestGoogleSheetsAuditStorage:

    @pytest.mark.asyncio
    async def test_append_and_read_back(self, sheets_client):
        storage = GoogleSheetsAuditStorage(client=sheets_client)
        correlation_id = uuid4()
        event = AuditEventBuilder.transaction_saved("tx-1", "EXPENSE", "25", "Lazer", correlation_id)

        assert await storage.append_event(event) is True
        found = await storage.get_events_by_correlation_id(correlation_id)

        assert len(found) == 1
        assert found[0].event_id == event.event_id
        assert found[0].details["category"] == "Lazer"
