"""
In-Memory Storage Implementation

Keeps every collection in process memory. Used by the tests, by local demos,
and as the fallback when Google Sheets is not configured.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, TypeVar
from uuid import UUID

from finai.models.audit import AuditEvent
from finai.models.finance import (
    Budget,
    BudgetPeriod,
    Goal,
    Transaction,
    TransactionType,
)
from finai.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    RecordStoreInterface,
)


Record = TypeVar("Record", Transaction, Budget, Goal)


def demo_records(today: Optional[datetime] = None) -> tuple[
    list[Transaction], list[Budget], list[Goal]
]:
    """A small month of sample data for first-run demos."""
    today = today or datetime.now()

    def on(day: int) -> datetime:
        return today.replace(day=day, hour=12, minute=0, second=0, microsecond=0)

    transactions = [
        Transaction(date=on(5), type=TransactionType.INCOME, amount=Decimal("5000"),
                    category="Salário", description="Salário Mensal"),
        Transaction(date=on(6), type=TransactionType.EXPENSE, amount=Decimal("120"),
                    category="Contas", description="Conta de Luz"),
        Transaction(date=on(8), type=TransactionType.EXPENSE, amount=Decimal("65"),
                    category="Alimentação", description="Jantar no Mario's"),
        Transaction(date=on(10), type=TransactionType.EXPENSE, amount=Decimal("200"),
                    category="Transporte", description="Uber"),
        Transaction(date=on(12), type=TransactionType.EXPENSE, amount=Decimal("450"),
                    category="Alimentação", description="Compras do Mês"),
        Transaction(date=on(15), type=TransactionType.EXPENSE, amount=Decimal("150"),
                    category="Lazer", description="Cinema e Pipoca"),
    ]
    budgets = [
        Budget(category="Alimentação", limit=Decimal("800"), period=BudgetPeriod.MONTHLY),
        Budget(category="Transporte", limit=Decimal("400"), period=BudgetPeriod.MONTHLY),
        Budget(category="Lazer", limit=Decimal("300"), period=BudgetPeriod.MONTHLY),
    ]
    goals = [
        Goal(name="Viagem Europa", target_amount=Decimal("5000"),
             current_amount=Decimal("1500")),
        Goal(name="Reserva de Emergência", target_amount=Decimal("10000"),
             current_amount=Decimal("8000")),
    ]
    return transactions, budgets, goals


class InMemoryRecordStore(RecordStoreInterface):
    """
    Record store backed by plain lists.

    A collection set to None has never been initialized; an empty list has
    been initialized (or reset) and is never reseeded.
    """

    def __init__(self, seed_demo_data: bool = False):
        self._seed_demo_data = seed_demo_data
        self._transactions: Optional[list[Transaction]] = None
        self._budgets: Optional[list[Budget]] = None
        self._goals: Optional[list[Goal]] = None

    async def init(self) -> None:
        seed = demo_records() if self._seed_demo_data else ([], [], [])
        if self._transactions is None:
            self._transactions = list(seed[0])
        if self._budgets is None:
            self._budgets = list(seed[1])
        if self._goals is None:
            self._goals = list(seed[2])

    async def reset(self) -> None:
        self._transactions = []
        self._budgets = []
        self._goals = []

    def _collection(self, records: Optional[list[Record]]) -> list[Record]:
        if records is None:
            raise NotFoundError("Record store used before init()")
        return records

    @staticmethod
    def _add(records: list[Record], record: Record, kind: str) -> None:
        if any(existing.id == record.id for existing in records):
            raise DuplicateError(f"{kind} already exists: {record.id}")
        records.append(record.model_copy(deep=True))

    @staticmethod
    def _update(records: list[Record], record: Record, kind: str) -> None:
        for index, existing in enumerate(records):
            if existing.id == record.id:
                records[index] = record.model_copy(deep=True)
                return
        raise NotFoundError(f"{kind} not found: {record.id}")

    @staticmethod
    def _delete(records: list[Record], record_id: str) -> bool:
        for index, existing in enumerate(records):
            if existing.id == record_id:
                del records[index]
                return True
        return False

    # -- Transactions ------------------------------------------------------

    async def list_transactions(self) -> list[Transaction]:
        return [t.model_copy(deep=True) for t in self._collection(self._transactions)]

    async def add_transaction(self, transaction: Transaction) -> None:
        self._add(self._collection(self._transactions), transaction, "Transaction")

    async def update_transaction(self, transaction: Transaction) -> None:
        self._update(self._collection(self._transactions), transaction, "Transaction")

    async def delete_transaction(self, transaction_id: str) -> bool:
        return self._delete(self._collection(self._transactions), transaction_id)

    # -- Budgets -----------------------------------------------------------

    async def list_budgets(self) -> list[Budget]:
        return [b.model_copy(deep=True) for b in self._collection(self._budgets)]

    async def add_budget(self, budget: Budget) -> None:
        self._add(self._collection(self._budgets), budget, "Budget")

    async def update_budget(self, budget: Budget) -> None:
        self._update(self._collection(self._budgets), budget, "Budget")

    async def delete_budget(self, budget_id: str) -> bool:
        return self._delete(self._collection(self._budgets), budget_id)

    # -- Goals -------------------------------------------------------------

    async def list_goals(self) -> list[Goal]:
        return [g.model_copy(deep=True) for g in self._collection(self._goals)]

    async def add_goal(self, goal: Goal) -> None:
        self._add(self._collection(self._goals), goal, "Goal")

    async def update_goal(self, goal: Goal) -> None:
        self._update(self._collection(self._goals), goal, "Goal")

    async def delete_goal(self, goal_id: str) -> bool:
        return self._delete(self._collection(self._goals), goal_id)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
