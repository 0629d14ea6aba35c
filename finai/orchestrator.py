"""
Main Orchestrator for FinAI

This module ties together all the components and defines the
end-to-end flows for:
1. Conversation (message → parse → validate → save → budget → advice)
2. Ledger edits (direct add/update/delete/reset → fresh summary)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is saved unless the parse fully succeeded
- Budget arithmetic is deterministic; the advisor only phrases it
- No failure escapes a turn; the user always gets a reply
- Every step is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from finai.agents import (
    Advisor,
    GeminiAdvisor,
    GeminiTransactionParser,
    TransactionParser,
)
from finai.aggregation import (
    budget_percentage,
    budget_progress,
    category_spend,
    summarize,
    transactions_on_day,
)
from finai.audit import AuditLogger, create_correlation_id, get_logger
from finai.config import get_settings, validate_all_settings
from finai.models import (
    AuditEventBuilder,
    AuditEventType,
    Budget,
    BudgetProgress,
    BudgetStatus,
    BudgetStatusKind,
    ChatMessage,
    ChatRole,
    FinancialSummary,
    Goal,
    ParseIncomplete,
    ParseSuccess,
    Transaction,
    TransactionType,
)
from finai.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    InMemoryRecordStore,
    RecordStoreInterface,
    StorageError,
)


logger = get_logger(__name__)


WELCOME_MESSAGE = (
    "Olá! Eu sou seu assistente FinAI. Me diga seus gastos ou receitas "
    "(ex: 'Gastei R$50 no mercado'), e eu registrarei para você."
)
CLARIFICATION_MESSAGE = (
    "Não consegui identificar uma transação na sua mensagem. Por favor, "
    "especifique o valor, categoria e a descrição. Exemplo: 'Gastei R$25 em Uber'."
)
APOLOGY_MESSAGE = (
    "Desculpe, encontrei um erro ao processar seu pedido. Tente novamente."
)
RESET_MESSAGE = "Todos os dados foram apagados. O sistema foi reiniciado."
ADVICE_FALLBACK = "Transação registrada."

INCOME_STATUS = "Receita registrada. Saldo atualizado."
NO_BUDGET_STATUS = "Nenhum orçamento específico para esta categoria."


def format_amount(value: Decimal) -> str:
    """Plain decimal rendering without trailing zeros (150.00 -> 150, 37.50 -> 37.5)."""
    return format(value.normalize(), "f")


class ConversationFlow:
    """
    Orchestrates a chat turn.

    Flow:
    1. Append → the user's message goes into the transcript at once
    2. Parse → collaborator returns a validated parse outcome
    3. Clarify → incomplete/failed parse ends the turn, nothing saved
    4. Save → persist the transaction, recompute the summary
    5. Evaluate → deterministic budget status text
    6. Advise → collaborator phrases the reply (fixed fallback on failure)
    7. Reply → assistant message tagged with the transaction id

    Turns are not serialized. A second message submitted while one is in
    flight runs concurrently and its reply lands in completion order.
    """

    def __init__(
        self,
        record_store: RecordStoreInterface,
        parser: Optional[TransactionParser] = None,
        advisor: Optional[Advisor] = None,
        audit_logger: Optional[AuditLogger] = None,
        currency_symbol: Optional[str] = None,
    ):
        self._store = record_store
        self._parser = parser or GeminiTransactionParser()
        self._advisor = advisor or GeminiAdvisor()
        self._audit_logger = audit_logger
        self._currency = currency_symbol or get_settings().app.currency_symbol
        self._transcript: list[ChatMessage] = [
            ChatMessage(role=ChatRole.ASSISTANT, content=WELCOME_MESSAGE)
        ]
        self._in_flight = 0

    @property
    def transcript(self) -> list[ChatMessage]:
        """Snapshot of the conversation, oldest first."""
        return list(self._transcript)

    @property
    def is_processing(self) -> bool:
        """True while at least one turn is in flight."""
        return self._in_flight > 0

    def reset_transcript(self) -> ChatMessage:
        """Replace the conversation with a single "data erased" notice."""
        notice = ChatMessage(role=ChatRole.ASSISTANT, content=RESET_MESSAGE)
        self._transcript = [notice]
        return notice

    def _append(
        self,
        role: ChatRole,
        content: str,
        related_transaction_id: Optional[str] = None,
    ) -> ChatMessage:
        message = ChatMessage(
            role=role,
            content=content,
            related_transaction_id=related_transaction_id,
        )
        self._transcript.append(message)
        return message

    async def _audit(self, event) -> None:
        if self._audit_logger:
            await self._audit_logger.log(event)

    def _money(self, value: Decimal) -> str:
        return f"{self._currency}{format_amount(value)}"

    def evaluate_budget(
        self,
        record: Transaction,
        budgets: list[Budget],
        summary: FinancialSummary,
    ) -> BudgetStatus:
        """
        Budget status for a freshly saved transaction.

        Spend comes from the summary entry for the record's exact category;
        the budget is found by case-insensitive category equality.
        """
        if record.type == TransactionType.INCOME:
            return BudgetStatus(kind=BudgetStatusKind.INCOME, text=INCOME_STATUS)

        budget = next((b for b in budgets if b.matches(record.category)), None)
        if budget is None:
            return BudgetStatus(kind=BudgetStatusKind.NO_BUDGET, text=NO_BUDGET_STATUS)

        spent = category_spend(summary, record.category)
        percentage = budget_percentage(spent, budget.limit)
        remaining = budget.limit - spent
        shown_percentage = "?" if percentage is None else str(percentage)

        if remaining < 0 or percentage is None:
            text = (
                f"ALERTA: Você estourou o orçamento em {self._money(abs(remaining))}. "
                f"Total gasto: {self._money(spent)} ({shown_percentage}% do limite)."
            )
            kind = BudgetStatusKind.OVER_BUDGET
        else:
            text = (
                f"Status do Orçamento: Você gastou {self._money(spent)} de "
                f"{self._money(budget.limit)} ({shown_percentage}%). "
                f"Restam: {self._money(remaining)}."
            )
            kind = BudgetStatusKind.WITHIN_BUDGET

        return BudgetStatus(
            kind=kind,
            text=text,
            spent=spent,
            limit=budget.limit,
            percentage=percentage,
            remaining=remaining,
        )

    async def _advise(
        self,
        record: Transaction,
        status: BudgetStatus,
        correlation_id: UUID,
    ) -> str:
        try:
            return await self._advisor.generate_advice(record, status.text)
        except Exception as e:
            logger.warning("advice_failed", error=str(e), transaction_id=record.id)
            await self._audit(
                AuditEventBuilder.advice_fallback_used(
                    transaction_id=record.id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            )
            return ADVICE_FALLBACK

    async def _run_turn(
        self,
        user_message: ChatMessage,
        correlation_id: UUID,
    ) -> list[ChatMessage]:
        outcome = await self._parser.parse_transaction(
            user_message.content,
            datetime.now().date(),
        )

        if not isinstance(outcome, ParseSuccess):
            detail = (
                ", ".join(outcome.missing_fields)
                if isinstance(outcome, ParseIncomplete)
                else outcome.reason
            )
            await self._audit(
                AuditEventBuilder.parse_failed(
                    message_id=user_message.id,
                    outcome=outcome.status,
                    detail=detail,
                    correlation_id=correlation_id,
                )
            )
            return [self._append(ChatRole.ASSISTANT, CLARIFICATION_MESSAGE)]

        record = outcome.candidate.to_transaction()
        await self._store.add_transaction(record)
        await self._audit(
            AuditEventBuilder.transaction_saved(
                transaction_id=record.id,
                kind=record.type.value,
                amount=str(record.amount),
                category=record.category,
                correlation_id=correlation_id,
            )
        )

        summary = summarize(await self._store.list_transactions())
        status = self.evaluate_budget(
            record,
            await self._store.list_budgets(),
            summary,
        )
        await self._audit(
            AuditEventBuilder.budget_evaluated(
                transaction_id=record.id,
                status_kind=status.kind.value,
                percentage=status.percentage,
                correlation_id=correlation_id,
            )
        )

        advice = await self._advise(record, status, correlation_id)
        return [
            self._append(
                ChatRole.ASSISTANT,
                advice,
                related_transaction_id=record.id,
            )
        ]

    async def handle_message(self, text: str) -> list[ChatMessage]:
        """
        Run one conversation turn.

        Returns:
            The messages this turn appended (the user's message first).
        """
        correlation_id = create_correlation_id()
        user_message = self._append(ChatRole.USER, text)
        self._in_flight += 1

        try:
            with structlog.contextvars.bound_contextvars(correlation_id=str(correlation_id)):
                await self._audit(
                    AuditEventBuilder.message_received(
                        message_id=user_message.id,
                        source="chat",
                        correlation_id=correlation_id,
                    )
                )
                replies = await self._run_turn(user_message, correlation_id)
        except Exception as e:
            logger.error(
                "turn_failed",
                error=str(e),
                error_type=type(e).__name__,
                correlation_id=str(correlation_id),
            )
            if isinstance(e, StorageError) and self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="record_store",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            await self._audit(
                AuditEventBuilder.turn_failed(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            )
            replies = [self._append(ChatRole.ASSISTANT, APOLOGY_MESSAGE)]
        finally:
            self._in_flight -= 1

        return [user_message, *replies]


@dataclass(frozen=True)
class LedgerSnapshot:
    """Everything a dashboard needs, read in one pass."""

    transactions: list[Transaction]
    budgets: list[Budget]
    goals: list[Goal]
    summary: FinancialSummary


class LedgerFlow:
    """
    Orchestrates direct edits to the record store.

    Every mutation returns a fresh snapshot; summaries are recomputed from
    the full collection, never patched.
    """

    def __init__(
        self,
        record_store: RecordStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        conversation: Optional[ConversationFlow] = None,
    ):
        self._store = record_store
        self._audit_logger = audit_logger
        self._conversation = conversation

    async def _audit(self, event) -> None:
        if self._audit_logger:
            await self._audit_logger.log(event)

    async def _changed(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
    ) -> "LedgerSnapshot":
        await self._audit(
            AuditEventBuilder.record_changed(event_type, entity_type, entity_id)
        )
        return await self.refresh()

    async def refresh(self) -> LedgerSnapshot:
        transactions = await self._store.list_transactions()
        return LedgerSnapshot(
            transactions=transactions,
            budgets=await self._store.list_budgets(),
            goals=await self._store.list_goals(),
            summary=summarize(transactions),
        )

    # Transactions

    async def add_transaction(self, transaction: Transaction) -> LedgerSnapshot:
        await self._store.add_transaction(transaction)
        return await self._changed(
            AuditEventType.RECORD_ADDED, "transaction", transaction.id
        )

    async def update_transaction(self, transaction: Transaction) -> LedgerSnapshot:
        await self._store.update_transaction(transaction)
        return await self._changed(
            AuditEventType.RECORD_UPDATED, "transaction", transaction.id
        )

    async def delete_transaction(self, transaction_id: str) -> LedgerSnapshot:
        if await self._store.delete_transaction(transaction_id):
            return await self._changed(
                AuditEventType.RECORD_DELETED, "transaction", transaction_id
            )
        return await self.refresh()

    # Budgets

    async def add_budget(self, budget: Budget) -> LedgerSnapshot:
        await self._store.add_budget(budget)
        return await self._changed(AuditEventType.RECORD_ADDED, "budget", budget.id)

    async def update_budget(self, budget: Budget) -> LedgerSnapshot:
        await self._store.update_budget(budget)
        return await self._changed(AuditEventType.RECORD_UPDATED, "budget", budget.id)

    async def delete_budget(self, budget_id: str) -> LedgerSnapshot:
        if await self._store.delete_budget(budget_id):
            return await self._changed(
                AuditEventType.RECORD_DELETED, "budget", budget_id
            )
        return await self.refresh()

    # Goals

    async def add_goal(self, goal: Goal) -> LedgerSnapshot:
        await self._store.add_goal(goal)
        return await self._changed(AuditEventType.RECORD_ADDED, "goal", goal.id)

    async def update_goal(self, goal: Goal) -> LedgerSnapshot:
        await self._store.update_goal(goal)
        return await self._changed(AuditEventType.RECORD_UPDATED, "goal", goal.id)

    async def delete_goal(self, goal_id: str) -> LedgerSnapshot:
        if await self._store.delete_goal(goal_id):
            return await self._changed(AuditEventType.RECORD_DELETED, "goal", goal_id)
        return await self.refresh()

    # Whole store

    async def reset(self) -> LedgerSnapshot:
        """
        Erase every transaction, budget and goal.

        The collections are emptied, not uninitialized, so demo data is
        never seeded again. The conversation (if attached) restarts with a
        single notice.
        """
        await self._store.reset()
        await self._audit(AuditEventBuilder.store_reset())
        if self._conversation is not None:
            self._conversation.reset_transcript()
        return await self.refresh()

    async def transactions_on_day(self, day_key: str) -> list[Transaction]:
        """Drill-down for one "YYYY-MM-DD" day."""
        return transactions_on_day(await self._store.list_transactions(), day_key)

    async def budget_progress(self) -> list[BudgetProgress]:
        summary = summarize(await self._store.list_transactions())
        return budget_progress(await self._store.list_budgets(), summary)


def create_app_components(
    use_storage: bool = True,
    parser: Optional[TransactionParser] = None,
    advisor: Optional[Advisor] = None,
) -> tuple[ConversationFlow, LedgerFlow, RecordStoreInterface]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use Google Sheets for records and audit.
                    Set to False (or leave Sheets unconfigured) to run on
                    the in-memory store.
        parser: Override for the Gemini parser
        advisor: Override for the Gemini advisor

    Returns:
        (conversation_flow, ledger_flow, record_store)

    Call ``await record_store.init()`` before the first turn.
    """
    record_store: Optional[RecordStoreInterface] = None
    audit_logger = None

    if use_storage:
        checks = validate_all_settings()
        if not checks["google_sheets"]:
            logger.warning(
                "storage_not_configured",
                error=checks.get("google_sheets_error"),
            )
        else:
            try:
                sheets_client = GoogleSheetsClient()
                record_store = GoogleSheetsRecordStore(sheets_client)
                audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
            except Exception as e:
                # Sheets unreachable - continue in memory
                logger.warning("storage_unavailable", error=str(e))
                record_store = None

    if record_store is None:
        record_store = InMemoryRecordStore(
            seed_demo_data=get_settings().app.seed_demo_data,
        )
        audit_logger = AuditLogger()  # Local-only logging

    conversation_flow = ConversationFlow(
        record_store=record_store,
        parser=parser,
        advisor=advisor,
        audit_logger=audit_logger,
    )
    ledger_flow = LedgerFlow(
        record_store=record_store,
        audit_logger=audit_logger,
        conversation=conversation_flow,
    )

    return conversation_flow, ledger_flow, record_store
