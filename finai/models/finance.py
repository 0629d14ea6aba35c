"""
Core Data Models for FinAI

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce the record invariants at construction time
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Keep derived data (summaries) separate from persisted data

DESIGN DECISION: A Transaction cannot exist with a non-positive amount or an
empty category. Anything that reaches the Record Store has already passed
these checks, so the aggregation engine never has to re-validate.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Literal, Optional, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)


def _new_id() -> str:
    return str(uuid4())


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a money movement."""
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"


class BudgetPeriod(str, Enum):
    """
    Budget period tag.

    Informational only: aggregation always runs over the full record set,
    never over a period window.
    """
    MONTHLY = "MONTHLY"
    WEEKLY = "WEEKLY"
    YEARLY = "YEARLY"


class ChatRole(str, Enum):
    """Author of a chat message."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class BudgetStatusKind(str, Enum):
    """Outcome of evaluating a new record against the budgets."""
    OVER_BUDGET = "over_budget"
    WITHIN_BUDGET = "within_budget"
    INCOME = "income"
    NO_BUDGET = "no_budget"


# =============================================================================
# PERSISTED RECORDS
# =============================================================================

class Transaction(BaseModel):
    """
    A single money movement.

    Created by the conversation flow (from parsed text) or by a direct user
    edit. Summaries are always recomputed from these, never patched.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=_new_id,
        description="Unique transaction ID"
    )
    date: datetime = Field(
        ...,
        description="When the money moved (ISO timestamp)"
    )
    type: TransactionType
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount moved, always positive"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category label, e.g. Alimentação"
    )
    description: str = Field(
        default="",
        max_length=500,
    )
    merchant: Optional[str] = None
    payment_method: Optional[str] = None

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE


class Budget(BaseModel):
    """Spending limit for one category, matched case-insensitively."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=_new_id)
    category: str = Field(..., min_length=1, max_length=100)
    limit: Decimal = Field(
        ...,
        gt=0,
        description="Spending limit for the category"
    )
    period: BudgetPeriod = BudgetPeriod.MONTHLY

    def matches(self, category: str) -> bool:
        return self.category.casefold() == category.strip().casefold()


class Goal(BaseModel):
    """
    A savings goal.

    current_amount may exceed target_amount; over-saving is not an error.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=_new_id)
    name: str = Field(..., min_length=1, max_length=200)
    target_amount: Decimal = Field(..., gt=0)
    current_amount: Decimal = Field(default=Decimal("0"), ge=0)
    deadline: Optional[date] = None

    @computed_field
    @property
    def progress_percentage(self) -> int:
        """Progress toward the target, not capped at 100."""
        ratio = self.current_amount / self.target_amount * 100
        return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# =============================================================================
# DERIVED SUMMARY (never persisted)
# =============================================================================

class CategoryExpense(BaseModel):
    name: str
    value: Decimal


class DailyExpense(BaseModel):
    """Expense total for one calendar day."""

    day_key: str = Field(
        ...,
        description="Sortable day key, YYYY-MM-DD"
    )
    label: str = Field(
        ...,
        description="Display label, DD/MM"
    )
    amount: Decimal


class MonthlyCashflow(BaseModel):
    name: str = Field(
        ...,
        description="Month label (month name only, not year-qualified)"
    )
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")


class FinancialSummary(BaseModel):
    """
    Aggregate view of the full transaction collection.

    Produced by finai.aggregation.summarize and recomputed after every
    mutation. There is no incremental update path.
    """

    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    expenses_by_category: list[CategoryExpense] = Field(default_factory=list)
    daily_expenses: list[DailyExpense] = Field(default_factory=list)
    monthly_cashflow: list[MonthlyCashflow] = Field(default_factory=list)


class BudgetProgress(BaseModel):
    """A budget together with what has been spent against it."""

    budget: Budget
    spent: Decimal
    percentage: Optional[int] = Field(
        default=None,
        description="round(spent / limit * 100); None when undefined"
    )

    @property
    def remaining(self) -> Decimal:
        return self.budget.limit - self.spent

    @property
    def is_over_budget(self) -> bool:
        return self.percentage is None or self.remaining < 0


class BudgetStatus(BaseModel):
    """
    Budget feedback for a freshly persisted record.

    The text is handed to the advisor as context; the numbers are kept for
    callers that want to render them.
    """

    kind: BudgetStatusKind
    text: str
    spent: Optional[Decimal] = None
    limit: Optional[Decimal] = None
    percentage: Optional[int] = None
    remaining: Optional[Decimal] = None


# =============================================================================
# CONVERSATION
# =============================================================================

class ChatMessage(BaseModel):
    """
    One entry of the conversation transcript.

    The transcript is append-only: messages are never edited or removed.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    role: ChatRole
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)
    related_transaction_id: Optional[str] = Field(
        default=None,
        description="Transaction this message reports on, if any"
    )


# =============================================================================
# PARSE OUTCOME - tagged variant returned by the parsing collaborator
# =============================================================================

class TransactionCandidate(BaseModel):
    """
    A complete record proposed by the parser.

    Only built after every required field has been checked, so converting
    it to a Transaction cannot fail on a missing field.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    type: TransactionType
    amount: Decimal = Field(..., gt=0)
    category: str = Field(..., min_length=1)
    description: str
    date: datetime

    def to_transaction(self) -> Transaction:
        return Transaction(
            date=self.date,
            type=self.type,
            amount=self.amount,
            category=self.category,
            description=self.description,
        )


class ParseSuccess(BaseModel):
    status: Literal["success"] = "success"
    candidate: TransactionCandidate


class ParseIncomplete(BaseModel):
    status: Literal["incomplete"] = "incomplete"
    missing_fields: list[str] = Field(default_factory=list)


class ParseFailure(BaseModel):
    status: Literal["failure"] = "failure"
    reason: str


ParseOutcome = Union[ParseSuccess, ParseIncomplete, ParseFailure]


# =============================================================================
# AUDIO
# =============================================================================

class AudioClip(BaseModel):
    """
    Synthesized speech: raw little-endian 16-bit PCM.

    The synthesis collaborator always produces mono 24 kHz audio.
    """

    samples: bytes
    sample_rate: int = Field(default=24000, gt=0)
    channels: int = Field(default=1, ge=1)

    @field_validator("samples")
    @classmethod
    def validate_frame_alignment(cls, v: bytes) -> bytes:
        if len(v) % 2:
            raise ValueError("PCM16 sample buffer must have an even length")
        return v

    @property
    def frame_count(self) -> int:
        return len(self.samples) // (2 * self.channels)

    @property
    def duration_seconds(self) -> float:
        return self.frame_count / self.sample_rate


class EncodedClip(BaseModel):
    """One recording, flushed into a single encoded clip."""

    data: bytes
    mime_type: str = "audio/webm"

    @property
    def is_empty(self) -> bool:
        return not self.data
