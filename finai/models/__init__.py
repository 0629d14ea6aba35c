"""
Data Models Package

This package contains all Pydantic models used in the FinAI system.
All data flowing through the system must conform to these schemas.
"""

from finai.models.finance import (
    AudioClip,
    Budget,
    BudgetPeriod,
    BudgetProgress,
    BudgetStatus,
    BudgetStatusKind,
    CategoryExpense,
    ChatMessage,
    ChatRole,
    DailyExpense,
    EncodedClip,
    FinancialSummary,
    Goal,
    MonthlyCashflow,
    ParseFailure,
    ParseIncomplete,
    ParseOutcome,
    ParseSuccess,
    Transaction,
    TransactionCandidate,
    TransactionType,
)
from finai.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "AudioClip",
    "Budget",
    "BudgetPeriod",
    "BudgetProgress",
    "BudgetStatus",
    "BudgetStatusKind",
    "CategoryExpense",
    "ChatMessage",
    "ChatRole",
    "DailyExpense",
    "EncodedClip",
    "FinancialSummary",
    "Goal",
    "MonthlyCashflow",
    "ParseFailure",
    "ParseIncomplete",
    "ParseOutcome",
    "ParseSuccess",
    "Transaction",
    "TransactionCandidate",
    "TransactionType",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
