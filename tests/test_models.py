"""
Tests for FinAI

Test strategy:
1. Unit tests for individual components (models, validators, aggregation)
2. Integration tests for flows (with fake collaborators)
3. No real API calls in tests (use fakes)
"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from finai.models import (
    AudioClip,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Budget,
    BudgetPeriod,
    ChatMessage,
    ChatRole,
    EncodedClip,
    Goal,
    Transaction,
    TransactionType,
)

from tests.conftest import candidate


class TestFinanceModels:
    """Tests for transaction, budget and goal models."""

    def test_transaction_creation(self):
        """Test Transaction model creation with a generated id."""
        tx = Transaction(
            date=datetime(2024, 3, 2, 10, 0),
            type=TransactionType.EXPENSE,
            amount=Decimal("25.90"),
            category="Alimentação",
            description="Café",
        )
        assert tx.id
        assert tx.is_expense is True
        assert tx.amount == Decimal("25.90")

    def test_transaction_ids_are_unique(self):
        """Test that two transactions never share an id."""
        a = Transaction(date=datetime.now(), type=TransactionType.INCOME,
                        amount=Decimal("1"), category="Salário")
        b = Transaction(date=datetime.now(), type=TransactionType.INCOME,
                        amount=Decimal("1"), category="Salário")
        assert a.id != b.id

    def test_transaction_rejects_non_positive_amount(self):
        """Test that zero and negative amounts are rejected."""
        for amount in ("0", "-10"):
            with pytest.raises(ValidationError):
                Transaction(
                    date=datetime.now(),
                    type=TransactionType.EXPENSE,
                    amount=Decimal(amount),
                    category="Lazer",
                )

    def test_transaction_rejects_blank_category(self):
        """Test that an invalid record can never be constructed."""
        with pytest.raises(ValidationError):
            Transaction(
                date=datetime.now(),
                type=TransactionType.EXPENSE,
                amount=Decimal("10"),
                category="   ",
            )

    def test_transaction_strips_whitespace(self):
        """Test that whitespace is stripped from the category."""
        tx = Transaction(date=datetime.now(), type=TransactionType.EXPENSE,
                         amount=Decimal("10"), category="  Lazer  ")
        assert tx.category == "Lazer"

    def test_budget_matches_case_insensitively(self):
        """Test Budget.matches ignores case."""
        budget = Budget(category="Alimentação", limit=Decimal("800"))
        assert budget.matches("alimentação")
        assert budget.matches("ALIMENTAÇÃO")
        assert not budget.matches("Transporte")
        assert budget.period == BudgetPeriod.MONTHLY

    def test_goal_progress_percentage(self):
        """Test Goal progress is derived and not capped."""
        goal = Goal(name="Viagem", target_amount=Decimal("5000"),
                    current_amount=Decimal("1500"), deadline=date(2030, 1, 1))
        assert goal.progress_percentage == 30

        over = Goal(name="Reserva", target_amount=Decimal("100"),
                    current_amount=Decimal("150"))
        assert over.progress_percentage == 150

    def test_goal_progress_rounds_half_up(self):
        goal = Goal(name="Curso", target_amount=Decimal("8"), current_amount=Decimal("1"))
        assert goal.progress_percentage == 13

    def test_candidate_to_transaction(self):
        """Test that a parse candidate becomes a fresh Transaction."""
        tx = candidate(amount="42.5", category="Transporte").to_transaction()
        assert tx.amount == Decimal("42.5")
        assert tx.category == "Transporte"
        assert tx.type == TransactionType.EXPENSE


class TestChatAndAudioModels:
    """Tests for chat message and audio clip models."""

    def test_chat_message_is_immutable(self):
        """Test that chat messages are append-only values."""
        message = ChatMessage(role=ChatRole.USER, content="oi")
        with pytest.raises(ValidationError):
            message.content = "tchau"

    def test_audio_clip_duration(self):
        """Test frame count and duration for mono 24 kHz PCM16."""
        clip = AudioClip(samples=b"\x00\x00" * 24000)
        assert clip.frame_count == 24000
        assert clip.duration_seconds == pytest.approx(1.0)

    def test_audio_clip_rejects_odd_length(self):
        """Test that a truncated sample buffer is rejected."""
        with pytest.raises(ValidationError):
            AudioClip(samples=b"\x00\x00\x00")

    def test_encoded_clip_defaults(self):
        """Test EncodedClip default MIME type and emptiness."""
        assert EncodedClip(data=b"").is_empty
        assert EncodedClip(data=b"x").mime_type == "audio/webm"


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.MESSAGE_RECEIVED,
            description="Test message received",
        )
        assert event.event_type == AuditEventType.MESSAGE_RECEIVED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            description="Transaction saved",
            details={"category": "Lazer", "amount": "150"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "transaction_saved"
        assert log_dict["details"]["category"] == "Lazer"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.STORE_RESET,
            description="Store reset",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 11  # Expected number of columns
        assert row[2] == "store_reset"  # event_type
        assert row[10] == "True"  # is_user_action

    def test_audit_event_builder_message_received(self):
        """Test AuditEventBuilder.message_received."""
        correlation_id = uuid4()

        event = AuditEventBuilder.message_received(
            message_id="msg-1",
            source="chat",
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.MESSAGE_RECEIVED
        assert event.entity_id == "msg-1"
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_budget_evaluated_severity(self):
        """Test that over-budget evaluations are warnings."""
        over = AuditEventBuilder.budget_evaluated("tx-1", "over_budget", 150, uuid4())
        within = AuditEventBuilder.budget_evaluated("tx-2", "within_budget", 50, uuid4())

        assert over.severity == AuditSeverity.WARNING
        assert within.severity == AuditSeverity.INFO

    def test_audit_event_builder_record_changed(self):
        """Test AuditEventBuilder.record_changed."""
        event = AuditEventBuilder.record_changed(
            AuditEventType.RECORD_DELETED, "budget", "b-1"
        )
        assert event.event_type == AuditEventType.RECORD_DELETED
        assert event.entity_type == "budget"
        assert "deleted" in event.description


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
