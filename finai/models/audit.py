"""
Audit Models for FinAI

Every significant step of a conversation turn or an audio session is logged.
This provides:
1. Traceability of which message produced which transaction
2. Debugging information when a collaborator misbehaves
3. A history of edits made outside the chat

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Each step of the conversation pipeline has its own event type.
    """
    # Conversation turn
    MESSAGE_RECEIVED = "message_received"
    PARSE_FAILED = "parse_failed"
    TRANSACTION_SAVED = "transaction_saved"
    BUDGET_EVALUATED = "budget_evaluated"
    ADVICE_FALLBACK_USED = "advice_fallback_used"
    TURN_FAILED = "turn_failed"

    # Direct edits
    RECORD_ADDED = "record_added"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"
    STORE_RESET = "store_reset"

    # Voice capture
    RECORDING_STARTED = "recording_started"
    MICROPHONE_DENIED = "microphone_denied"
    TRANSCRIPTION_COMPLETED = "transcription_completed"

    # Voice playback
    PLAYBACK_STARTED = "playback_started"
    PLAYBACK_STOPPED = "playback_stopped"
    SYNTHESIS_UNAVAILABLE = "synthesis_unavailable"

    # System events
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'message', 'budget')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one turn)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.message_received(message_id, "text", correlation_id)
        event = AuditEventBuilder.store_reset()
    """

    @staticmethod
    def message_received(
        message_id: str,
        source: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MESSAGE_RECEIVED,
            entity_type="message",
            entity_id=message_id,
            correlation_id=correlation_id,
            description="User message received",
            details={"source": source},
            is_user_action=True,
        )

    @staticmethod
    def parse_failed(
        message_id: str,
        outcome: str,
        detail: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARSE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="message",
            entity_id=message_id,
            correlation_id=correlation_id,
            description=f"Message could not be parsed into a transaction ({outcome})",
            details={"outcome": outcome, "detail": detail},
        )

    @staticmethod
    def transaction_saved(
        transaction_id: str,
        kind: str,
        amount: str,
        category: str,
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction saved: {kind} {amount} in {category}",
            details={
                "type": kind,
                "amount": amount,
                "category": category,
            },
        )

    @staticmethod
    def budget_evaluated(
        transaction_id: str,
        status_kind: str,
        percentage: Optional[int],
        correlation_id: UUID
    ) -> AuditEvent:
        severity = (
            AuditSeverity.WARNING
            if status_kind == "over_budget"
            else AuditSeverity.INFO
        )
        return AuditEvent(
            event_type=AuditEventType.BUDGET_EVALUATED,
            severity=severity,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Budget evaluated: {status_kind}",
            details={"status": status_kind, "percentage": percentage},
        )

    @staticmethod
    def advice_fallback_used(
        transaction_id: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVICE_FALLBACK_USED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Advisor failed, fixed confirmation used instead",
            error_message=error_message,
        )

    @staticmethod
    def turn_failed(
        error_type: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TURN_FAILED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Conversation turn failed: {error_type}",
            error_message=error_message,
            details={"error_type": error_type},
        )

    @staticmethod
    def record_changed(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
    ) -> AuditEvent:
        verb = event_type.value.split("_", 1)[1]
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} {verb} by direct edit",
            is_user_action=True,
        )

    @staticmethod
    def store_reset() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_RESET,
            severity=AuditSeverity.WARNING,
            description="All transactions, budgets and goals were erased",
            is_user_action=True,
        )

    @staticmethod
    def recording_started() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORDING_STARTED,
            entity_type="recording",
            description="Microphone recording started",
            is_user_action=True,
        )

    @staticmethod
    def microphone_denied(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MICROPHONE_DENIED,
            severity=AuditSeverity.WARNING,
            entity_type="recording",
            description="Microphone permission was refused",
            error_message=error_message,
        )

    @staticmethod
    def transcription_completed(
        clip_bytes: int,
        produced_text: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSCRIPTION_COMPLETED,
            entity_type="recording",
            description=(
                "Recording transcribed"
                if produced_text
                else "Recording produced no transcription"
            ),
            details={"clip_bytes": clip_bytes, "produced_text": produced_text},
        )

    @staticmethod
    def playback_started(
        message_id: str,
        duration_seconds: float,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLAYBACK_STARTED,
            entity_type="message",
            entity_id=message_id,
            description="Spoken playback started",
            details={"duration_seconds": round(duration_seconds, 2)},
            is_user_action=True,
        )

    @staticmethod
    def playback_stopped(
        message_id: str,
        reason: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLAYBACK_STOPPED,
            entity_type="message",
            entity_id=message_id,
            description=f"Spoken playback stopped ({reason})",
            details={"reason": reason},
        )

    @staticmethod
    def synthesis_unavailable(message_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNTHESIS_UNAVAILABLE,
            severity=AuditSeverity.WARNING,
            entity_type="message",
            entity_id=message_id,
            description="Speech synthesis returned no audio",
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
