"""
Audit Logger

DESIGN DECISION: Every chat turn, ledger edit and audio action leaves a
trail. That gives us:
1. A path from any chat reply back to the record it created
2. Evidence when a model collaborator misbehaves
3. A history of what the user did and when

How it behaves:
- Async, so it runs on the conversation's event loop
- A failed audit write is logged and swallowed; it never breaks a turn
- Events of one turn share a correlation ID, which is also bound into the
  structlog context so plain log lines carry it too
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from finai.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from finai.services.storage import AuditStorageInterface


# One structlog configuration for the whole package
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(ensure_ascii=False),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


_LEVEL_BY_SEVERITY = {
    AuditSeverity.DEBUG: "debug",
    AuditSeverity.INFO: "info",
    AuditSeverity.WARNING: "warning",
    AuditSeverity.ERROR: "error",
    AuditSeverity.CRITICAL: "critical",
}


def get_logger(name: Optional[str] = None):
    """Structured logger sharing the package configuration."""
    return structlog.get_logger(name)


class AuditLogger:
    """
    Writes audit events.

    Every event goes to the structured log. When an audit store is
    configured (Google Sheets in production) it is persisted there too.
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Where events are persisted.
                    If None, events only reach the local log.
        """
        self._storage = storage
        self._logger = structlog.get_logger("finai.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Record one event.

        Returns False only when the audit store rejected the write.
        """
        level = _LEVEL_BY_SEVERITY.get(event.severity, "info")
        getattr(self._logger, level)("audit_event", **event.to_log_dict())

        if self._storage is None:
            return True

        try:
            return await self._storage.append_event(event)
        except Exception as e:
            # The trail is best-effort; the user's action already happened
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                event_id=str(event.event_id),
                event_type=event.event_type.value,
            )
            return False

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Record a failed call to Gemini or Google Sheets."""
        await self.log(
            AuditEventBuilder.external_service_error(
                service=service,
                error_message=error_message,
                correlation_id=correlation_id,
            )
        )


def create_correlation_id() -> UUID:
    """
    New correlation ID for one user action (a chat turn, a reset).

    Hand it to every audit event the action produces.
    """
    return uuid4()
