"""
Logging audit adapter - Implements EmailChangeAuditLog protocol.

Writes one line per audit event to this module's logger. Deployments
route audit records elsewhere by attaching a handler to it.
"""

import logging

from src.domain.events import EmailChangeAuditEvent

logger = logging.getLogger(__name__)

CLIENT_KEYS = ("ip_address", "user_agent")


class LoggingAuditLog:
    """
    Audit log that writes events through stdlib logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def record(self, event: EmailChangeAuditEvent) -> None:
        context = {
            key: value for key, value in event.metadata.items() if key not in CLIENT_KEYS
        }
        logger.info(
            "[AUDIT] %s account=%s ip=%s agent=%s at=%s %s",
            event.action.value,
            event.account_id,
            event.ip_address,
            event.user_agent,
            event.occurred_at.isoformat(),
            context,
        )
