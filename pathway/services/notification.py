"""
Reentry Pathway
Notification dispatcher.

The engine decides *that* a message goes out and *what* it says; transport
(SMTP, SMS gateway) is an external collaborator. Without a transport the
dispatcher runs in log-only mode, like a mail service with no SMTP server
configured.

A failed send is logged and never breaks the operation that triggered it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass
class OutboundMessage:
    recipient: str
    subject: str
    body: str
    category: str = "system"
    entity_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "recipient": self.recipient,
            "subject": self.subject,
            "body": self.body,
            "category": self.category,
            "entity_id": self.entity_id,
            "created_at": self.created_at.isoformat(),
        }


class NotificationDispatcher:
    """Builds messages and hands them to ``transport`` (or logs them)."""

    def __init__(self, transport: Callable[[OutboundMessage], None] | None = None,
                 leaders_recipient: str = "mentorship-leaders"):
        self._transport = transport
        self.leaders_recipient = leaders_recipient

    def send(self, message: OutboundMessage) -> bool:
        """Dispatch one message. Returns False when delivery failed."""
        try:
            if self._transport is None:
                logger.info("[log-only] notify %s: %s", message.recipient, message.subject,
                            extra={"participant_id": message.entity_id})
            else:
                self._transport(message)
        except Exception:
            logger.warning("Notification to %s failed (main flow unaffected)",
                           message.recipient, exc_info=True)
            return False
        return True

    # ── Message builders ─────────────────────────────────────────────────

    def guidance_requested(self, task) -> bool:
        return self.send(OutboundMessage(
            recipient=self.leaders_recipient,
            subject=f"Guidance requested for {task.participant_name}",
            body=f"{task.mentor_name} asked for guidance: {task.guidance_notes}",
            category="guidance",
            entity_id=task.participant_id,
        ))

    def contact_escalated(self, participant, track: str) -> bool:
        return self.send(OutboundMessage(
            recipient=self.leaders_recipient,
            subject=f"Unable to contact {participant.full_name}",
            body=(
                f"{participant.full_name} reached {participant.number_of_contact_attempts} "
                f"unsuccessful {track} contact attempts and was marked unable to contact."
            ),
            category="escalation",
            entity_id=participant.id,
        ))
