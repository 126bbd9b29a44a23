"""
Domain models for SMS dialog sessions.

A dialog is driven one inbound message at a time by a stateless gateway
callback. Everything that must survive between turns lives on
``DialogSession`` and is persisted by the dialog session store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Union
from uuid import UUID, uuid4

from feedback_engine.config import DialogAnswerPolicy, Settings


class DialogStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass
class DialogSession:
    """Partial progress of one respondent through one organization's catalog.

    ``version`` is the optimistic concurrency counter; 0 means the session
    has not been written yet.
    """

    phone_number: str
    organization_id: UUID
    id: UUID = field(default_factory=uuid4)
    status: DialogStatus = DialogStatus.IN_PROGRESS
    current_ordinal: int = 0
    answers: dict[str, Any] = field(default_factory=dict)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: datetime | None = None
    completed_at: datetime | None = None
    version: int = 0

    # Redelivery detection
    last_delivery_id: str | None = None
    last_inbound_text: str | None = None
    last_inbound_at: datetime | None = None
    last_outbound_text: str | None = None

    @property
    def is_persisted(self) -> bool:
        return self.version > 0


@dataclass(frozen=True)
class InboundTurn:
    """One message received from the gateway."""

    phone_number: str
    organization_id: UUID
    text: str
    received_at: datetime
    delivery_id: str | None = None


# Explicit dialog states


@dataclass(frozen=True)
class Absent:
    """No in-progress session for this respondent."""


@dataclass(frozen=True)
class InProgress:
    session: DialogSession


@dataclass(frozen=True)
class Completed:
    """Closed session, either just now or by an earlier turn."""

    session: DialogSession


DialogState = Union[Absent, InProgress, Completed]

ABSENT = Absent()


class EffectKind(str, Enum):
    """What a turn asks the outside world to do."""

    PROMPT = "prompt"
    REPROMPT = "reprompt"
    REPLAY = "replay"
    TERMINATE = "terminate"
    FINALIZE = "finalize"


@dataclass(frozen=True)
class OutboundEffect:
    kind: EffectKind
    message: str
    terminal: bool


@dataclass(frozen=True)
class Transition:
    state: DialogState
    effect: OutboundEffect


@dataclass(frozen=True)
class TurnPolicy:
    """Per-organization knobs of the dialog state machine."""

    opt_out_keyword: str = "STOP"
    answer_policy: DialogAnswerPolicy = DialogAnswerPolicy.RAW
    expiry: timedelta = timedelta(minutes=30)
    duplicate_window: timedelta = timedelta(seconds=10)
    thank_you_message: str = "Thank you for your feedback! Your responses have been recorded."
    termination_message: str = "You have stopped the survey. Thank you."
    no_survey_message: str = "Thank you for your interest! There is no survey available right now."

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        opt_out_keyword: str | None = None,
        thank_you_message: str | None = None,
    ) -> TurnPolicy:
        """Build a policy from settings, with optional organization overrides."""
        return cls(
            opt_out_keyword=opt_out_keyword or settings.dialog_opt_out_keyword,
            answer_policy=settings.dialog_answer_policy,
            expiry=timedelta(minutes=settings.dialog_expiry_minutes),
            duplicate_window=timedelta(seconds=settings.duplicate_window_seconds),
            thank_you_message=thank_you_message or settings.dialog_thank_you_message,
            termination_message=settings.dialog_termination_message,
            no_survey_message=settings.dialog_no_survey_message,
        )

    def is_opt_out(self, text: str) -> bool:
        return text.strip().casefold() == self.opt_out_keyword.strip().casefold()


@dataclass(frozen=True)
class TurnReply:
    """Reply handed back to the gateway."""

    message: str
    terminal: bool
    kind: EffectKind | None = None

    def render(self) -> str:
        """Gateway wire format: ``CON`` keeps the dialog open, ``END`` closes it."""
        return f"{'END' if self.terminal else 'CON'} {self.message}"
