"""
Dialog turn processor.

Orchestrates one gateway callback: loads the catalog and the respondent's
dialog state, runs the state machine, and applies its effect to the store
and, on completion, to the session finalizer.
"""

from collections.abc import Callable
from datetime import datetime, timezone
from uuid import UUID

from feedback_engine.config import Settings
from feedback_engine.dialog.models import (
    ABSENT,
    Completed,
    DialogState,
    EffectKind,
    InboundTurn,
    InProgress,
    Transition,
    TurnPolicy,
    TurnReply,
)
from feedback_engine.dialog.state_machine import transition
from feedback_engine.dialog.store import DialogSessionStoreProtocol
from feedback_engine.feedback.finalizer import SessionFinalizer
from feedback_engine.feedback.models import Transport
from feedback_engine.organizations.models import Organization
from feedback_engine.questions.catalog import QuestionCatalogProtocol
from feedback_engine.questions.models import QuestionDefinition
from feedback_engine.shared.exceptions import StaleSessionError, TurnConflictError
from feedback_engine.shared.logging import get_logger

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DialogTurnProcessor:
    """Handles one inbound SMS turn end to end."""

    def __init__(
        self,
        store: DialogSessionStoreProtocol,
        catalog: QuestionCatalogProtocol,
        finalizer: SessionFinalizer,
        settings: Settings,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize processor.

        Args:
            store: Dialog session store.
            catalog: Question catalog.
            finalizer: Session finalizer for completed dialogs.
            settings: Application settings.
            clock: Source of the turn timestamp.
        """
        self._store = store
        self._catalog = catalog
        self._finalizer = finalizer
        self._settings = settings
        self._clock = clock

    async def handle_turn(
        self,
        organization: Organization,
        phone_number: str,
        text: str,
        delivery_id: str | None = None,
    ) -> TurnReply:
        """Process one inbound message.

        Args:
            organization: Organization the webhook belongs to.
            phone_number: Respondent number.
            text: Message text, possibly empty.
            delivery_id: Gateway message id, when the gateway sends one.

        Returns:
            Reply for the gateway.

        Raises:
            TurnConflictError: The session kept changing underneath us.
            PersistenceError: Finalizing a completed dialog failed.
        """
        questions = await self._catalog.list_active(organization.id)
        policy = TurnPolicy.from_settings(
            self._settings,
            opt_out_keyword=organization.opt_out_keyword,
            thank_you_message=organization.thank_you_message,
        )
        if not questions:
            logger.info(
                "No active questions for organization",
                extra={"organization_id": str(organization.id)},
            )
            return TurnReply(policy.no_survey_message, terminal=True)

        turn = InboundTurn(
            phone_number=phone_number,
            organization_id=organization.id,
            text=(text or "").strip(),
            received_at=self._clock(),
            delivery_id=delivery_id or None,
        )

        attempts = self._settings.max_turn_attempts
        for attempt in range(1, attempts + 1):
            try:
                return await self._attempt(turn, questions, policy)
            except StaleSessionError as e:
                logger.warning(
                    "Dialog session changed during turn; retrying",
                    extra={
                        "phone_number": phone_number,
                        "organization_id": str(organization.id),
                        "attempt": attempt,
                        "expected_version": e.expected_version,
                    },
                )

        raise TurnConflictError(phone_number, attempts)

    async def _load_state(self, phone_number: str, organization_id: UUID) -> DialogState:
        session = await self._store.load(phone_number, organization_id)
        if session is not None:
            return InProgress(session)
        closed = await self._store.load_latest_closed(phone_number, organization_id)
        if closed is not None:
            return Completed(closed)
        return ABSENT

    async def _attempt(
        self,
        turn: InboundTurn,
        questions: list[QuestionDefinition],
        policy: TurnPolicy,
    ) -> TurnReply:
        state = await self._load_state(turn.phone_number, turn.organization_id)
        result = transition(state, turn, questions, policy)
        await self._apply(result, questions)

        logger.info(
            "Dialog turn processed",
            extra={
                "phone_number": turn.phone_number,
                "organization_id": str(turn.organization_id),
                "effect": result.effect.kind.value,
                "state": type(result.state).__name__,
            },
        )
        return TurnReply(result.effect.message, result.effect.terminal, result.effect.kind)

    async def _apply(self, result: Transition, questions: list[QuestionDefinition]) -> None:
        effect = result.effect

        if effect.kind == EffectKind.PROMPT:
            await self._store.save(result.state.session)

        elif effect.kind == EffectKind.TERMINATE:
            if isinstance(result.state, Completed):
                # Opt-out closes the dialog without finalizing it
                await self._store.close(result.state.session)

        elif effect.kind == EffectKind.FINALIZE:
            closed = await self._store.close(result.state.session)
            await self._finalizer.finalize(
                closed.organization_id,
                closed.answers,
                questions,
                Transport.SMS,
                phone_number=closed.phone_number,
                dialog_session_id=closed.id,
                started_at=closed.started_at,
            )
