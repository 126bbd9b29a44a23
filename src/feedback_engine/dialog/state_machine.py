"""
Dialog state machine.

``transition`` is a pure function of the loaded state, the inbound turn, the
catalog and the policy. It never touches storage; the turn processor applies
the returned effect.

Precedence on every turn:

1. A redelivery of the previous turn replays the previous reply.
2. The opt-out keyword closes an in-progress dialog without finalizing it,
   or is acknowledged without creating one.
3. Any other message to an absent (or already closed) dialog starts a new
   one at the first question.
4. Otherwise the message answers the current question.
"""

from collections.abc import Sequence
from dataclasses import replace
from datetime import timedelta
from typing import Any

from feedback_engine.config import DialogAnswerPolicy
from feedback_engine.dialog.models import (
    ABSENT,
    Absent,
    Completed,
    DialogSession,
    DialogState,
    DialogStatus,
    EffectKind,
    InboundTurn,
    InProgress,
    OutboundEffect,
    Transition,
    TurnPolicy,
)
from feedback_engine.dialog.prompts import render_prompt
from feedback_engine.questions.models import QuestionDefinition
from feedback_engine.validation.answers import OutcomeKind
from feedback_engine.validation.dialog_text import coerce_dialog_text
from feedback_engine.validation.validator import validate


def is_duplicate_turn(session: DialogSession, turn: InboundTurn, policy: TurnPolicy) -> bool:
    """Whether ``turn`` is a gateway redelivery of the last turn ``session`` saw.

    A gateway delivery id is authoritative when present. Without one, the
    same text arriving again within the duplicate window counts.
    """
    if session.last_outbound_text is None:
        return False
    if turn.delivery_id:
        return turn.delivery_id == session.last_delivery_id
    if policy.duplicate_window <= timedelta(0):
        return False
    if session.last_inbound_at is None or session.last_inbound_text is None:
        return False
    elapsed = turn.received_at - session.last_inbound_at
    return (
        turn.text.strip() == session.last_inbound_text
        and timedelta(0) <= elapsed <= policy.duplicate_window
    )


def _record_turn(session: DialogSession, turn: InboundTurn, reply: str, **changes: Any) -> DialogSession:
    return replace(
        session,
        last_delivery_id=turn.delivery_id,
        last_inbound_text=turn.text.strip(),
        last_inbound_at=turn.received_at,
        last_outbound_text=reply,
        **changes,
    )


def _close(session: DialogSession, turn: InboundTurn, reply: str, **changes: Any) -> DialogSession:
    return _record_turn(
        session,
        turn,
        reply,
        status=DialogStatus.COMPLETED,
        completed_at=turn.received_at,
        **changes,
    )


def _start(turn: InboundTurn, catalog: Sequence[QuestionDefinition], policy: TurnPolicy) -> Transition:
    if policy.is_opt_out(turn.text):
        return Transition(
            ABSENT,
            OutboundEffect(EffectKind.TERMINATE, policy.termination_message, terminal=True),
        )
    if not catalog:
        return Transition(
            ABSENT,
            OutboundEffect(EffectKind.TERMINATE, policy.no_survey_message, terminal=True),
        )

    prompt = render_prompt(catalog[0])
    session = DialogSession(
        phone_number=turn.phone_number,
        organization_id=turn.organization_id,
        started_at=turn.received_at,
        expires_at=turn.received_at + policy.expiry,
    )
    return Transition(
        InProgress(_record_turn(session, turn, prompt)),
        OutboundEffect(EffectKind.PROMPT, prompt, terminal=False),
    )


def _capture(
    question: QuestionDefinition,
    text: str,
    policy: TurnPolicy,
) -> tuple[bool, Any, str]:
    """Returns (accepted, value to store or None, error message)."""
    if policy.answer_policy == DialogAnswerPolicy.RAW:
        return True, text, ""

    outcome = validate(question, coerce_dialog_text(question, text))
    if not outcome.is_valid:
        return False, None, outcome.message
    if outcome.kind == OutcomeKind.SKIPPED or not outcome.has_answer:
        return True, None, ""
    return True, outcome.answer.to_json(), ""


def _answer(
    session: DialogSession,
    turn: InboundTurn,
    catalog: Sequence[QuestionDefinition],
    policy: TurnPolicy,
) -> Transition:
    ordinal = session.current_ordinal
    if ordinal >= len(catalog):
        # Catalog shrank under a running dialog
        closed = _close(session, turn, policy.thank_you_message)
        return Transition(
            Completed(closed),
            OutboundEffect(EffectKind.FINALIZE, policy.thank_you_message, terminal=True),
        )

    question = catalog[ordinal]
    text = turn.text.strip()
    accepted, value, error = _capture(question, text, policy)
    if not accepted:
        return Transition(
            InProgress(session),
            OutboundEffect(EffectKind.REPROMPT, f"{error}\n{render_prompt(question)}", terminal=False),
        )

    answers = dict(session.answers)
    if value is not None:
        answers[question.id] = value
    next_ordinal = ordinal + 1
    expires_at = turn.received_at + policy.expiry

    if next_ordinal >= len(catalog):
        closed = _close(
            session,
            turn,
            policy.thank_you_message,
            current_ordinal=len(catalog),
            answers=answers,
            expires_at=expires_at,
        )
        return Transition(
            Completed(closed),
            OutboundEffect(EffectKind.FINALIZE, policy.thank_you_message, terminal=True),
        )

    prompt = render_prompt(catalog[next_ordinal])
    advanced = _record_turn(
        session,
        turn,
        prompt,
        current_ordinal=next_ordinal,
        answers=answers,
        expires_at=expires_at,
    )
    return Transition(
        InProgress(advanced),
        OutboundEffect(EffectKind.PROMPT, prompt, terminal=False),
    )


def transition(
    state: DialogState,
    turn: InboundTurn,
    catalog: Sequence[QuestionDefinition],
    policy: TurnPolicy,
) -> Transition:
    """Compute the next dialog state and the reply for one inbound turn.

    Args:
        state: State loaded for the respondent. ``Completed`` carries the
            most recently closed session and is only consulted for
            redelivery; otherwise it behaves as ``Absent``.
        turn: Inbound message.
        catalog: Active questions in ordinal order.
        policy: Organization dialog policy.

    Returns:
        New state plus the effect to apply.
    """
    if isinstance(state, Completed):
        if is_duplicate_turn(state.session, turn, policy):
            return Transition(
                state,
                OutboundEffect(EffectKind.REPLAY, state.session.last_outbound_text, terminal=True),
            )
        return _start(turn, catalog, policy)

    if isinstance(state, Absent):
        return _start(turn, catalog, policy)

    session = state.session
    if is_duplicate_turn(session, turn, policy):
        return Transition(
            state,
            OutboundEffect(EffectKind.REPLAY, session.last_outbound_text, terminal=False),
        )

    if policy.is_opt_out(turn.text):
        closed = _close(session, turn, policy.termination_message)
        return Transition(
            Completed(closed),
            OutboundEffect(EffectKind.TERMINATE, policy.termination_message, terminal=True),
        )

    return _answer(session, turn, catalog, policy)
