"""
Tests for the pure dialog state machine.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from feedback_engine.config import DialogAnswerPolicy
from feedback_engine.dialog.models import (
    ABSENT,
    Absent,
    Completed,
    DialogSession,
    DialogStatus,
    EffectKind,
    InboundTurn,
    InProgress,
    TurnPolicy,
)
from feedback_engine.dialog.state_machine import is_duplicate_turn, transition

ORG_ID = uuid4()
PHONE = "+1555"
T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

RAW = TurnPolicy(duplicate_window=timedelta(0))
VALIDATED = TurnPolicy(answer_policy=DialogAnswerPolicy.VALIDATED, duplicate_window=timedelta(0))


def _turn(text: str, at: datetime = T0, delivery_id: str | None = None) -> InboundTurn:
    return InboundTurn(
        phone_number=PHONE,
        organization_id=ORG_ID,
        text=text,
        received_at=at,
        delivery_id=delivery_id,
    )


def _session(ordinal: int = 0, **kwargs) -> DialogSession:
    return DialogSession(
        phone_number=PHONE,
        organization_id=ORG_ID,
        current_ordinal=ordinal,
        version=kwargs.pop("version", 1),
        **kwargs,
    )


class TestStart:
    def test_first_turn_creates_session_at_question_zero(self, scenario_catalog) -> None:
        result = transition(ABSENT, _turn(""), scenario_catalog, RAW)

        assert isinstance(result.state, InProgress)
        session = result.state.session
        assert session.current_ordinal == 0
        assert session.answers == {}
        assert session.version == 0
        assert session.expires_at == T0 + timedelta(minutes=30)
        assert result.effect.kind == EffectKind.PROMPT
        assert result.effect.terminal is False
        assert result.effect.message.startswith("How would you rate us?")
        assert session.last_outbound_text == result.effect.message

    @pytest.mark.parametrize("keyword", ["STOP", "stop", " Stop "])
    def test_opt_out_without_session_creates_nothing(self, scenario_catalog, keyword: str) -> None:
        result = transition(ABSENT, _turn(keyword), scenario_catalog, RAW)

        assert isinstance(result.state, Absent)
        assert result.effect.kind == EffectKind.TERMINATE
        assert result.effect.terminal is True
        assert result.effect.message == RAW.termination_message

    def test_empty_catalog_terminates(self) -> None:
        result = transition(ABSENT, _turn("hi"), [], RAW)
        assert isinstance(result.state, Absent)
        assert result.effect.message == RAW.no_survey_message

    def test_completed_state_is_treated_as_absent(self, scenario_catalog) -> None:
        closed = _session(3, status=DialogStatus.COMPLETED, last_outbound_text="bye")
        result = transition(Completed(closed), _turn("hello again"), scenario_catalog, RAW)

        assert isinstance(result.state, InProgress)
        assert result.state.session.id != closed.id
        assert result.state.session.current_ordinal == 0


class TestAnswering:
    def test_raw_policy_stores_text_verbatim(self, scenario_catalog) -> None:
        result = transition(InProgress(_session(0)), _turn(" 7 "), scenario_catalog, RAW)

        session = result.state.session
        assert session.answers == {"q1": "7"}
        assert session.current_ordinal == 1
        assert result.effect.kind == EffectKind.PROMPT
        assert result.effect.message == "Pick one\n1. A\n2. B"

    def test_validated_policy_reprompts_and_keeps_state(self, scenario_catalog) -> None:
        state = InProgress(_session(0))
        result = transition(state, _turn("7"), scenario_catalog, VALIDATED)

        assert result.state == state
        assert result.effect.kind == EffectKind.REPROMPT
        assert result.effect.terminal is False
        assert "between 1 and 5" in result.effect.message
        assert result.effect.message.endswith("(Reply with a number from 1 to 5)")

    def test_validated_policy_stores_typed_values(self, scenario_catalog) -> None:
        first = transition(InProgress(_session(0)), _turn("4"), scenario_catalog, VALIDATED)
        second = transition(first.state, _turn("2", at=T0 + timedelta(seconds=30)), scenario_catalog, VALIDATED)

        assert second.state.session.answers == {"q1": 4, "q2": "B"}

    def test_validated_policy_skips_empty_optional_answer(self, scenario_catalog) -> None:
        result = transition(InProgress(_session(1)), _turn(""), scenario_catalog, VALIDATED)

        assert result.effect.kind == EffectKind.PROMPT
        assert result.state.session.current_ordinal == 2
        assert "q2" not in result.state.session.answers

    def test_last_answer_finalizes(self, scenario_catalog) -> None:
        session = _session(2, answers={"q1": "5", "q2": "A"})
        result = transition(InProgress(session), _turn("done"), scenario_catalog, RAW)

        assert isinstance(result.state, Completed)
        closed = result.state.session
        assert closed.status == DialogStatus.COMPLETED
        assert closed.answers == {"q1": "5", "q2": "A", "q3": "done"}
        assert closed.current_ordinal == len(scenario_catalog)
        assert result.effect.kind == EffectKind.FINALIZE
        assert result.effect.terminal is True
        assert result.effect.message == RAW.thank_you_message

    def test_shrunken_catalog_finalizes_with_existing_answers(self, scenario_catalog) -> None:
        session = _session(2, answers={"q1": "5", "q2": "A"})
        result = transition(InProgress(session), _turn("late"), scenario_catalog[:2], RAW)

        assert result.effect.kind == EffectKind.FINALIZE
        assert result.state.session.answers == {"q1": "5", "q2": "A"}

    def test_input_session_is_not_mutated(self, scenario_catalog) -> None:
        session = _session(0)
        transition(InProgress(session), _turn("3"), scenario_catalog, RAW)
        assert session.answers == {}
        assert session.current_ordinal == 0

    def test_expiry_is_extended_on_every_answer(self, scenario_catalog) -> None:
        later = T0 + timedelta(minutes=20)
        result = transition(InProgress(_session(0, expires_at=T0)), _turn("3", at=later), scenario_catalog, RAW)
        assert result.state.session.expires_at == later + timedelta(minutes=30)


class TestOptOut:
    def test_opt_out_mid_dialog_closes_without_finalizing(self, scenario_catalog) -> None:
        session = _session(1, answers={"q1": "5"})
        result = transition(InProgress(session), _turn("stop"), scenario_catalog, RAW)

        assert isinstance(result.state, Completed)
        assert result.effect.kind == EffectKind.TERMINATE
        assert result.effect.terminal is True
        assert result.effect.message == "You have stopped the survey. Thank you."

    def test_custom_keyword(self, scenario_catalog) -> None:
        policy = TurnPolicy(opt_out_keyword="QUIT", duplicate_window=timedelta(0))
        assert transition(ABSENT, _turn("quit"), scenario_catalog, policy).effect.kind == EffectKind.TERMINATE
        assert transition(ABSENT, _turn("stop"), scenario_catalog, policy).effect.kind == EffectKind.PROMPT


class TestDuplicates:
    def _answered(self) -> DialogSession:
        return _session(
            1,
            answers={"q1": "4"},
            last_delivery_id="msg-1",
            last_inbound_text="4",
            last_inbound_at=T0,
            last_outbound_text="Pick one\n1. A\n2. B",
        )

    def test_same_delivery_id_is_replayed(self, scenario_catalog) -> None:
        state = InProgress(self._answered())
        result = transition(state, _turn("4", delivery_id="msg-1"), scenario_catalog, RAW)

        assert result.state is state
        assert result.effect.kind == EffectKind.REPLAY
        assert result.effect.message == "Pick one\n1. A\n2. B"

    def test_new_delivery_id_with_same_text_is_an_answer(self, scenario_catalog) -> None:
        policy = TurnPolicy(duplicate_window=timedelta(seconds=10))
        turn = _turn("4", at=T0 + timedelta(seconds=1), delivery_id="msg-2")
        assert not is_duplicate_turn(self._answered(), turn, policy)

    def test_same_text_within_window_is_duplicate(self) -> None:
        policy = TurnPolicy(duplicate_window=timedelta(seconds=10))
        session = replace(self._answered(), last_delivery_id=None)

        assert is_duplicate_turn(session, _turn("4", at=T0 + timedelta(seconds=5)), policy)
        assert not is_duplicate_turn(session, _turn("4", at=T0 + timedelta(seconds=11)), policy)
        assert not is_duplicate_turn(session, _turn("5", at=T0 + timedelta(seconds=5)), policy)
        assert not is_duplicate_turn(session, _turn("4", at=T0 + timedelta(seconds=5)), RAW)

    def test_duplicate_of_closing_turn_replays_end(self, scenario_catalog) -> None:
        closed = _session(
            3,
            status=DialogStatus.COMPLETED,
            last_delivery_id="msg-9",
            last_inbound_text="done",
            last_inbound_at=T0,
            last_outbound_text=RAW.thank_you_message,
        )
        result = transition(Completed(closed), _turn("done", delivery_id="msg-9"), scenario_catalog, RAW)

        assert isinstance(result.state, Completed)
        assert result.effect.kind == EffectKind.REPLAY
        assert result.effect.terminal is True
        assert result.effect.message == RAW.thank_you_message


class TestOrdinalMonotonicity:
    @pytest.mark.parametrize("policy", [RAW, VALIDATED], ids=["raw", "validated"])
    def test_ordinal_never_decreases_or_exceeds_catalog(self, scenario_catalog, policy) -> None:
        texts = ["", "9", "x", "3", "stop-not", "", "7", "B", "hello", "1", "done", "more"]
        state = ABSENT
        previous = 0
        for offset, text in enumerate(texts):
            result = transition(state, _turn(text, at=T0 + timedelta(minutes=offset)), scenario_catalog, policy)
            if isinstance(result.state, (InProgress, Completed)):
                ordinal = result.state.session.current_ordinal
                if isinstance(state, InProgress) and result.state.session.id == state.session.id:
                    assert ordinal >= previous
                assert 0 <= ordinal <= len(scenario_catalog)
                previous = ordinal
            state = result.state


def test_policy_from_settings_applies_organization_overrides(settings) -> None:
    policy = TurnPolicy.from_settings(settings, opt_out_keyword="ARRET", thank_you_message="Merci!")
    assert policy.opt_out_keyword == "ARRET"
    assert policy.thank_you_message == "Merci!"
    assert policy.expiry == timedelta(minutes=settings.dialog_expiry_minutes)
    assert policy.termination_message == settings.dialog_termination_message
