"""
Tests for SMS prompt rendering.
"""

from conftest import choice_question, star_question, text_question
from feedback_engine.dialog.prompts import render_prompt
from feedback_engine.questions.models import QuestionDefinition, ScaleConfig


def test_numeric_scale_prompt_includes_range() -> None:
    assert render_prompt(star_question(text="Rate us")) == "Rate us\n(Reply with a number from 1 to 5)"


def test_non_integral_scale_bounds_are_kept() -> None:
    question = QuestionDefinition(id="s", type="slider", text="How much?", scale=ScaleConfig(0, 2.5))
    assert render_prompt(question).endswith("(Reply with a number from 0 to 2.5)")


def test_single_choice_prompt_numbers_options() -> None:
    prompt = render_prompt(choice_question(text="Pick one", options=("A", "B")))
    assert prompt == "Pick one\n1. A\n2. B"


def test_multi_choice_and_ranking_prompts_carry_a_hint() -> None:
    multi = render_prompt(choice_question(options=("A", "B"), question_type="multi-choice"))
    ranking = render_prompt(choice_question(options=("A", "B"), question_type="ranking"))

    assert "1. A\n2. B" in multi
    assert "separated by commas" in multi
    assert "order of preference" in ranking


def test_matrix_prompt_lists_rows() -> None:
    question = QuestionDefinition(id="m", type="matrix", text="Rate each", options=("Food", "Service"))
    prompt = render_prompt(question)
    assert prompt.startswith("Rate each\n1. Food\n2. Service")
    assert "one rating per row" in prompt


def test_text_and_unknown_types_are_sent_verbatim() -> None:
    assert render_prompt(text_question(text="Anything else?")) == "Anything else?"
    assert render_prompt(QuestionDefinition(id="h", type="hologram", text="Beam?")) == "Beam?"
