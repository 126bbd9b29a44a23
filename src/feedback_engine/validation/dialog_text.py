"""
Coercion of free-text dialog replies into answer values.

Only used under the ``validated`` dialog policy: the reply is turned into the
shape the batch API would have sent, then handed to the validator. Replies
that cannot be understood are passed through unchanged so the validator
reports them.
"""

import re
from typing import Any

from feedback_engine.questions.models import QuestionDefinition, QuestionType

_SEPARATORS = re.compile(r"[,;]")


def _parse_number(token: str) -> int | float | None:
    token = token.strip()
    try:
        return int(token)
    except ValueError:
        pass
    try:
        return float(token)
    except ValueError:
        return None


def _match_option(question: QuestionDefinition, token: str) -> str | None:
    """Map a 1-based index or a case-insensitive literal to its option."""
    token = token.strip()
    if token.isdigit():
        index = int(token)
        if 1 <= index <= len(question.options):
            return question.options[index - 1]
        return None
    folded = token.casefold()
    for option in question.options:
        if option.casefold() == folded:
            return option
    return None


def _split(text: str) -> list[str]:
    return [token.strip() for token in _SEPARATORS.split(text) if token.strip()]


def _coerce_options(question: QuestionDefinition, text: str) -> list[str]:
    values = []
    for token in _split(text):
        option = _match_option(question, token)
        values.append(option if option is not None else token)
    return values


def _coerce_matrix(question: QuestionDefinition, text: str) -> Any:
    tokens = _split(text)
    if tokens and all("=" not in token and ":" not in token for token in tokens):
        # positional: one number per row, in row order
        if len(tokens) > len(question.options):
            return text
        values = {}
        for row, token in zip(question.options, tokens):
            number = _parse_number(token)
            values[row] = number if number is not None else token
        return values

    values = {}
    for token in tokens:
        key, sep, raw = token.partition("=") if "=" in token else token.partition(":")
        if not sep:
            return text
        row = _match_option(question, key)
        number = _parse_number(raw)
        values[row if row is not None else key.strip()] = number if number is not None else raw.strip()
    return values


def coerce_dialog_text(question: QuestionDefinition, text: str) -> Any:
    """Turn a dialog reply into a value for ``validate``.

    Args:
        question: Question being answered.
        text: Trimmed inbound text.

    Returns:
        None for an empty reply, otherwise the coerced value or the text
        itself when it cannot be interpreted.
    """
    text = text.strip()
    if not text:
        return None

    question_type = question.question_type
    if question_type is None or question_type == QuestionType.TEXT:
        return text

    if question_type.is_numeric_scale:
        number = _parse_number(text)
        return number if number is not None else text

    if question_type == QuestionType.SINGLE_CHOICE:
        option = _match_option(question, text)
        return option if option is not None else text

    if question_type in (QuestionType.MULTI_CHOICE, QuestionType.RANKING):
        return _coerce_options(question, text)

    if question_type == QuestionType.MATRIX:
        return _coerce_matrix(question, text)

    return text
