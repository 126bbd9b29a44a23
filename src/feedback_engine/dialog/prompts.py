"""
Prompt rendering for SMS dialogs.
"""

from feedback_engine.questions.models import QuestionDefinition, QuestionType


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _numbered(options: tuple[str, ...]) -> str:
    return "\n".join(f"{index}. {option}" for index, option in enumerate(options, start=1))


def render_prompt(question: QuestionDefinition) -> str:
    """Render one question as an SMS prompt.

    Numeric scales get their range, option types a numbered list with a hint
    on how to reply. Text and unknown types are sent as is.
    """
    text = question.text
    question_type = question.question_type
    if question_type is None:
        return text

    if question_type.is_numeric_scale:
        if question.scale is None:
            return f"{text}\n(Reply with a number)"
        low, high = _format_number(question.scale.min), _format_number(question.scale.max)
        return f"{text}\n(Reply with a number from {low} to {high})"

    if not question.options:
        return text

    if question_type == QuestionType.SINGLE_CHOICE:
        return f"{text}\n{_numbered(question.options)}"
    if question_type == QuestionType.MULTI_CHOICE:
        hint = "(Reply with one or more numbers separated by commas)"
        return f"{text}\n{_numbered(question.options)}\n{hint}"
    if question_type == QuestionType.RANKING:
        hint = "(Reply with all numbers in order of preference, separated by commas)"
        return f"{text}\n{_numbered(question.options)}\n{hint}"
    if question_type == QuestionType.MATRIX:
        hint = "(Reply with one rating per row, separated by commas)"
        return f"{text}\n{_numbered(question.options)}\n{hint}"

    return text
