"""
Import every ORM model so ``Base.metadata`` knows all tables.
"""

from feedback_engine.auth.models import ApiKey, ApiRequestLog
from feedback_engine.dialog.persistence_models import DialogSessionRecord
from feedback_engine.feedback.models import FeedbackResponse, FeedbackSession
from feedback_engine.organizations.models import Organization
from feedback_engine.questions.persistence_models import Question

__all__ = [
    "ApiKey",
    "ApiRequestLog",
    "DialogSessionRecord",
    "FeedbackResponse",
    "FeedbackSession",
    "Organization",
    "Question",
]
