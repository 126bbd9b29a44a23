"""
Completed feedback: batch submissions and the shared session finalizer.
"""

from feedback_engine.feedback.batch import BatchResult, BatchSubmissionHandler
from feedback_engine.feedback.finalizer import SessionFinalizer
from feedback_engine.feedback.models import (
    FeedbackResponse,
    FeedbackSession,
    FeedbackStatus,
    Transport,
)

__all__ = [
    "BatchResult",
    "BatchSubmissionHandler",
    "FeedbackResponse",
    "FeedbackSession",
    "FeedbackStatus",
    "SessionFinalizer",
    "Transport",
]
