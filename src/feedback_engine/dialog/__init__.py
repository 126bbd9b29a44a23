"""
SMS dialog: session store, state machine and turn processing.
"""

from feedback_engine.dialog.models import (
    Absent,
    Completed,
    DialogSession,
    DialogStatus,
    EffectKind,
    InboundTurn,
    InProgress,
    OutboundEffect,
    Transition,
    TurnPolicy,
    TurnReply,
)
from feedback_engine.dialog.processor import DialogTurnProcessor
from feedback_engine.dialog.prompts import render_prompt
from feedback_engine.dialog.state_machine import is_duplicate_turn, transition
from feedback_engine.dialog.store import SqlDialogSessionStore

__all__ = [
    "Absent",
    "Completed",
    "DialogSession",
    "DialogStatus",
    "DialogTurnProcessor",
    "EffectKind",
    "InboundTurn",
    "InProgress",
    "OutboundEffect",
    "SqlDialogSessionStore",
    "Transition",
    "TurnPolicy",
    "TurnReply",
    "is_duplicate_turn",
    "render_prompt",
    "transition",
]
