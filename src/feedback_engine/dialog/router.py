"""
FastAPI router for the SMS gateway webhook.

The gateway posts one form-encoded callback per inbound message and relays
our plain-text reply: ``CON <prompt>`` keeps the dialog open, ``END
<message>`` closes it. The gateway must always get a reply, so every failure
other than an unknown webhook degrades to a generic ``END`` message.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Form, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_engine.config import Settings, get_settings
from feedback_engine.dialog.models import TurnReply
from feedback_engine.dialog.processor import DialogTurnProcessor
from feedback_engine.dialog.store import SqlDialogSessionStore
from feedback_engine.feedback.finalizer import SessionFinalizer
from feedback_engine.organizations.repository import OrganizationRepository
from feedback_engine.questions.catalog import QuestionCatalogRepository
from feedback_engine.shared.database import get_db_session
from feedback_engine.shared.exceptions import OrganizationNotFoundError
from feedback_engine.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks/sms", tags=["webhooks"])


def get_turn_processor(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> DialogTurnProcessor:
    """Dependency for the dialog turn processor."""
    return DialogTurnProcessor(
        store=SqlDialogSessionStore(session),
        catalog=QuestionCatalogRepository(session),
        finalizer=SessionFinalizer(session, default_category=settings.default_question_category),
        settings=settings,
    )


@router.post("/{webhook_secret}", response_class=PlainTextResponse)
async def handle_sms(
    webhook_secret: str,
    session: Annotated[AsyncSession, Depends(get_db_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    processor: Annotated[DialogTurnProcessor, Depends(get_turn_processor)],
    sender: Annotated[str | None, Form(alias="from")] = None,
    text: Annotated[str | None, Form()] = None,
    delivery_id: Annotated[str | None, Form(alias="id")] = None,
) -> PlainTextResponse:
    """Handle one inbound SMS."""
    try:
        organization = await OrganizationRepository(session).get_by_webhook_secret(webhook_secret)
        if organization is None:
            logger.warning("SMS webhook called with unknown secret")
            raise OrganizationNotFoundError()

        if not sender or not sender.strip():
            return PlainTextResponse(
                "Missing 'from' field",
                status_code=status.HTTP_400_BAD_REQUEST,
            )

        reply = await processor.handle_turn(
            organization,
            sender.strip(),
            text or "",
            delivery_id=delivery_id,
        )
        await session.commit()
    except OrganizationNotFoundError:
        raise
    except Exception:
        # The gateway relays whatever we answer; never let a traceback through
        logger.exception(
            "SMS turn failed",
            extra={"phone_number": sender},
        )
        await session.rollback()
        reply = TurnReply(settings.dialog_error_message, terminal=True)

    return PlainTextResponse(reply.render())
