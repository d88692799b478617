import logging

from sqlalchemy import func, or_, and_

from zinderr.extensions import db
from zinderr.models.bid import Bid
from zinderr.models.chat_message import ChatMessage
from zinderr.services.notification_service import LifecycleEvent, relay_events
from zinderr.utils.exceptions import Forbidden, ValidationError
from zinderr.utils.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000


def _has_bid(errand_id, runner_id):
    return Bid.query.filter(
        Bid.errand_id == errand_id,
        Bid.runner_id == runner_id,
        Bid.status != "retracted",
    ).first() is not None


def resolve_counterpart(errand, user, other_id=None):
    """
    Work out who ``user`` is talking to about ``errand``.

    Runners always talk to the poster, and only once they have a live bid or
    the assignment. The poster talks to the assigned runner by default, or to
    any runner currently bidding.
    """
    if user.id == errand.poster_id:
        runner_id = other_id or errand.assigned_runner_id
        if not runner_id:
            raise ValidationError("recipient_id is required", field="recipient_id")
        if runner_id != errand.assigned_runner_id and not _has_bid(errand.id, runner_id):
            raise Forbidden("That runner is not part of this errand")
        return runner_id

    if user.id == errand.assigned_runner_id or _has_bid(errand.id, user.id):
        return errand.poster_id

    raise Forbidden("You are not part of this errand's conversation")


def send_message(errand, sender, content, recipient_id=None):
    content = (content or "").strip()
    if not content:
        raise ValidationError("Message cannot be empty", field="content")
    if len(content) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Message is longer than {MAX_MESSAGE_LENGTH} characters", field="content")

    recipient_id = resolve_counterpart(errand, sender, recipient_id)

    msg = ChatMessage(
        errand_id=errand.id,
        sender_id=sender.id,
        recipient_id=recipient_id,
        content=content,
    )
    with unit_of_work("send message", entity=errand.id):
        db.session.add(msg)

    relay_events([LifecycleEvent(
        "new_message",
        recipient_id,
        "New Message",
        f"{sender.public_name or 'Someone'} sent you a message about '{errand.title}'.",
        {"errand_id": errand.id, "message_id": msg.id},
    )], sender_id=sender.id)
    return msg


def get_conversation(errand, user, other_id=None):
    """Messages between ``user`` and their counterpart, oldest first.

    Messages addressed to ``user`` are marked read.
    """
    other_id = resolve_counterpart(errand, user, other_id)

    q = (
        ChatMessage.query
        .filter(ChatMessage.errand_id == errand.id)
        .filter(
            or_(
                and_(ChatMessage.sender_id == user.id, ChatMessage.recipient_id == other_id),
                and_(ChatMessage.sender_id == other_id, ChatMessage.recipient_id == user.id),
            )
        )
        .order_by(ChatMessage.created_at.asc())
    )
    messages = q.all()

    with unit_of_work("read messages", entity=errand.id):
        (
            ChatMessage.query
            .filter_by(errand_id=errand.id, sender_id=other_id, recipient_id=user.id, is_read=False)
            .update({"is_read": True}, synchronize_session="fetch")
        )
    return messages


def unread_counts(user):
    rows = (
        db.session.query(ChatMessage.errand_id, func.count(ChatMessage.id))
        .filter(ChatMessage.recipient_id == user.id, ChatMessage.is_read.is_(False))
        .group_by(ChatMessage.errand_id)
        .all()
    )
    return dict(rows)
