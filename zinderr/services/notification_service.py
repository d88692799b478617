import logging
from collections import namedtuple

from sqlalchemy.exc import SQLAlchemyError

from zinderr.extensions import db
from zinderr.models.notification import Notification
from zinderr.utils.exceptions import NotFound, Forbidden
from zinderr.utils.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)

# A side effect of a lifecycle transition that somebody should hear about.
LifecycleEvent = namedtuple("LifecycleEvent", "type user_id title message details")


def relay_events(events, sender_id=None):
    """
    Persist notifications for already-committed lifecycle events.

    Delivery is best-effort: a failure here is logged and rolled back on its
    own, it never undoes the transition that produced the events.
    """
    events = [e for e in events if e.user_id]
    if not events:
        return 0

    try:
        for event in events:
            db.session.add(Notification(
                user_id=event.user_id,
                sender_id=sender_id,
                type=event.type,
                title=event.title,
                message=event.message,
                details=event.details,
            ))
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.warning("Dropped %d notification(s)", len(events), exc_info=True)
        return 0

    return len(events)


def get_user_notifications(user_id, is_read=None):
    q = Notification.query.filter_by(user_id=user_id)
    if is_read is not None:
        q = q.filter_by(is_read=is_read)
    return q.order_by(Notification.created_at.desc())


def mark_notification_read(notification_id, user):
    notification = db.session.get(Notification, notification_id)
    if not notification:
        raise NotFound("Notification", notification_id)
    if notification.user_id != user.id:
        raise Forbidden("That notification belongs to someone else")
    with unit_of_work("read notification", entity=notification.id):
        notification.is_read = True
    return notification


def mark_all_read_for_user(user_id):
    with unit_of_work("read notifications", entity=user_id):
        updated = Notification.query.filter_by(user_id=user_id, is_read=False).update({"is_read": True})
    return updated
