from sqlalchemy import func, or_

from zinderr.extensions import db
from zinderr.models.mutual_rating import MutualRating
from zinderr.models.user import User
from zinderr.utils.dates import utcnow


def recompute_user_rating(user_id, now=None):
    """Running mean and count over the visible ratings a user has received."""
    avg_rating, count = (
        db.session.query(func.avg(MutualRating.rating), func.count(MutualRating.id))
        .filter(MutualRating.rated_id == user_id, MutualRating.is_hidden.is_(False))
        .one()
    )

    user = db.session.get(User, user_id)
    user.average_rating = round(float(avg_rating or 0), 2)
    user.total_ratings = count or 0
    user.last_rating_update = now or utcnow()
    return user


def list_received_ratings(user, now=None):
    # Hidden ratings whose window has lapsed are shown even before the
    # release job flips them.
    now = now or utcnow()
    return (
        MutualRating.query
        .filter(MutualRating.rated_id == user.id)
        .filter(or_(MutualRating.is_hidden.is_(False), MutualRating.hidden_until <= now))
        .order_by(MutualRating.created_at.desc())
    )


def list_given_ratings(user):
    return (
        MutualRating.query
        .filter(MutualRating.rater_id == user.id)
        .order_by(MutualRating.created_at.desc())
    )


def rating_status(errand, user, now=None):
    now = now or utcnow()
    given = MutualRating.query.filter_by(errand_id=errand.id, rater_id=user.id).first()
    received = MutualRating.query.filter_by(errand_id=errand.id, rated_id=user.id).first()
    if received and not received.is_visible_at(now):
        received = None
    return {
        "can_rate": errand.status == "completed" and errand.is_participant(user.id) and given is None,
        "given": given,
        "received": received,
    }
