from sqlalchemy import or_, func

from zinderr.extensions import db
from zinderr.models.errand import Errand
from zinderr.models.bid import Bid
from zinderr.utils.exceptions import NotFound, Forbidden, ValidationError


def get_errand(errand_id):
    errand = db.session.get(Errand, errand_id)
    if not errand:
        raise NotFound("Errand", errand_id)
    return errand


def get_bid(bid_id):
    bid = db.session.get(Bid, bid_id)
    if not bid:
        raise NotFound("Bid", bid_id)
    return bid


def list_open_errands(category=None, search=None, min_amount=None):
    q = Errand.query.filter(Errand.status == "open", Errand.is_disabled.is_(False))

    if category:
        q = q.filter(Errand.category == category)

    if search:
        term = f"%{search}%"
        q = q.filter(
            or_(
                Errand.title.ilike(term),
                Errand.description.ilike(term),
                Errand.location.ilike(term),
                Errand.category.ilike(term),
            )
        )

    if min_amount is not None:
        if min_amount < 0:
            raise ValidationError("min_amount cannot be negative", field="min_amount")
        q = q.filter(Errand.amount >= min_amount)

    return q.order_by(Errand.created_at.desc())


def list_poster_errands(poster, status=None):
    q = Errand.query.filter(Errand.poster_id == poster.id)
    if status:
        q = q.filter(Errand.status == status)
    return q.order_by(Errand.created_at.desc())


def list_runner_errands(runner, status=None):
    q = Errand.query.filter(Errand.assigned_runner_id == runner.id)
    if status:
        q = q.filter(Errand.status == status)
    return q.order_by(Errand.updated_at.desc())


def list_errand_bids(errand, actor):
    # Bid amounts are only for the poster's eyes
    if actor.id != errand.poster_id and actor.role != "admin":
        raise Forbidden("Only the poster can view bids on this errand")
    return Bid.query.filter(Bid.errand_id == errand.id).order_by(Bid.created_at.desc())


def list_runner_bids(runner, status=None):
    q = Bid.query.filter(Bid.runner_id == runner.id)
    if status:
        q = q.filter(Bid.status == status)
    return q.order_by(Bid.created_at.desc())


def bid_counts(errand_ids):
    if not errand_ids:
        return {}
    rows = (
        db.session.query(Bid.errand_id, func.count(Bid.id))
        .filter(Bid.errand_id.in_(errand_ids), Bid.status != "retracted")
        .group_by(Bid.errand_id)
        .all()
    )
    return dict(rows)
