"""
Errand and bid lifecycle.

Every state change an errand or bid can go through lives here, so the rules
are enforced in one place no matter which route (or CLI command) asks for
the change:

    errand: open -> in_progress -> completed
            open | in_progress -> cancelled
            in_progress -> open           (accepted bid retracted)

    bid:    pending -> accepted | rejected | retracted
            accepted -> retracted
            rejected -> pending           (runner re-bids, same record)

Each operation runs as one database transaction. Errand and Bid rows carry a
version column, so an update based on a stale read fails at flush time and
the whole operation is rolled back and reported as ``InvalidState``.
Notifications are relayed only after the commit and can never undo it.
"""
import logging
from datetime import timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from flask import current_app

from zinderr.extensions import db
from zinderr.models.bid import Bid, ACTIVE_BID_STATUSES
from zinderr.models.errand import Errand, ERRAND_CATEGORIES
from zinderr.models.mutual_rating import MutualRating
from zinderr.models.transaction import Transaction
from zinderr.models.user import User
from zinderr.services.notification_service import LifecycleEvent, relay_events
from zinderr.services.rating_service import recompute_user_rating
from zinderr.services.wallet_service import credit_runner
from zinderr.utils.dates import utcnow, parse_instant
from zinderr.utils.exceptions import InvalidState, Forbidden, ValidationError
from zinderr.utils.unit_of_work import unit_of_work
from zinderr.utils.validators import optional_coordinate

logger = logging.getLogger(__name__)

ERRAND_FIELDS = (
    "title",
    "description",
    "location",
    "amount",
    "deadline",
    "category",
    "image_url",
    "notes",
    "destination_lat",
    "destination_lng",
)


# ------------------------------------------------------------
# Precondition helpers
# ------------------------------------------------------------

def _require_active(user):
    if user.is_suspended:
        raise Forbidden("Your account is suspended")


def _require_errand_status(errand, allowed, transition):
    if isinstance(allowed, str):
        allowed = (allowed,)
    if errand.status not in allowed:
        raise InvalidState(
            transition,
            errand.status,
            message=_errand_conflict_message(errand, transition),
            entity=errand.id,
        )


def _require_bid_status(bid, allowed, transition):
    if bid.status not in allowed:
        raise InvalidState(
            transition,
            bid.status,
            message=f"This bid is already {bid.status}. Refresh to see the latest state.",
            entity=bid.id,
        )


def _pin_errand(errand, now):
    # Writing the row bumps its version, so a concurrent accept, cancel or
    # rating on the same errand makes one of the two commits fail.
    if errand.updated_at == now:
        now += timedelta(microseconds=1)
    errand.updated_at = now


def _errand_conflict_message(errand, transition):
    return f"Cannot {transition}: errand is {errand.status.replace('_', ' ')}."


def parse_amount(value, field="amount"):
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field.capitalize()} must be a number", field=field)
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"{field.capitalize()} must be greater than zero", field=field)
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _clean_errand_fields(data, now, partial=False):
    cleaned = {}

    if not partial or "title" in data:
        title = (data.get("title") or "").strip()
        if not title:
            raise ValidationError("Title is required", field="title")
        cleaned["title"] = title

    if not partial or "amount" in data:
        cleaned["amount"] = parse_amount(data.get("amount"))

    if not partial or "category" in data:
        category = data.get("category") or "Others"
        if category not in ERRAND_CATEGORIES:
            raise ValidationError(f"Unknown category '{category}'", field="category")
        cleaned["category"] = category

    if "deadline" in data:
        try:
            deadline = parse_instant(data.get("deadline"))
        except ValueError:
            raise ValidationError("Invalid deadline format", field="deadline")
        if deadline is not None and deadline <= now:
            raise ValidationError("Deadline must be in the future", field="deadline")
        cleaned["deadline"] = deadline

    for key in ("description", "location", "image_url", "notes"):
        if key in data:
            value = data.get(key)
            cleaned[key] = value.strip() if isinstance(value, str) else value

    if "destination_lat" in data:
        cleaned["destination_lat"] = optional_coordinate(data["destination_lat"], "destination_lat", 90)
    if "destination_lng" in data:
        cleaned["destination_lng"] = optional_coordinate(data["destination_lng"], "destination_lng", 180)

    return cleaned


# ------------------------------------------------------------
# Errands
# ------------------------------------------------------------

def post_errand(poster, data, now=None):
    now = now or utcnow()

    _require_active(poster)
    if poster.role != "poster":
        raise Forbidden("Only posters can post errands")

    fields = _clean_errand_fields(data, now)

    with unit_of_work("post errand"):
        errand = Errand(poster_id=poster.id, status="open", created_at=now, **fields)
        db.session.add(errand)

    logger.info("Errand %s posted by %s", errand.id, poster.id)
    return errand


def update_errand(errand, actor, data, now=None):
    now = now or utcnow()
    transition = "edit errand"

    with unit_of_work(transition, entity=errand.id):
        _require_active(actor)
        if actor.id != errand.poster_id:
            raise Forbidden("Only the poster can edit this errand")
        _require_errand_status(errand, "open", transition)

        fields = _clean_errand_fields(
            {k: v for k, v in data.items() if k in ERRAND_FIELDS},
            now,
            partial=True,
        )
        for key, value in fields.items():
            setattr(errand, key, value)

    return errand


def cancel_errand(errand, actor, now=None):
    """
    Cancel an open or in-progress errand.

    Pending bids are rejected and any assigned runner is released. The
    accepted bid (if any) keeps its status as history.
    """
    now = now or utcnow()
    transition = "cancel errand"
    events = []
    changed = []

    with unit_of_work(transition, entity=errand.id):
        _require_active(actor)
        if actor.id != errand.poster_id and actor.role != "admin":
            raise Forbidden("Only the poster can cancel this errand")
        _require_errand_status(errand, ("open", "in_progress"), transition)

        released_runner = errand.assigned_runner_id
        cancelled_by = "the poster" if actor.id == errand.poster_id else "an administrator"

        errand.status = "cancelled"
        errand.cancelled_at = now
        errand.assigned_runner_id = None

        pending = Bid.query.filter_by(errand_id=errand.id, status="pending").all()
        for bid in pending:
            bid.status = "rejected"
            changed.append(bid)
            events.append(LifecycleEvent(
                "bid_rejected",
                bid.runner_id,
                "Errand Cancelled",
                f"The errand '{errand.title}' was cancelled by {cancelled_by}.",
                {"errand_id": errand.id, "bid_id": bid.id},
            ))

        if released_runner:
            events.append(LifecycleEvent(
                "errand_cancelled",
                released_runner,
                "Errand Cancelled",
                f"The errand '{errand.title}' you were assigned to was cancelled by {cancelled_by}.",
                {"errand_id": errand.id},
            ))

    logger.info("Errand %s cancelled by %s", errand.id, actor.id)
    relay_events(events, sender_id=actor.id)
    return errand, changed


# ------------------------------------------------------------
# Bids
# ------------------------------------------------------------

def place_bid(errand, runner, amount, message=None, now=None):
    """
    Bid on an open errand.

    A runner holds at most one live bid per errand. Bidding again while a
    pending or rejected bid exists updates that bid in place and puts it back
    to pending rather than creating a second one.
    """
    now = now or utcnow()
    transition = "place bid"
    amount = parse_amount(amount)
    message = (message or "").strip() or None

    with unit_of_work(transition, entity=errand.id):
        _require_active(runner)
        if runner.role != "runner":
            raise Forbidden("Only runners can bid on errands")
        if runner.id == errand.poster_id:
            raise Forbidden("You cannot bid on your own errand")
        _require_errand_status(errand, "open", transition)
        if errand.is_disabled:
            raise InvalidState(transition, "disabled", message="This errand has been disabled", entity=errand.id)
        _pin_errand(errand, now)

        existing = (
            Bid.query
            .filter(
                Bid.errand_id == errand.id,
                Bid.runner_id == runner.id,
                Bid.status.in_(ACTIVE_BID_STATUSES),
            )
            .first()
        )

        if existing:
            if existing.status == "accepted":
                raise InvalidState(transition, "accepted", entity=existing.id)
            previous = existing.status
            existing.amount = amount
            existing.message = message
            existing.status = "pending"
            existing.updated_at = now
            bid = existing
            logger.info("Bid %s updated by %s (was %s)", bid.id, runner.id, previous)
        else:
            bid = Bid(
                errand_id=errand.id,
                runner_id=runner.id,
                amount=amount,
                message=message,
                status="pending",
                created_at=now,
            )
            db.session.add(bid)

    logger.info("Bid %s on errand %s by %s", bid.id, errand.id, runner.id)
    relay_events([LifecycleEvent(
        "new_bid",
        errand.poster_id,
        "New Bid",
        f"A runner bid {amount} on '{errand.title}'.",
        {"errand_id": errand.id, "bid_id": bid.id},
    )], sender_id=runner.id)
    return bid


def accept_bid(errand, bid, actor, now=None):
    """
    Accept one pending bid on an open errand.

    The bid becomes accepted, the errand goes in_progress with the bidder as
    assigned runner, and every other pending bid is rejected. Returns the
    errand and every bid whose status changed.
    """
    transition = "accept bid"
    events = []
    changed = []

    with unit_of_work(transition, entity=bid.id):
        _require_active(actor)
        if actor.id != errand.poster_id:
            raise Forbidden("Only the poster can accept bids on this errand")
        if bid.errand_id != errand.id:
            raise InvalidState(transition, "bid_not_on_errand", message="This bid belongs to a different errand", entity=bid.id)
        _require_errand_status(errand, "open", transition)
        if errand.is_disabled:
            raise InvalidState(transition, "disabled", message="This errand has been disabled", entity=errand.id)
        _require_bid_status(bid, ("pending",), transition)

        bid.status = "accepted"
        errand.status = "in_progress"
        errand.assigned_runner_id = bid.runner_id
        changed.append(bid)

        events.append(LifecycleEvent(
            "bid_accepted",
            bid.runner_id,
            "Your Bid Was Accepted",
            f"Your bid on '{errand.title}' has been accepted. You are now assigned to this errand.",
            {"errand_id": errand.id, "bid_id": bid.id},
        ))

        others = (
            Bid.query
            .filter(Bid.errand_id == errand.id, Bid.id != bid.id)
            .filter(Bid.status.in_(("pending", "accepted")))
            .all()
        )
        for other in others:
            if other.status == "accepted":
                raise InvalidState(transition, "already_assigned", entity=other.id)
            other.status = "rejected"
            changed.append(other)
            events.append(LifecycleEvent(
                "bid_rejected",
                other.runner_id,
                "Your Bid Was Not Selected",
                f"The poster chose another runner for '{errand.title}'.",
                {"errand_id": errand.id, "bid_id": other.id},
            ))

    logger.info("Bid %s accepted on errand %s, %d sibling(s) rejected", bid.id, errand.id, len(changed) - 1)
    relay_events(events, sender_id=actor.id)
    return errand, changed


def reject_bid(bid, actor):
    transition = "reject bid"

    with unit_of_work(transition, entity=bid.id):
        _require_active(actor)
        if actor.id != bid.errand.poster_id:
            raise Forbidden("Only the poster can reject bids on this errand")
        _require_bid_status(bid, ("pending",), transition)
        bid.status = "rejected"

    logger.info("Bid %s rejected", bid.id)
    relay_events([LifecycleEvent(
        "bid_rejected",
        bid.runner_id,
        "Your Bid Was Rejected",
        f"Your bid on '{bid.errand.title}' has been rejected by the poster.",
        {"errand_id": bid.errand_id, "bid_id": bid.id},
    )], sender_id=actor.id)
    return bid


def retract_bid(bid, actor, reason=None, now=None):
    """
    Withdraw a pending or accepted bid.

    Retracting an accepted bid undoes the assignment: the errand goes back to
    open with no runner, and the poster is told. Bids rejected by the original
    acceptance stay rejected. Returns (bid, errand or None).
    """
    now = now or utcnow()
    transition = "retract bid"
    reason = (reason or "").strip() or None
    reset_errand = None

    with unit_of_work(transition, entity=bid.id):
        _require_active(actor)
        if actor.id != bid.runner_id:
            raise Forbidden("Only the runner who placed this bid can retract it")
        _require_bid_status(bid, ("pending", "accepted"), transition)

        errand = bid.errand
        if bid.status == "accepted":
            _require_errand_status(errand, "in_progress", transition)
            if errand.assigned_runner_id != bid.runner_id:
                raise InvalidState(transition, "not_assigned", entity=errand.id)
            errand.status = "open"
            errand.assigned_runner_id = None
            reset_errand = errand

        bid.status = "retracted"
        bid.retracted_at = now
        bid.retraction_reason = reason

    if reset_errand is not None:
        logger.info("Accepted bid %s retracted, errand %s reopened", bid.id, errand.id)
        event = LifecycleEvent(
            "assignment_cancelled",
            errand.poster_id,
            "Runner Withdrew",
            f"The runner assigned to '{errand.title}' withdrew. Your errand is open for bids again.",
            {"errand_id": errand.id, "bid_id": bid.id, "reason": reason},
        )
    else:
        logger.info("Bid %s retracted", bid.id)
        event = LifecycleEvent(
            "bid_retracted",
            errand.poster_id,
            "Bid Withdrawn",
            f"A runner withdrew their bid on '{errand.title}'.",
            {"errand_id": errand.id, "bid_id": bid.id, "reason": reason},
        )
    relay_events([event], sender_id=actor.id)
    return bid, reset_errand


# ------------------------------------------------------------
# Completion and ratings
# ------------------------------------------------------------

def mark_completed(errand, actor, now=None):
    """
    Close out an in-progress errand.

    Either the poster or the assigned runner may do this. Records the payout
    transaction, credits the runner's wallet and opens the rating window for
    both sides.
    """
    now = now or utcnow()
    transition = "mark completed"

    with unit_of_work(transition, entity=errand.id):
        _require_active(actor)
        if actor.id != errand.poster_id and (
            errand.assigned_runner_id is None or actor.id != errand.assigned_runner_id
        ):
            raise Forbidden("Only the poster or the assigned runner can complete this errand")
        _require_errand_status(errand, "in_progress", transition)

        errand.status = "completed"
        errand.completed_at = now
        errand.completed_by_id = actor.id

        db.session.add(Transaction(
            errand_id=errand.id,
            poster_id=errand.poster_id,
            runner_id=errand.assigned_runner_id,
            amount=errand.amount,
            status="completed",
            completed_at=now,
        ))
        credit_runner(errand.assigned_runner_id, errand.amount)

        runner = db.session.get(User, errand.assigned_runner_id)
        runner.completed_tasks = (runner.completed_tasks or 0) + 1

    logger.info("Errand %s completed by %s", errand.id, actor.id)
    relay_events([
        LifecycleEvent(
            "rating_unlocked",
            user_id,
            "Errand Completed",
            f"'{errand.title}' is complete. Rate your experience.",
            {"errand_id": errand.id},
        )
        for user_id in (errand.poster_id, errand.assigned_runner_id)
    ], sender_id=actor.id)
    return errand


def submit_rating(errand, rater, rated_user, rating, comment=None, report_reason=None, now=None):
    """
    Record one side of the double-blind rating for a completed errand.

    The rating starts hidden from its subject. It is revealed as soon as the
    other side rates too, or once the reveal window has passed.
    """
    now = now or utcnow()
    transition = "submit rating"

    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationError("Rating must be a whole number from 1 to 5", field="rating")

    revealed = None

    with unit_of_work(transition, entity=errand.id):
        _require_active(rater)
        if not errand.assigned_runner_id or rater.id not in (errand.poster_id, errand.assigned_runner_id):
            raise Forbidden("Only the poster and the assigned runner can rate this errand")
        if rated_user.id != errand.counterpart_of(rater.id):
            raise ValidationError("You can only rate the other party of this errand", field="rated_user_id")
        _require_errand_status(errand, "completed", transition)
        _pin_errand(errand, now)

        if MutualRating.query.filter_by(errand_id=errand.id, rater_id=rater.id).first():
            raise InvalidState(transition, "already_rated", message="You have already rated this errand", entity=errand.id)

        reveal_hours = current_app.config.get("RATING_REVEAL_HOURS", 24)
        report_reason = (report_reason or "").strip() or None

        new_rating = MutualRating(
            errand_id=errand.id,
            transaction_id=errand.transaction.id if errand.transaction else None,
            rater_id=rater.id,
            rated_id=rated_user.id,
            rating=rating,
            comment=(comment or "").strip() or None,
            rating_type="poster_to_runner" if rater.id == errand.poster_id else "runner_to_poster",
            is_hidden=True,
            hidden_until=now + timedelta(hours=reveal_hours),
            report_reason=report_reason,
            report_submitted_at=now if report_reason else None,
            created_at=now,
        )
        db.session.add(new_rating)

        counterpart = MutualRating.query.filter_by(errand_id=errand.id, rater_id=rated_user.id).first()
        if counterpart:
            new_rating.is_hidden = False
            counterpart.is_hidden = False
            recompute_user_rating(rated_user.id, now)
            recompute_user_rating(rater.id, now)
            revealed = counterpart

    if revealed is not None:
        logger.info("Ratings on errand %s revealed to both parties", errand.id)
        relay_events([
            LifecycleEvent(
                "rating_revealed",
                user_id,
                "New Rating",
                f"Ratings for '{errand.title}' are now visible.",
                {"errand_id": errand.id},
            )
            for user_id in (rater.id, rated_user.id)
        ])
    return new_rating


def release_expired_ratings(now=None):
    """Reveal every hidden rating whose window has lapsed. Returns them."""
    now = now or utcnow()

    with unit_of_work("release ratings"):
        expired = (
            MutualRating.query
            .filter(MutualRating.is_hidden.is_(True), MutualRating.hidden_until <= now)
            .all()
        )
        for r in expired:
            r.is_hidden = False
        for user_id in {r.rated_id for r in expired}:
            recompute_user_rating(user_id, now)

    if expired:
        logger.info("Released %d hidden rating(s)", len(expired))
    return expired
