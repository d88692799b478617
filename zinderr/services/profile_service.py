import logging

from sqlalchemy import func

from zinderr.extensions import db
from zinderr.models.errand import Errand
from zinderr.models.user import User
from zinderr.utils.dates import utcnow
from zinderr.utils.exceptions import Forbidden, ValidationError
from zinderr.utils.unit_of_work import unit_of_work
from zinderr.utils.validators import optional_coordinate, phone_number

logger = logging.getLogger(__name__)

PROFILE_FIELDS = (
    "full_name",
    "username",
    "display_username",
    "phone",
    "location",
    "latitude",
    "longitude",
    "avatar_url",
)


def _clean_username(value):
    value = (value or "").strip()
    if not value:
        return None
    if len(value) < 3 or len(value) > 50:
        raise ValidationError("Username must be 3 to 50 characters", field="username")
    return value


def update_profile(user, data):
    """Apply the editable subset of ``data`` to ``user``."""
    data = {k: v for k, v in data.items() if k in PROFILE_FIELDS}
    if not data:
        raise ValidationError("No fields to update")

    cleaned = {}
    if "full_name" in data:
        cleaned["full_name"] = (data["full_name"] or "").strip()
        if not cleaned["full_name"]:
            raise ValidationError("Full name is required", field="full_name")

    if "username" in data:
        username = _clean_username(data["username"])
        if username and (
            User.query
            .filter(func.lower(User.username) == username.lower(), User.id != user.id)
            .first()
        ):
            raise ValidationError("Username is already taken. Please choose another.", field="username")
        cleaned["username"] = username

    if "display_username" in data:
        cleaned["display_username"] = data["display_username"] is True
    if "phone" in data:
        cleaned["phone"] = phone_number(data["phone"])
    if "latitude" in data:
        cleaned["latitude"] = optional_coordinate(data["latitude"], "latitude", 90)
    if "longitude" in data:
        cleaned["longitude"] = optional_coordinate(data["longitude"], "longitude", 180)
    for key in ("location", "avatar_url"):
        if key in data:
            cleaned[key] = (data[key] or "").strip() or None

    # the unique index still catches a username taken in the meantime
    with unit_of_work("update profile", entity=user.id):
        for key, value in cleaned.items():
            setattr(user, key, value)

    logger.info("Profile %s updated (%s)", user.id, ", ".join(sorted(cleaned)))
    return user


def submit_verification(runner, data):
    """
    Store a runner's Ghana card photos, selfie and phone, and queue them for
    admin review. Resubmitting after a rejection resets the status to pending.
    """
    if runner.role != "runner":
        raise Forbidden("Only runners need to be verified")
    if runner.verification_status == "verified":
        raise ValidationError("Your account is already verified", field="verification_status")

    documents = {}
    for field in ("ghana_card_front_url", "ghana_card_back_url", "selfie_url"):
        value = (data.get(field) or "").strip()
        if not value:
            raise ValidationError(f"{field} is required", field=field)
        documents[field] = value

    phone = phone_number(data.get("phone") or runner.phone)
    if not phone:
        raise ValidationError("Phone number is required", field="phone")

    with unit_of_work("submit verification", entity=runner.id):
        for key, value in documents.items():
            setattr(runner, key, value)
        runner.phone = phone
        runner.verification_status = "pending"
        runner.verification_submitted_at = utcnow()

    logger.info("Runner %s submitted verification documents", runner.id)
    return runner


def profile_metrics(user):
    if user.role == "runner":
        column = Errand.assigned_runner_id
    else:
        column = Errand.poster_id

    rows = (
        db.session.query(Errand.status, func.count(Errand.id))
        .filter(column == user.id)
        .group_by(Errand.status)
        .all()
    )
    by_status = dict(rows)
    total = sum(by_status.values())
    completed = by_status.get("completed", 0)

    return {
        "total_errands": total,
        "completed_errands": completed,
        "success_rate": round(completed / total * 100, 2) if total else 0,
        "average_rating": round(float(user.average_rating or 0), 2),
        "total_ratings": user.total_ratings or 0,
    }
