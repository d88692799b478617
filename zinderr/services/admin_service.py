import logging

from zinderr.extensions import db
from zinderr.models.errand import Errand
from zinderr.models.user import User, VERIFICATION_STATUSES
from zinderr.services.notification_service import LifecycleEvent, relay_events
from zinderr.utils.dates import utcnow
from zinderr.utils.exceptions import Forbidden, NotFound, ValidationError
from zinderr.utils.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)


def require_admin(user):
    if user.role != "admin":
        raise Forbidden("Admin access required")


def list_all_errands(status=None, flagged=None):
    q = Errand.query
    if status:
        q = q.filter(Errand.status == status)
    if flagged is not None:
        q = q.filter(Errand.is_flagged.is_(flagged))
    return q.order_by(Errand.created_at.desc())


def list_users(role=None, search=None, verification_status=None):
    q = User.query
    if role:
        q = q.filter(User.role == role)
    if verification_status:
        q = q.filter(User.verification_status == verification_status)
    if search:
        term = f"%{search}%"
        q = q.filter(User.full_name.ilike(term) | User.email.ilike(term))
    return q.order_by(User.created_at.desc())


def _get_user(user_id):
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("User", user_id)
    return user


def set_errand_flag(errand, admin, flag):
    require_admin(admin)
    with unit_of_work("flag errand", entity=errand.id):
        errand.is_flagged = flag
        errand.flagged_at = utcnow() if flag else None
    logger.info("Errand %s flagged=%s by %s", errand.id, flag, admin.id)
    return errand


def set_errand_disabled(errand, admin, disable):
    require_admin(admin)
    with unit_of_work("disable errand", entity=errand.id):
        errand.is_disabled = disable
        errand.disabled_at = utcnow() if disable else None
    logger.info("Errand %s disabled=%s by %s", errand.id, disable, admin.id)
    return errand


def set_user_suspended(user_id, admin, suspend):
    require_admin(admin)
    user = _get_user(user_id)
    if user.id == admin.id:
        raise Forbidden("You cannot suspend yourself")
    with unit_of_work("suspend user", entity=user.id):
        user.is_suspended = suspend
        user.suspended_at = utcnow() if suspend else None
    logger.info("User %s suspended=%s by %s", user.id, suspend, admin.id)
    return user


def review_verification(user_id, admin, status, note=None):
    """Approve or reject a runner's identity documents."""
    require_admin(admin)
    if status not in VERIFICATION_STATUSES or status == "pending":
        raise ValidationError("Status must be 'verified' or 'rejected'", field="status")

    user = _get_user(user_id)
    if user.role != "runner":
        raise ValidationError("Only runners go through verification", field="user_id")
    if status == "verified" and not user.has_verification_documents:
        raise ValidationError("This runner has not submitted their documents yet", field="status")

    with unit_of_work("review verification", entity=user.id):
        user.verification_status = status
        user.verified_at = utcnow() if status == "verified" else None

    logger.info("Runner %s verification=%s by %s", user.id, status, admin.id)
    message = (
        "Your identity has been verified."
        if status == "verified"
        else "Your verification was not approved. Please resubmit your documents."
    )
    if note:
        message = f"{message} {note.strip()}"
    relay_events([LifecycleEvent(
        "verification_" + status,
        user.id,
        "Verification Update",
        message,
        {"status": status},
    )], sender_id=admin.id)
    return user
