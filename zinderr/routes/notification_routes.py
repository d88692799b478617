from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from zinderr.services.auth_service import current_user
from zinderr.services.notification_service import (
    get_user_notifications,
    mark_notification_read,
    mark_all_read_for_user,
)
from zinderr.schemas.notification_schema import NotificationSchema
from zinderr.utils.pagination import paginate_query, page_args
from zinderr.utils.response_formatter import success_response

bp = Blueprint("notifications", __name__, url_prefix="/api/v1/notifications")

notification_schema = NotificationSchema()
notifications_schema = NotificationSchema(many=True)


@bp.route("", methods=["GET"])
@jwt_required()
def list_notifications():
    user = current_user()
    page, limit = page_args(request.args)

    is_read = request.args.get("is_read")
    if is_read is not None:
        is_read = is_read.lower() in ("1", "true", "yes")

    items, pagination = paginate_query(get_user_notifications(user.id, is_read), page, limit)
    return success_response({"notifications": notifications_schema.dump(items), "pagination": pagination})


@bp.route("/<notification_id>/read", methods=["POST"])
@jwt_required()
def read_notification(notification_id):
    notification = mark_notification_read(notification_id, current_user())
    return success_response({"notification": notification_schema.dump(notification)})


@bp.route("/read-all", methods=["POST"])
@jwt_required()
def read_all():
    updated = mark_all_read_for_user(current_user().id)
    return success_response({"updated": updated})
