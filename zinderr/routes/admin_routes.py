from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from zinderr.services.admin_service import (
    require_admin,
    list_all_errands,
    list_users,
    set_errand_flag,
    set_errand_disabled,
    set_user_suspended,
    review_verification,
)
from zinderr.services.auth_service import current_user
from zinderr.services.errand_service import get_errand, bid_counts
from zinderr.schemas.errand_schema import AdminErrandSchema
from zinderr.schemas.user_schema import AdminUserSchema
from zinderr.utils.pagination import paginate_query, page_args
from zinderr.utils.exceptions import ValidationError
from zinderr.utils.response_formatter import success_response

bp = Blueprint("admin", __name__, url_prefix="/api/v1/admin")

errand_schema = AdminErrandSchema()
errands_schema = AdminErrandSchema(many=True)
user_schema = AdminUserSchema()
users_schema = AdminUserSchema(many=True)


TRUTHY = ("1", "true", "yes", "on")
FALSY = ("0", "false", "no", "off")


def _parse_flag(value):
    if isinstance(value, str):
        value = value.strip().lower()
        if value in TRUTHY:
            return True
        if value in FALSY:
            return False
    return value


def _flag_arg(data, key):
    value = _parse_flag(data.get(key, True))
    if not isinstance(value, bool):
        raise ValidationError(f"'{key}' must be true or false", field=key)
    return value


@bp.route("/errands", methods=["GET"])
@jwt_required()
def admin_errands():
    require_admin(current_user())
    page, limit = page_args(request.args)

    flagged = request.args.get("flagged")
    if flagged is not None:
        flagged = _parse_flag(flagged) is True

    items, pagination = paginate_query(
        list_all_errands(status=request.args.get("status"), flagged=flagged),
        page,
        limit,
    )
    counts = bid_counts([e.id for e in items])
    errands = errands_schema.dump(items)
    for data in errands:
        data["bids_count"] = counts.get(data["id"], 0)

    return success_response({"errands": errands, "pagination": pagination})


@bp.route("/users", methods=["GET"])
@jwt_required()
def admin_users():
    require_admin(current_user())
    page, limit = page_args(request.args)
    items, pagination = paginate_query(
        list_users(
            role=request.args.get("role"),
            search=request.args.get("search"),
            verification_status=request.args.get("verification_status"),
        ),
        page,
        limit,
    )
    return success_response({"users": users_schema.dump(items), "pagination": pagination})


@bp.route("/errands/<errand_id>/flag", methods=["POST"])
@jwt_required()
def flag_errand(errand_id):
    data = request.get_json(silent=True) or {}
    errand = set_errand_flag(get_errand(errand_id), current_user(), _flag_arg(data, "flag"))
    return success_response({"errand": errand_schema.dump(errand)})


@bp.route("/errands/<errand_id>/disable", methods=["POST"])
@jwt_required()
def disable_errand(errand_id):
    data = request.get_json(silent=True) or {}
    errand = set_errand_disabled(get_errand(errand_id), current_user(), _flag_arg(data, "disable"))
    return success_response({"errand": errand_schema.dump(errand)})


@bp.route("/users/<user_id>/suspend", methods=["POST"])
@jwt_required()
def suspend_user(user_id):
    data = request.get_json(silent=True) or {}
    user = set_user_suspended(user_id, current_user(), _flag_arg(data, "suspend"))
    return success_response({"user": user_schema.dump(user)})


@bp.route("/users/<user_id>/verification", methods=["POST"])
@jwt_required()
def verify_user(user_id):
    data = request.get_json(silent=True) or {}
    user = review_verification(user_id, current_user(), data.get("status"), data.get("note"))
    return success_response({"user": user_schema.dump(user)})
