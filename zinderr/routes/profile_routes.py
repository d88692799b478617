from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from zinderr.extensions import db
from zinderr.models.user import User
from zinderr.services.auth_service import current_user
from zinderr.services.profile_service import update_profile, submit_verification, profile_metrics
from zinderr.schemas.user_schema import UserProfileSchema, UserPublicSchema
from zinderr.utils.exceptions import NotFound
from zinderr.utils.response_formatter import success_response

bp = Blueprint("profile", __name__, url_prefix="/api/v1/profile")

profile_schema = UserProfileSchema()
public_schema = UserPublicSchema()


@bp.route("", methods=["GET"])
@jwt_required()
def get_profile():
    user = current_user()
    return success_response({"user": profile_schema.dump(user), "metrics": profile_metrics(user)})


@bp.route("", methods=["PATCH"])
@jwt_required()
def patch_profile():
    data = request.get_json(silent=True) or {}
    user = update_profile(current_user(), data)
    return success_response({"user": profile_schema.dump(user)}, message="Profile updated")


@bp.route("/verification", methods=["POST"])
@jwt_required()
def post_verification():
    data = request.get_json(silent=True) or {}
    user = submit_verification(current_user(), data)
    return success_response({"user": profile_schema.dump(user)}, message="Verification submitted", status=202)


@bp.route("/<user_id>", methods=["GET"])
@jwt_required()
def public_profile(user_id):
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("User", user_id)
    return success_response({"user": public_schema.dump(user), "metrics": profile_metrics(user)})
