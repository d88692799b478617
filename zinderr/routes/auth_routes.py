from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from zinderr.services.auth_service import (
    register_user,
    authenticate_user,
    generate_tokens_for_user,
    current_user,
    SELF_SERVICE_ROLES,
)
from zinderr.schemas.user_schema import UserProfileSchema
from zinderr.utils.response_formatter import success_response, error_response

bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")

profile_schema = UserProfileSchema()


@bp.route("/register", methods=["POST"])
def register():
    data = request.get_json(silent=True) or {}
    full_name = data.get("full_name")
    email = data.get("email")
    password = data.get("password")
    role = data.get("role", "poster")

    if role not in SELF_SERVICE_ROLES:
        return error_response("VALIDATION_ERROR", f"Could not register {role}", status=403)

    if not all([full_name, email, password]):
        return error_response("VALIDATION_ERROR", "Missing required fields", status=422)

    user = register_user(
        email,
        password,
        full_name,
        role=role,
        phone=data.get("phone"),
        location=data.get("location"),
    )
    access, refresh = generate_tokens_for_user(user)
    return success_response({
        "user": profile_schema.dump(user),
        "access_token": access,
        "refresh_token": refresh
    }, status=201)


@bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return error_response("VALIDATION_ERROR", "Email and password are required", status=422)

    user = authenticate_user(email, password)
    access, refresh = generate_tokens_for_user(user)

    return success_response({
        "access_token": access,
        "refresh_token": refresh,
        "user": profile_schema.dump(user),
    })


@bp.route("/me", methods=["GET"])
@jwt_required()
def me():
    return success_response({"user": profile_schema.dump(current_user())})
