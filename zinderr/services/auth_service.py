from datetime import timedelta

from flask import current_app
from flask_jwt_extended import create_access_token, create_refresh_token, get_jwt_identity

from zinderr.extensions import db, bcrypt
from zinderr.models.user import User
from zinderr.utils.exceptions import ServiceError, NotFound, Forbidden, AuthenticationFailed
from zinderr.utils.unit_of_work import unit_of_work

SELF_SERVICE_ROLES = ("poster", "runner")


def hash_password(password: str) -> str:
    return bcrypt.generate_password_hash(password).decode("utf-8")


def check_password(password, hashed_password):
    return bcrypt.check_password_hash(hashed_password, password)


def register_user(email, password, full_name, role="poster", phone=None, location=None):
    if User.query.filter_by(email=email).first():
        raise ServiceError(
            code="USER_EXISTS",
            message="User with that email already exists",
            details={"field": "email"}
        )

    user = User(
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
        role=role,
        phone=phone,
        location=location,
    )
    with unit_of_work("register", entity=email):
        db.session.add(user)
    return user


def authenticate_user(email, password):
    user = User.query.filter_by(email=email).first()
    if not user or not check_password(password, user.password_hash):
        raise AuthenticationFailed()
    if user.is_suspended:
        raise Forbidden("Your account is suspended")
    return user


def generate_tokens_for_user(user):
    access = create_access_token(identity=user.id, expires_delta=timedelta(seconds=current_app.config.get("ACCESS_EXPIRES", 86400)))
    refresh = create_refresh_token(identity=user.id, expires_delta=timedelta(seconds=current_app.config.get("REFRESH_EXPIRES", 86400)))
    return access, refresh


def current_user():
    uid = get_jwt_identity()
    user = db.session.get(User, uid)
    if not user:
        raise NotFound("User", uid)
    return user
