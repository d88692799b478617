from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from zinderr.services.auth_service import current_user
from zinderr.services.chat_service import send_message, get_conversation, unread_counts
from zinderr.services.errand_service import get_errand
from zinderr.services.location_service import share_location, location_history
from zinderr.schemas.chat_schema import ChatMessageSchema, LocationUpdateSchema
from zinderr.utils.response_formatter import success_response, error_response

bp = Blueprint("chat", __name__, url_prefix="/api/v1")

message_schema = ChatMessageSchema()
messages_schema = ChatMessageSchema(many=True)
location_schema = LocationUpdateSchema()
locations_schema = LocationUpdateSchema(many=True)


# -----------------------------------------------------------
# MESSAGES
# -----------------------------------------------------------
@bp.route("/errands/<errand_id>/messages", methods=["GET"])
@jwt_required()
def list_messages(errand_id):
    user = current_user()
    messages = get_conversation(get_errand(errand_id), user, request.args.get("with"))
    return success_response({"messages": messages_schema.dump(messages)})


@bp.route("/errands/<errand_id>/messages", methods=["POST"])
@jwt_required()
def post_message(errand_id):
    user = current_user()
    data = request.get_json(silent=True) or {}

    msg = send_message(get_errand(errand_id), user, data.get("content"), data.get("recipient_id"))
    return success_response({"message": message_schema.dump(msg)}, status=201)


@bp.route("/chats/unread", methods=["GET"])
@jwt_required()
def unread():
    counts = unread_counts(current_user())
    return success_response({"unread": counts, "total": sum(counts.values())})


# -----------------------------------------------------------
# LOCATION SHARING
# -----------------------------------------------------------
@bp.route("/errands/<errand_id>/locations", methods=["POST"])
@jwt_required()
def post_location(errand_id):
    user = current_user()
    data = request.get_json(silent=True) or {}

    if data.get("latitude") is None or data.get("longitude") is None:
        return error_response("VALIDATION_ERROR", "latitude and longitude are required", status=422)

    update = share_location(
        get_errand(errand_id),
        user,
        data["latitude"],
        data["longitude"],
        data.get("accuracy"),
    )
    return success_response({"location": location_schema.dump(update)}, status=201)


@bp.route("/errands/<errand_id>/locations", methods=["GET"])
@jwt_required()
def list_locations(errand_id):
    user = current_user()
    updates = location_history(get_errand(errand_id), user)
    return success_response({"locations": locations_schema.dump(updates)})
