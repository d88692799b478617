from marshmallow import fields

from zinderr.extensions import ma
from zinderr.schemas.fields import UtcDateTime


class ChatMessageSchema(ma.Schema):
    id = fields.String()
    errand_id = fields.String()
    sender_id = fields.String()
    recipient_id = fields.String()
    content = fields.String()
    is_read = fields.Boolean()
    created_at = UtcDateTime()


class LocationUpdateSchema(ma.Schema):
    id = fields.String()
    errand_id = fields.String()
    user_id = fields.String()
    user_name = fields.Function(lambda u: u.user.public_name if u.user else None)
    latitude = fields.Float()
    longitude = fields.Float()
    accuracy = fields.Float()
    location_timestamp = UtcDateTime()
