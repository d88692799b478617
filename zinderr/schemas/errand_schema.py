from marshmallow import fields

from zinderr.extensions import ma
from zinderr.schemas.fields import UtcDateTime, Money
from zinderr.schemas.user_schema import UserPublicSchema


class ErrandSchema(ma.Schema):
    id = fields.String()
    title = fields.String()
    description = fields.String()
    location = fields.String()
    amount = Money()
    deadline = UtcDateTime()
    category = fields.String()
    image_url = fields.String()
    notes = fields.String()
    destination_lat = fields.Float()
    destination_lng = fields.Float()
    status = fields.String()
    poster_id = fields.String()
    assigned_runner_id = fields.String()
    poster = fields.Nested(UserPublicSchema)
    assigned_runner = fields.Nested(UserPublicSchema)
    created_at = UtcDateTime()
    updated_at = UtcDateTime()
    completed_at = UtcDateTime()
    cancelled_at = UtcDateTime()


class AdminErrandSchema(ErrandSchema):
    is_flagged = fields.Boolean()
    flagged_at = UtcDateTime()
    is_disabled = fields.Boolean()
    disabled_at = UtcDateTime()
    completed_by_id = fields.String()
