from marshmallow import fields

from zinderr.extensions import ma
from zinderr.schemas.fields import UtcDateTime


class UserPublicSchema(ma.Schema):
    id = fields.String()
    full_name = fields.Method("get_name")
    role = fields.String()
    avatar_url = fields.String()
    location = fields.String()
    average_rating = fields.Float()
    total_ratings = fields.Integer()
    completed_tasks = fields.Integer()
    verification_status = fields.String()

    def get_name(self, obj):
        return obj.public_name


class UserProfileSchema(UserPublicSchema):
    email = fields.String()
    username = fields.String()
    display_username = fields.Boolean()
    phone = fields.String()
    is_suspended = fields.Boolean()
    suspended_at = UtcDateTime()
    created_at = UtcDateTime()
    latitude = fields.Float()
    longitude = fields.Float()
    verification_submitted_at = UtcDateTime()
    verified_at = UtcDateTime()


class AdminUserSchema(UserProfileSchema):
    ghana_card_front_url = fields.String()
    ghana_card_back_url = fields.String()
    selfie_url = fields.String()
