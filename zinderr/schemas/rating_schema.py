from marshmallow import fields

from zinderr.extensions import ma
from zinderr.schemas.fields import UtcDateTime
from zinderr.schemas.user_schema import UserPublicSchema


class MutualRatingSchema(ma.Schema):
    id = fields.String()
    errand_id = fields.String()
    rater_id = fields.String()
    rated_id = fields.String()
    rating = fields.Integer()
    comment = fields.String()
    rating_type = fields.String()
    created_at = UtcDateTime()


class GivenRatingSchema(MutualRatingSchema):
    is_hidden = fields.Boolean()
    hidden_until = UtcDateTime()
    report_reason = fields.String()


class ReceivedRatingSchema(MutualRatingSchema):
    rater = fields.Nested(UserPublicSchema)
