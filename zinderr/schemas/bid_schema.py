from marshmallow import fields

from zinderr.extensions import ma
from zinderr.schemas.fields import UtcDateTime, Money
from zinderr.schemas.user_schema import UserPublicSchema


class BidSchema(ma.Schema):
    id = fields.String()
    errand_id = fields.String()
    runner_id = fields.String()
    amount = Money()
    message = fields.String()
    status = fields.String()
    created_at = UtcDateTime()
    updated_at = UtcDateTime()
    retracted_at = UtcDateTime()
    retraction_reason = fields.String()


class PosterBidSchema(BidSchema):
    runner = fields.Nested(UserPublicSchema)


class RunnerBidSchema(BidSchema):
    errand_title = fields.Function(lambda b: b.errand.title if b.errand else None)
    errand_status = fields.Function(lambda b: b.errand.status if b.errand else None)
