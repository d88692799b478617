from marshmallow import fields

from zinderr.extensions import ma
from zinderr.schemas.fields import UtcDateTime, Money


class TransactionSchema(ma.Schema):
    id = fields.String()
    errand_id = fields.String()
    errand_title = fields.Function(lambda t: t.errand.title if t.errand else None)
    poster_id = fields.String()
    runner_id = fields.String()
    poster_name = fields.Function(lambda t: t.poster.public_name if t.poster else None)
    runner_name = fields.Function(lambda t: t.runner.public_name if t.runner else None)
    amount = Money()
    status = fields.String()
    completed_at = UtcDateTime()
