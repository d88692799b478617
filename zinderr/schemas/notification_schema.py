from marshmallow import fields

from zinderr.extensions import ma
from zinderr.schemas.fields import UtcDateTime


class NotificationSchema(ma.Schema):
    id = fields.String()
    type = fields.String()
    title = fields.String()
    message = fields.String()
    details = fields.Raw()
    is_read = fields.Boolean()
    created_at = UtcDateTime()
