from marshmallow import fields

from zinderr.utils.dates import isoformat_z


class UtcDateTime(fields.Field):
    """Naive UTC column rendered as ISO-8601 with a trailing Z."""

    def _serialize(self, value, attr, obj, **kwargs):
        return isoformat_z(value)


class Money(fields.Field):
    def _serialize(self, value, attr, obj, **kwargs):
        if value is None:
            return None
        return round(float(value), 2)
